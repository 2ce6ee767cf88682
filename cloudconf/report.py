"""Validation report entries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class EntryKind(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Entry:
    """One finding of a validation, tied to a line."""

    kind: EntryKind
    message: str
    line: int

    def __str__(self) -> str:
        return f"line {self.line}: {self.kind}: {self.message}"

    def to_json(self) -> str:
        """Encode the entry as a compact JSON object with sorted keys."""
        text = json.dumps(
            {"kind": str(self.kind), "line": self.line, "message": self.message},
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
        )
        for char, escaped in _HTML_ESCAPES.items():
            text = text.replace(char, escaped)
        return text


@dataclass
class Report:
    """The entries produced by a validation, in the order they were found."""

    entries: list[Entry] = field(default_factory=list)

    def error(self, line: int, message: str) -> None:
        self.entries.append(Entry(EntryKind.ERROR, message, line))

    def warning(self, line: int, message: str) -> None:
        self.entries.append(Entry(EntryKind.WARNING, message, line))

    def info(self, line: int, message: str) -> None:
        self.entries.append(Entry(EntryKind.INFO, message, line))