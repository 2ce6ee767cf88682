"""Line-by-line position within a text, used to find line numbers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Context:
    """The current line, the text after it and the current line's number."""

    current_line: str = ""
    remaining_lines: str = ""
    line_number: int = 0

    def increment(self) -> None:
        """Move to the next line, if there is one."""
        if not self.current_line and not self.remaining_lines:
            return
        current, _, rest = self.remaining_lines.partition("\n")
        self.current_line = current
        self.remaining_lines = rest
        self.line_number += 1


def new_context(content: str | bytes) -> Context:
    """Create a context over *content*, without carriage returns, at its first line."""
    if isinstance(content, (bytes, bytearray)):
        text = bytes(content).decode("utf-8", "surrogateescape")
    else:
        text = content
    context = Context(remaining_lines=text.replace("\r", ""))
    context.increment()
    return context