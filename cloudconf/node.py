"""A tree view of a parsed cloud-config, annotated with source line numbers."""

from __future__ import annotations

import dataclasses
import re
import typing
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cloudconf.context import Context
from cloudconf.schema import FieldSpec, field_specs

_YAML_KEY = re.compile(r"^ *-? ?(?P<key>.*?):")
_YAML_ELEM = re.compile(r"^ *-")


class Kind(Enum):
    """The broad kind of a value held by a node."""

    INVALID = "invalid"
    STRUCT = "struct"
    MAP = "map"
    SLICE = "slice"
    STRING = "string"
    INT = "int"
    BOOL = "bool"
    FLOAT64 = "float64"
    INTERFACE = "interface"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value


_SCALAR_KINDS = frozenset({Kind.STRING, Kind.INT, Kind.BOOL, Kind.FLOAT64})


def _kind_of(tp: Any) -> Kind:
    if tp is None or tp is type(None):
        return Kind.INVALID
    if tp is Any:
        return Kind.INTERFACE
    origin = typing.get_origin(tp)
    if origin is list:
        return Kind.SLICE
    if origin is dict:
        return Kind.MAP
    if isinstance(tp, type):
        if dataclasses.is_dataclass(tp):
            return Kind.STRUCT
        if issubclass(tp, bool):
            return Kind.BOOL
        if issubclass(tp, int):
            return Kind.INT
        if issubclass(tp, float):
            return Kind.FLOAT64
        if issubclass(tp, (str, bytes, bytearray)):
            return Kind.STRING
        if issubclass(tp, dict):
            return Kind.MAP
        if issubclass(tp, list):
            return Kind.SLICE
    return Kind.OTHER


def _human_type(tp: Any) -> str:
    kind = _kind_of(tp)
    if kind is Kind.SLICE:
        args = typing.get_args(tp)
        item = args[0] if args else Any
        return "[]" + _human_type(item)
    return str(kind)


@dataclass
class Node:
    """One value of a configuration tree, with its name, line and children.

    A node whose ``value`` is None is invalid: it stands for something absent.
    ``value_type`` refines the type of the value where the value alone cannot
    tell it, such as the item type of a list.
    """

    name: str = ""
    line: int = 0
    children: list[Node] = dataclasses.field(default_factory=list)
    field: FieldSpec | None = None
    value: Any = None
    value_type: Any = None

    @property
    def is_valid(self) -> bool:
        return self.value is not None

    @property
    def kind(self) -> Kind:
        if self.value is None:
            return Kind.INVALID
        return _kind_of(self.value_type if self.value_type is not None else type(self.value))

    def child(self, name: str) -> Node:
        """Return the child called *name*, or an invalid node if there is none."""
        for child in self.children:
            if child.name == name:
                return child
        return Node()

    def human_type(self) -> str:
        """Describe the node's type for people, e.g. ``string`` or ``[]struct``."""
        if self.value is None:
            return str(Kind.INVALID)
        return _human_type(self.value_type if self.value_type is not None else type(self.value))


def new_node(value: Any, context: Context) -> Node:
    """Build the node tree of *value*, taking line numbers from *context*."""
    return to_node(value, context)


def to_node(value: Any, context: Context, name: str = "", field: FieldSpec | None = None) -> Node:
    """Convert *value* into a node named *name* and recursively into its children.

    Raises TypeError for a value of a kind a configuration cannot hold.
    """
    node = Node(name=name, field=field)
    if value is None:
        return node

    node.value = value
    if field is not None and field.is_list and isinstance(value, list):
        node.value_type = field.type
    else:
        node.value_type = type(value)

    kind = node.kind
    if kind is Kind.STRUCT:
        for spec in field_specs(type(value)):
            ctx, found = find_key(spec.key, context)
            child = to_node(getattr(value, spec.name), ctx, spec.key, spec)
            if found:
                child.line = ctx.line_number
            node.children.append(child)
    elif kind is Kind.MAP:
        for key, item in value.items():
            key_name = _key_name(key)
            ctx, found = find_key(key_name, context)
            child = to_node(item, ctx, key_name)
            if found:
                child.line = ctx.line_number
            node.children.append(child)
    elif kind is Kind.SLICE:
        # The context carries over between items so each item finds its own line.
        ctx = context
        for index, item in enumerate(value):
            ctx, found = find_elem(ctx)
            child = to_node(item, ctx, f"{name}[{index}]", field)
            if found:
                child.line = ctx.line_number
            node.children.append(child)
            ctx.increment()
    elif kind not in _SCALAR_KINDS:
        raise TypeError(f"to_node(): unhandled kind {kind}")
    return node


def find_key(key: str, context: Context) -> tuple[Context, bool]:
    """Look for the mapping key *key* from the context's current line on.

    Returns a moved copy of the context and whether the key was found.
    """
    return _find(_YAML_KEY, key, context)


def find_elem(context: Context) -> tuple[Context, bool]:
    """Look for a sequence item from the context's current line on.

    Returns a moved copy of the context and whether an item was found.
    """
    return _find(_YAML_ELEM, "", context)


def _find(pattern: re.Pattern, key: str, context: Context) -> tuple[Context, bool]:
    ctx = dataclasses.replace(context)
    while ctx.current_line or ctx.remaining_lines:
        match = pattern.match(ctx.current_line)
        if match and (key == "" or match.group("key") == key):
            return ctx, True
        ctx.increment()
    return ctx, False


def _key_name(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, (bytes, bytearray)):
        return bytes(key).decode("utf-8", "surrogateescape")
    if key is None:
        return "%!s(<nil>)"
    if isinstance(key, bool):
        return f"%!s(bool={'true' if key else 'false'})"
    if isinstance(key, int):
        return f"%!s(int={key})"
    if isinstance(key, float):
        return f"%!s(float64={key!r})"
    return str(key)