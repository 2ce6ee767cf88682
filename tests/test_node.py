from dataclasses import dataclass

import pytest

from cloudconf.config import CloudConfig
from cloudconf.context import Context, new_context
from cloudconf.node import Kind, Node, find_elem, find_key, new_node, to_node
from cloudconf.schema import field_specs, option


@dataclass
class _Empty:
    pass


@dataclass
class _IntHolder:
    a: int = option("a", 0)


@dataclass
class _ListHolder:
    a: list[int] = option("a", list)


@dataclass
class _Inner:
    jon: bool = option("b", False)


@dataclass
class _Outer:
    a: _Inner = option("a", _Inner)


_PARENT = Node(children=[Node(name="c1"), Node(name="c2"), Node(name="c3")])


@pytest.mark.parametrize(
    "parent, name, expected",
    [
        (Node(), "", Node()),
        (Node(), "c1", Node()),
        (_PARENT, "", Node()),
        (_PARENT, "c2", Node(name="c2")),
    ],
)
def test_child(parent, name, expected):
    assert parent.child(name) == expected


def test_missing_child_is_invalid():
    assert not _PARENT.child("c9").is_valid


@pytest.mark.parametrize(
    "node, expected",
    [
        (Node(), "invalid"),
        (Node(value="hello"), "string"),
        (
            Node(value=[1, 2], value_type=list[int], children=[Node(value=1), Node(value=2)]),
            "[]int",
        ),
        (Node(value=[]), "[]interface"),
    ],
)
def test_human_type(node, expected):
    assert node.human_type() == expected


def test_human_type_of_typed_config():
    root = new_node(CloudConfig(), Context())
    assert root.human_type() == "struct"
    assert root.child("users").human_type() == "[]struct"
    assert root.child("ssh_authorized_keys").human_type() == "[]string"
    assert root.child("coreos").human_type() == "struct"


def test_to_node_none_is_invalid():
    node = to_node(None, Context())
    assert node.kind is Kind.INVALID
    assert node.name == ""
    assert node.line == 0
    assert node.children == []


def test_to_node_empty_struct():
    node = to_node(_Empty(), Context())
    assert node.value == _Empty()
    assert node.kind is Kind.STRUCT
    assert node.children == []


def test_to_node_int_field():
    node = to_node(_IntHolder(), Context())
    assert [child.name for child in node.children] == ["a"]
    child = node.children[0]
    assert child.field == field_specs(_IntHolder)[0]
    assert child.line == 0
    assert child.children == []
    assert child.value == 0


def test_to_node_list_field():
    node = to_node(_ListHolder(), Context())
    assert [child.name for child in node.children] == ["a"]
    assert node.child("a").field == field_specs(_ListHolder)[0]
    assert node.child("a").line == 0
    assert node.child("a").children == []
    assert node.child("a").human_type() == "[]int"


def test_to_node_map_with_lines():
    node = to_node({"a": {"b": 2}}, new_context("a:\n  b: 2"))
    assert [child.name for child in node.children] == ["a"]
    a = node.child("a")
    assert a.line == 1
    assert [child.name for child in a.children] == ["b"]
    assert a.child("b").line == 2
    assert a.child("b").value == 2


def test_to_node_nested_struct():
    node = to_node(_Outer(), Context())
    a = node.child("a")
    assert [child.name for child in node.children] == ["a"]
    assert a.field == field_specs(_Outer)[0]
    assert [child.name for child in a.children] == ["b"]
    assert a.child("b").field == field_specs(_Inner)[0]
    assert a.value == _Inner()
    assert a.child("b").value is False


def test_to_node_list_items_get_their_own_lines():
    node = new_node({"a": [1, 2]}, new_context("a:\n  - 1\n  - 2"))
    items = node.child("a").children
    assert [(item.name, item.line) for item in items] == [("a[0]", 2), ("a[1]", 3)]


def test_to_node_unhandled_kind():
    with pytest.raises(TypeError):
        to_node(object(), Context())


@pytest.mark.parametrize(
    "key, text, found",
    [
        ("", "", False),
        ("key1", "key1: hi", True),
        ("key2", "key1: hi", False),
        ("key3", "key1:\n  key2:\n    key3: hi", True),
        ("key4", "key1:\n  - key4: hi", True),
        ("key5", "#key5", False),
    ],
)
def test_find_key(key, text, found):
    context = new_context(text) if text else Context()
    _, result = find_key(key, context)
    assert result is found


def test_find_key_moves_a_copy():
    context = new_context("key1:\n  key2: hi")
    moved, found = find_key("key2", context)
    assert found
    assert moved.line_number == 2
    assert context.line_number == 1


@pytest.mark.parametrize(
    "text, found",
    [
        ("", False),
        ("test: hi", False),
        ("test:\n  - a\n  -b", True),
        ("test:\n  -\n    a", True),
    ],
)
def test_find_elem(text, found):
    context = new_context(text) if text else Context()
    _, result = find_elem(context)
    assert result is found