"""Validation of user-data, with findings reported against source lines."""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterable

import yaml

from cloudconf.config import is_cloud_config, is_ignition_config, is_script, new_cloud_config
from cloudconf.context import new_context
from cloudconf.node import Node, new_node
from cloudconf.report import Report
from cloudconf.rules import RULES, Rule, is_compatible

_NOT_CLOUD_CONFIG = 'must be "#cloud-config" or begin with "#!"'
_TAG = "tag:yaml.org,2002:"
_QUOTED_CHAR = re.compile(r"found character (?:'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\") that")


class ValidationError(Exception):
    """Raised when validation itself cannot be carried out."""


class _WeakLoader(yaml.SafeLoader):
    """Loads YAML into plain values, leaving date-like text as text."""


_WeakLoader.yaml_implicit_resolvers = {
    first: [
        (tag, pattern)
        for tag, pattern in resolvers
        if tag not in (_TAG + "timestamp", _TAG + "value")
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_WeakLoader.add_constructor(_TAG + "timestamp", yaml.SafeLoader.construct_yaml_str)


def _as_bytes(data: bytes | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8", "surrogateescape")
    return bytes(data)


def _as_text(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    return bytes(data).decode("utf-8", "surrogateescape")


def validate(userdata: bytes | str) -> Report:
    """Validate user-data and return the findings.

    Only cloud-configs are inspected; scripts, Ignition configs and empty
    user-data yield an empty report.
    """
    text = _as_text(userdata)
    if not text:
        return Report()
    if is_script(text) or is_ignition_config(text):
        return Report()
    if is_cloud_config(text):
        return validate_cloud_config(userdata, RULES)
    report = Report()
    report.error(1, _NOT_CLOUD_CONFIG)
    return report


def validate_cloud_config(config: bytes | str, rules: Iterable[Rule] = RULES) -> Report:
    """Run every rule against a cloud-config.

    Any failure while parsing or while running a rule raises ValidationError.
    """
    report = Report()
    try:
        cfg = parse_cloud_config(config, report)
        for rule in rules:
            rule(cfg, report)
    except ValidationError:
        raise
    except Exception as exc:
        raise ValidationError(str(exc)) from exc
    return report


def parse_cloud_config(cfg: bytes | str, report: Report) -> Node:
    """Parse a cloud-config into a node tree.

    YAML syntax problems are recorded in *report* and an invalid node is
    returned. Problems that cannot be reported raise ValidationError.
    """
    data = _as_bytes(cfg)
    try:
        weak = yaml.load(data, Loader=_WeakLoader)
    except yaml.MarkedYAMLError as exc:
        message = exc.problem or exc.context
        if not message:
            raise ValidationError("couldn't parse yaml error") from exc
        mark = exc.problem_mark or exc.context_mark
        line = mark.line + 1 if mark is not None else 1
        report.error(line, _QUOTED_CHAR.sub("found character that", message))
        return Node()
    except yaml.YAMLError as exc:
        message = str(exc)
        if not message:
            raise ValidationError("couldn't parse yaml error") from exc
        report.error(1, message)
        return Node()

    if not isinstance(weak, dict):
        weak = {}
    w = normalize_node_names(new_node(weak, new_context(data)))

    strong = new_cloud_config(data)
    s = new_node(strong, new_context(data))

    return coerce_nodes(w, s)


def coerce_nodes(weak: Node, strong: Node) -> Node:
    """Merge the loosely typed tree with the schema-typed one.

    Leaves take the schema-typed value where both are present and of
    compatible kinds; everything else, including names and lines, comes from
    the loosely typed tree.
    """
    value, value_type = weak.value, weak.value_type
    if (
        not weak.children
        and not strong.children
        and weak.is_valid
        and strong.is_valid
        and is_compatible(weak.kind, strong.kind)
    ):
        value, value_type = strong.value, strong.value_type

    return Node(
        name=weak.name,
        line=weak.line,
        field=weak.field,
        value=value,
        value_type=value_type,
        children=[coerce_nodes(child, strong.child(child.name)) for child in weak.children],
    )


def normalize_node_names(node: Node) -> Node:
    """Return a copy of the tree with '-' replaced by '_' in every name."""
    return dataclasses.replace(
        node,
        name=node.name.replace("-", "_"),
        children=[normalize_node_names(child) for child in node.children],
    )