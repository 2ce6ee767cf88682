"""The cloud-config document: parsing, value validation and user-data detection."""

from __future__ import annotations

import dataclasses
import json
import logging
import math
import re
import typing
from dataclasses import dataclass
from typing import Any

import yaml
from yaml.constructor import SafeConstructor
from yaml.nodes import MappingNode, ScalarNode, SequenceNode

from cloudconf.decode import decode_content
from cloudconf.schema import (
    OEM,
    Etcd,
    Etcd2,
    EtcHosts,
    File,
    Flannel,
    Fleet,
    Locksmith,
    Unit,
    Update,
    User,
    field_specs,
    option,
)

_log = logging.getLogger(__name__)

HEADER = "#cloud-config"

_TAG = "tag:yaml.org,2002:"
_NULL = _TAG + "null"
_BOOL = _TAG + "bool"
_INT = _TAG + "int"
_FLOAT = _TAG + "float"
_BINARY = _TAG + "binary"

_constructor = SafeConstructor()


@dataclass
class CoreOS:
    etcd: Etcd = option("etcd", Etcd)
    etcd2: Etcd2 = option("etcd2", Etcd2)
    flannel: Flannel = option("flannel", Flannel)
    fleet: Fleet = option("fleet", Fleet)
    locksmith: Locksmith = option("locksmith", Locksmith)
    oem: OEM = option("oem", OEM)
    update: Update = option("update", Update)
    units: list[Unit] = option("units", list)


@dataclass
class CloudConfig:
    """A whole cloud-config document."""

    ssh_authorized_keys: list[str] = option("ssh_authorized_keys", list)
    coreos: CoreOS = option("coreos", CoreOS)
    write_files: list[File] = option("write_files", list)
    hostname: str = option("hostname")
    users: list[User] = option("users", list)
    manage_etc_hosts: EtcHosts = option("manage_etc_hosts")

    def decode(self) -> None:
        """Decode every write_files content in place and clear its encoding.

        Raises DecodeError for the first file that cannot be decoded.
        """
        for item in self.write_files:
            data = decode_content(item.content, item.encoding)
            item.content = data.decode("utf-8", "surrogateescape")
            item.encoding = ""

    def __str__(self) -> str:
        try:
            body = yaml.safe_dump(
                _to_plain(self),
                sort_keys=False,
                default_flow_style=False,
                allow_unicode=True,
            )
        except yaml.YAMLError:
            return ""
        return f"{HEADER}\n{body}"


class ErrorValid(ValueError):
    """A value that does not match the pattern its option allows."""

    def __init__(self, value: str, valid: str, field: str = "") -> None:
        super().__init__(value, valid, field)
        self.value = value
        self.valid = valid
        self.field = field

    def __str__(self) -> str:
        return (
            f"invalid value {_quote(self.value)} for option {_quote(self.field)} "
            f"(valid options: {_quote(self.valid)})"
        )


class Script(bytes):
    """The raw bytes of a user-data script."""


def is_cloud_config(userdata: str) -> bool:
    """Tell whether the first line of *userdata* is the cloud-config header."""
    header = userdata.split("\n", 1)[0].rstrip()
    return header == HEADER


def new_cloud_config(contents: str | bytes) -> CloudConfig:
    """Parse a YAML cloud-config.

    Dashes in keys are read as underscores, unknown keys and values of the
    wrong kind are ignored. Malformed YAML raises yaml.YAMLError.
    """
    node = yaml.compose(contents, Loader=yaml.SafeLoader)
    if node is None:
        return CloudConfig()
    try:
        return _convert(node, CloudConfig)
    except _Mismatch:
        return CloudConfig()


def is_zero(value: Any) -> bool:
    """Tell whether *value* is the empty value of its type; sections count field by field."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return all(is_zero(getattr(value, f.name)) for f in dataclasses.fields(value))
    try:
        return value == type(value)()
    except TypeError:
        return False


def assert_struct_valid(obj: Any) -> None:
    """Check every option of a section against its allowed pattern.

    Raises ErrorValid naming the first offending option.
    """
    for spec in field_specs(type(obj)):
        try:
            assert_valid(getattr(obj, spec.name), spec.valid)
        except ErrorValid as exc:
            exc.field = spec.name
            raise


def assert_valid(value: Any, valid: str | None) -> None:
    """Raise ErrorValid unless *value* is empty or matches the *valid* pattern."""
    if not valid or is_zero(value):
        return
    text = _format_value(value)
    if re.search(valid, text):
        return
    raise ErrorValid(text, valid)


def is_script(userdata: str) -> bool:
    """Tell whether *userdata* starts with a shebang line."""
    return userdata.split("\n", 1)[0].startswith("#!")


def new_script(userdata: str | bytes) -> Script:
    """Wrap *userdata* as a script."""
    if isinstance(userdata, str):
        return Script(userdata.encode("utf-8", "surrogateescape"))
    return Script(userdata)


def is_ignition_config(userdata: str) -> bool:
    """Tell whether *userdata* is a JSON document carrying an Ignition version."""
    try:
        doc = json.loads(userdata)
    except ValueError:
        return False
    if not isinstance(doc, dict):
        return False

    version = _lookup(doc, "ignitionVersion")
    if version is not None and (isinstance(version, bool) or not isinstance(version, int)):
        return False

    ignition = _lookup(doc, "ignition")
    inner_version = None
    if ignition is not None:
        if not isinstance(ignition, dict):
            return False
        inner_version = _lookup(ignition, "version")
        if inner_version is not None and not isinstance(inner_version, str):
            return False

    return version is not None or inner_version is not None


class _Mismatch(Exception):
    """A YAML node that does not fit the target type."""


def _lookup(doc: dict, key: str) -> Any:
    if key in doc:
        return doc[key]
    folded = key.casefold()
    for name, value in doc.items():
        if name.casefold() == folded:
            return value
    return None


def _zero(tp: Any) -> Any:
    if typing.get_origin(tp) is list:
        return []
    return tp()


def _convert(node: Any, tp: Any) -> Any:
    if isinstance(node, ScalarNode) and node.tag == _NULL:
        return _zero(tp)

    if dataclasses.is_dataclass(tp):
        if not isinstance(node, MappingNode):
            raise _Mismatch
        return _build(tp, node)

    if typing.get_origin(tp) is list:
        if not isinstance(node, SequenceNode):
            raise _Mismatch
        (item_type,) = typing.get_args(tp)
        items = []
        for child in node.value:
            try:
                items.append(_convert(child, item_type))
            except _Mismatch:
                continue
        return items

    if not isinstance(node, ScalarNode):
        raise _Mismatch
    tag = node.tag

    if tp is str:
        if tag == _BINARY:
            return _constructor.construct_yaml_binary(node).decode("utf-8", "surrogateescape")
        return node.value
    if tp is bool:
        if tag == _BOOL:
            return _constructor.construct_yaml_bool(node)
        raise _Mismatch
    if tp is int:
        if tag == _INT:
            return _constructor.construct_yaml_int(node)
        if tag == _FLOAT:
            number = _constructor.construct_yaml_float(node)
            if math.isfinite(number):
                return int(number)
        raise _Mismatch
    if tp is float:
        if tag == _INT:
            return float(_constructor.construct_yaml_int(node))
        if tag == _FLOAT:
            return _constructor.construct_yaml_float(node)
        raise _Mismatch
    raise _Mismatch


def _build(cls: Any, node: MappingNode) -> Any:
    _constructor.flatten_mapping(node)
    specs = {spec.key: spec for spec in field_specs(cls)}
    values = {}
    for key_node, value_node in node.value:
        if not isinstance(key_node, ScalarNode):
            continue
        key = key_node.value.replace("-", "_")
        spec = specs.get(key)
        if spec is None:
            _log.debug("ignoring unknown key %r in %s", key, cls.__name__)
            continue
        try:
            values[spec.name] = _convert(value_node, spec.type)
        except _Mismatch:
            continue
    return cls(**values)


def _to_plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {spec.key: _to_plain(getattr(value, spec.name)) for spec in field_specs(type(value))}
    if isinstance(value, list):
        return [_to_plain(item) for item in value]
    return value


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        text = repr(value)
        return text[:-2] if text.endswith(".0") else text
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_format_value(item) for item in value) + "]"
    return str(value)


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)