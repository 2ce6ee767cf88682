"""The validation rules run against a parsed cloud-config."""

from __future__ import annotations

import dataclasses
import json
import posixpath
import string
import typing
from collections.abc import Callable
from typing import Any

from cloudconf.config import CloudConfig, ErrorValid, assert_valid
from cloudconf.context import Context, new_context
from cloudconf.decode import DecodeError, decode_content
from cloudconf.node import Kind, Node, new_node, to_node
from cloudconf.report import Report

Rule = Callable[[Node, Report], None]


def check_discovery_url(cfg: Node, report: Report) -> None:
    """Warn when the etcd discovery value is not a valid request URL."""
    node = cfg.child("coreos").child("etcd").child("discovery")
    if not node.is_valid:
        return
    try:
        _check_request_uri(_text(node))
    except ValueError:
        report.warning(node.line, "discovery URL is not valid")


def check_encoding(cfg: Node, report: Report) -> None:
    """Report write_files whose content cannot be decoded with their encoding."""
    for item in cfg.child("write_files").children:
        encoding = item.child("encoding")
        if not encoding.is_valid:
            continue
        content = item.child("content")
        name = _text(encoding)
        try:
            decode_content(_raw(content), name)
        except DecodeError:
            report.error(content.line, f"content cannot be decoded as {_quote(name)}")


def check_structure(cfg: Node, report: Report) -> None:
    """Compare the config with the known layout: unknown, deprecated or mistyped keys."""
    _check_node_structure(cfg, _empty_config(), report)


def check_validity(cfg: Node, report: Report) -> None:
    """Report values that do not match the patterns their options allow."""
    _check_node_validity(cfg, _empty_config(), report)


def check_write_files(cfg: Node, report: Report) -> None:
    """Report files that would be written under the read-only /usr."""
    for item in cfg.child("write_files").children:
        path = item.child("path")
        if not path.is_valid:
            continue
        if _dir(_text(path)).startswith("/usr"):
            report.error(path.line, "file cannot be written to a read-only filesystem")


def check_write_files_under_coreos(cfg: Node, report: Report) -> None:
    """Note a write_files section misplaced under coreos."""
    node = cfg.child("coreos").child("write_files")
    if node.is_valid:
        report.info(node.line, "write_files doesn't belong under coreos")


def is_compatible(n: Kind, g: Kind) -> bool:
    """Tell whether a YAML value of kind *n* can stand for an option of kind *g*."""
    if g is Kind.STRING:
        return n in (Kind.STRING, Kind.INT, Kind.FLOAT64, Kind.BOOL)
    if g is Kind.STRUCT:
        return n in (Kind.STRUCT, Kind.MAP)
    if g is Kind.FLOAT64:
        return n in (Kind.FLOAT64, Kind.INT)
    if g in (Kind.BOOL, Kind.SLICE, Kind.INT):
        return n is g
    raise TypeError(f"is_compatible(): unhandled kind {g}")


RULES: tuple[Rule, ...] = (
    check_discovery_url,
    check_encoding,
    check_structure,
    check_validity,
    check_write_files,
    check_write_files_under_coreos,
)


def _empty_config() -> Node:
    return new_node(CloudConfig(), new_context(b""))


def _element_node(g: Node) -> Node:
    args = typing.get_args(g.value_type)
    item = args[0] if args else Any
    return to_node(_zero(item), Context())


def _zero(tp: Any) -> Any:
    if tp is Any:
        return None
    if typing.get_origin(tp) is list:
        return []
    if dataclasses.is_dataclass(tp) or isinstance(tp, type):
        return tp()
    return None


def _check_node_structure(n: Node, g: Node, report: Report) -> None:
    if not is_compatible(n.kind, g.kind):
        report.warning(n.line, f"incorrect type for {_quote(n.name)} (want {g.human_type()})")
        return

    kind = g.kind
    if kind is Kind.STRUCT:
        for child in n.children:
            known = g.child(child.name)
            if known.is_valid:
                if known.field is not None and known.field.deprecated:
                    report.warning(
                        child.line,
                        f"deprecated key {_quote(child.name)} ({known.field.deprecated})",
                    )
                _check_node_structure(child, known, report)
            else:
                report.warning(child.line, f"unrecognized key {_quote(child.name)}")
    elif kind is Kind.SLICE:
        for child in n.children:
            _check_node_structure(child, _element_node(g), report)
    elif kind not in (Kind.STRING, Kind.INT, Kind.FLOAT64, Kind.BOOL):
        raise TypeError(f"check_node_structure(): unhandled kind {kind}")


def _check_node_validity(n: Node, g: Node, report: Report) -> None:
    valid = g.field.valid if g.field is not None else None
    try:
        assert_valid(n.value, valid)
    except ErrorValid as exc:
        report.error(n.line, f"invalid value {exc.value}")

    kind = g.kind
    if kind is Kind.STRUCT:
        for child in n.children:
            known = g.child(child.name)
            if known.is_valid:
                _check_node_validity(child, known, report)
    elif kind is Kind.SLICE:
        for child in n.children:
            _check_node_validity(child, _element_node(g), report)
    elif kind not in (Kind.STRING, Kind.INT, Kind.FLOAT64, Kind.BOOL):
        raise TypeError(f"check_node_validity(): unhandled kind {kind}")


def _text(node: Node) -> str:
    value = node.value
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "surrogateescape")
    return f"<{node.human_type()} Value>"


def _raw(node: Node) -> bytes:
    if isinstance(node.value, (bytes, bytearray)):
        return bytes(node.value)
    return _text(node).encode("utf-8", "surrogateescape")


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _dir(path: str) -> str:
    cleaned = posixpath.normpath(posixpath.dirname(path))
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


_ALNUM = frozenset(string.ascii_letters + string.digits)
_HOST_CHARS = _ALNUM | frozenset("-._~!$&'()*+,;=:[]<>\"%")
_USERINFO_CHARS = _ALNUM | frozenset("-._:~!$&'()*+,;=%@")
_HEX = frozenset(string.hexdigits)


def _check_request_uri(raw: str) -> None:
    """Raise ValueError unless *raw* is an absolute URL or an absolute path."""
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in raw):
        raise ValueError("invalid control character in URL")
    if raw == "":
        raise ValueError("empty url")
    if raw == "*":
        return

    scheme, rest = _split_scheme(raw)
    if rest.endswith("?") and rest.count("?") == 1:
        rest = rest[:-1]
    else:
        rest = rest.partition("?")[0]

    if not rest.startswith("/"):
        if scheme:
            return
        raise ValueError("invalid URI for request")

    if scheme and rest.startswith("//"):
        authority, slash, path = rest[2:].partition("/")
        _check_authority(authority)
        rest = slash + path
    _check_escapes(rest)


def _split_scheme(raw: str) -> tuple[str, str]:
    for index, ch in enumerate(raw):
        if ch.isascii() and ch.isalpha():
            continue
        if ch.isascii() and (ch.isdigit() or ch in "+-."):
            if index == 0:
                return "", raw
            continue
        if ch == ":":
            if index == 0:
                raise ValueError("missing protocol scheme")
            return raw[:index].lower(), raw[index + 1 :]
        return "", raw
    return "", raw


def _check_authority(authority: str) -> None:
    userinfo, at, host = authority.rpartition("@")
    if at:
        if any(ch.isascii() and ch not in _USERINFO_CHARS for ch in userinfo):
            raise ValueError("net/url: invalid userinfo")
        _check_escapes(userinfo)
    _check_host(host)


def _check_host(host: str) -> None:
    if host.startswith("["):
        end = host.find("]")
        if end < 0:
            raise ValueError("missing ']' in host")
        port = host[end + 1 :]
        if not _valid_optional_port(port):
            raise ValueError(f"invalid port {port!r} after host")
    else:
        colon = host.rfind(":")
        if colon != -1 and not _valid_optional_port(host[colon:]):
            raise ValueError(f"invalid port {host[colon:]!r} after host")
    if any(ch.isascii() and ch not in _HOST_CHARS for ch in host):
        raise ValueError("invalid character in host name")
    _check_escapes(host)


def _valid_optional_port(port: str) -> bool:
    if port == "":
        return True
    return port.startswith(":") and all(ch in string.digits for ch in port[1:])


def _check_escapes(text: str) -> None:
    index = text.find("%")
    while index != -1:
        code = text[index + 1 : index + 3]
        if len(code) != 2 or not set(code) <= _HEX:
            raise ValueError(f"invalid URL escape {text[index:index + 3]!r}")
        index = text.find("%", index + 3)