import pytest

from cloudconf.node import Node
from cloudconf.report import Entry, EntryKind, Report
from cloudconf.rules import RULES
from cloudconf.validate import (
    ValidationError,
    coerce_nodes,
    normalize_node_names,
    parse_cloud_config,
    validate,
    validate_cloud_config,
)


@pytest.mark.parametrize(
    "config, entries",
    [
        ("", []),
        ("\t", [Entry(EntryKind.ERROR, "found character that cannot start any token", 1)]),
        ("a:\na", [Entry(EntryKind.ERROR, "could not find expected ':'", 2)]),
        ("#hello\na:\na", [Entry(EntryKind.ERROR, "could not find expected ':'", 3)]),
    ],
)
def test_parse_cloud_config_reports(config, entries):
    report = Report()
    parse_cloud_config(config.encode(), report)
    assert report.entries == entries


def test_parse_cloud_config_error_returns_invalid_node():
    report = Report()
    node = parse_cloud_config(b"a:\na", report)
    assert node.is_valid is False
    assert len(report.entries) == 1


def test_parse_cloud_config_prefers_typed_values():
    report = Report()
    node = parse_cloud_config(b"write_files:\n  - permissions: 0744", report)
    perms = node.child("write_files").child("write_files[0]").child("permissions")
    assert perms.value == "0744"
    assert perms.line == 2
    assert report.entries == []


def test_parse_cloud_config_normalizes_names():
    node = parse_cloud_config(b"coreos:\n  update:\n    reboot-strategy: off", Report())
    strategy = node.child("coreos").child("update").child("reboot_strategy")
    assert strategy.value == "off"
    assert strategy.line == 3


def test_validate_cloud_config_rule_failure():
    def broken(_cfg, _report):
        raise RuntimeError("something happened")

    with pytest.raises(ValidationError, match="something happened"):
        validate_cloud_config(b"", [broken])


@pytest.mark.parametrize(
    "config, entries",
    [
        ("write_files:\n  - permissions: 0744", []),
        ("write_files:\n  - permissions: '0744'", []),
        ("write_files:\n  - permissions: 744", []),
        ("write_files:\n  - permissions: '744'", []),
        ("coreos:\n  update:\n    reboot-strategy: off", []),
        (
            "coreos:\n  update:\n    reboot-strategy: false",
            [Entry(EntryKind.ERROR, "invalid value false", 3)],
        ),
    ],
)
def test_validate_cloud_config(config, entries):
    report = validate_cloud_config(config.encode(), RULES)
    assert report == Report(entries)


@pytest.mark.parametrize(
    "config, entries",
    [
        ("", []),
        ("#!/bin/bash\necho hey", []),
        ("{}", [Entry(EntryKind.ERROR, 'must be "#cloud-config" or begin with "#!"', 1)]),
        ('{"ignitionVersion":0}', []),
        ('{"ignitionVersion":1}', []),
    ],
)
def test_validate(config, entries):
    assert validate(config.encode()) == Report(entries)


def test_validate_reports_lines_after_header():
    report = validate(b"#cloud-config\ncoreos:\n  etcd:\n    proxy: hi")
    assert report.entries == [
        Entry(
            EntryKind.WARNING,
            'deprecated key "proxy" (etcd2 options no longer work for etcd)',
            4,
        )
    ]


def test_validate_keeps_dates_as_text():
    assert validate("#cloud-config\nhostname: 2015-01-01").entries == []


def test_validate_full_config_is_clean():
    config = """#cloud-config
hostname: test

coreos:
  etcd:
    name:      node001
    discovery: https://discovery.etcd.io/disco
    addr:      $public_ipv4:4001
    peer-addr: $private_ipv4:7001
  fleet:
    verbosity: 2
    metadata:  "hi"
  update:
    reboot-strategy: off
  units:
    - name:    hi.service
      command: start
      enable:  true
    - name:    bye.service
      command: stop

ssh_authorized_keys:
  - ssh-rsa placeholder
  - ssh-rsa placeholder

users:
  - name: me

write_files:
  - path: /etc/yes
    content: "Hi"

manage_etc_hosts: localhost"""
    assert validate(config.encode()).entries == []


def test_coerce_nodes_uses_compatible_strong_leaf():
    weak = Node(name="perm", line=4, value=484)
    strong = Node(name="perm", value="0744")
    result = coerce_nodes(weak, strong)
    assert result.value == "0744"
    assert result.line == 4
    assert result.name == "perm"


def test_coerce_nodes_keeps_incompatible_weak_leaf():
    weak = Node(name="enable", line=3, value=4)
    strong = Node(name="enable", value=False)
    assert coerce_nodes(weak, strong).value == 4


def test_coerce_nodes_recurses_by_name():
    weak = Node(name="", value={}, children=[Node(name="a", line=1, value=5)])
    strong = Node(name="", value={}, children=[Node(name="a", value="5")])
    result = coerce_nodes(weak, strong)
    assert [c.value for c in result.children] == ["5"]
    assert result.value == {}


def test_normalize_node_names():
    tree = Node(name="a-b", children=[Node(name="c-d-e", line=2)])
    result = normalize_node_names(tree)
    assert result.name == "a_b"
    assert result.children[0].name == "c_d_e"
    assert result.children[0].line == 2