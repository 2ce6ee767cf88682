import base64
import gzip
import logging

import pytest

from cloudconf.config import CloudConfig
from cloudconf.decode import DecodeError
from cloudconf.userdata import decompress_if_gzip, merge_configs


@pytest.mark.parametrize(
    "cc, hostname, keys, expected",
    [
        (None, "", None, CloudConfig()),
        (CloudConfig(), "", None, CloudConfig()),
        (
            CloudConfig(ssh_authorized_keys=["abc", "def"], hostname="cc-host"),
            "",
            None,
            CloudConfig(ssh_authorized_keys=["abc", "def"], hostname="cc-host"),
        ),
        (
            CloudConfig(),
            "md-host",
            {"key": "ghi"},
            CloudConfig(ssh_authorized_keys=["ghi"], hostname="md-host"),
        ),
        (
            None,
            "md-host",
            {"key": "ghi"},
            CloudConfig(ssh_authorized_keys=["ghi"], hostname="md-host"),
        ),
        (
            CloudConfig(ssh_authorized_keys=["abc", "def"], hostname="cc-host"),
            "md-host",
            None,
            CloudConfig(ssh_authorized_keys=["abc", "def"], hostname="cc-host"),
        ),
        (
            CloudConfig(ssh_authorized_keys=["abc", "def"], hostname="cc-host"),
            "md-host",
            {"key": "ghi"},
            CloudConfig(ssh_authorized_keys=["abc", "def", "ghi"], hostname="cc-host"),
        ),
        (
            CloudConfig(hostname="cc-host"),
            "",
            {"zaphod": "beeblebrox"},
            CloudConfig(hostname="cc-host", ssh_authorized_keys=["beeblebrox"]),
        ),
        (
            CloudConfig(hostname="cc-host", manage_etc_hosts="lolz"),
            "md-host",
            None,
            CloudConfig(hostname="cc-host", manage_etc_hosts="lolz"),
        ),
    ],
)
def test_merge_configs(cc, hostname, keys, expected):
    assert merge_configs(cc, hostname, keys) == expected


def test_merge_configs_leaves_input_untouched():
    cc = CloudConfig(ssh_authorized_keys=["abc"])
    out = merge_configs(cc, "", {"key": "ghi"})
    assert out.ssh_authorized_keys == ["abc", "ghi"]
    assert cc.ssh_authorized_keys == ["abc"]


def test_merge_configs_warns_on_hostname_conflict(caplog):
    with caplog.at_level(logging.WARNING):
        out = merge_configs(CloudConfig(hostname="cc-host"), "md-host", None)
    assert out.hostname == "cc-host"
    assert "overrides metadata hostname (md-host)" in caplog.text


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"", b""),
        (base64.b64decode("H4sIAJWV/VUAA1NOzskvTdFNzs9Ly0wHABt6mQENAAAA"), b"#cloud-config"),
        (b"#cloud-config", b"#cloud-config"),
    ],
)
def test_decompress_if_gzip(data, expected):
    assert decompress_if_gzip(data) == expected


def test_decompress_if_gzip_corrupt():
    with pytest.raises(DecodeError):
        decompress_if_gzip(base64.b64decode("H4sCORRUPT=="))


def test_decompress_if_gzip_round_trip():
    payload = b"#cloud-config\nhostname: example\n"
    assert decompress_if_gzip(gzip.compress(payload)) == payload