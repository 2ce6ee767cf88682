"""Preparing fetched user-data and combining it with datasource meta-data."""

from __future__ import annotations

import dataclasses
import gzip
import logging
import zlib
from collections.abc import Mapping

from cloudconf.config import CloudConfig
from cloudconf.decode import DecodeError

_log = logging.getLogger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"


def decompress_if_gzip(data: bytes) -> bytes:
    """Return *data* decompressed if it is gzip, otherwise unchanged.

    Raises DecodeError for gzip data that cannot be decompressed.
    """
    if not data.startswith(_GZIP_MAGIC):
        return data
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecodeError(f"unable to decompress user-data: {exc}") from exc


def merge_configs(
    cc: CloudConfig | None,
    hostname: str = "",
    ssh_public_keys: Mapping[str, str] | None = None,
) -> CloudConfig:
    """Merge meta-data onto a cloud-config; user-data settings take precedence.

    The hostname is taken from meta-data only when the cloud-config has none;
    meta-data SSH keys are appended to the authorized keys. *cc* is left as is.
    """
    if cc is None:
        out = CloudConfig()
    else:
        out = dataclasses.replace(cc, ssh_authorized_keys=list(cc.ssh_authorized_keys))

    if hostname:
        if out.hostname:
            _log.warning(
                "user-data hostname (%s) overrides metadata hostname (%s)",
                out.hostname,
                hostname,
            )
        else:
            out.hostname = hostname

    if ssh_public_keys:
        out.ssh_authorized_keys.extend(ssh_public_keys.values())
    return out