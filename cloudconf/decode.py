"""Decoding of file contents carried in a cloud-config."""

from __future__ import annotations

import base64
import binascii
import gzip
import io
import zlib

_GZIP_MAGIC = b"\x1f\x8b"
_GZIP_DEFLATE = 8
_GZIP_HEADER_LEN = 10
_READ_SIZE = 64 * 1024


class DecodeError(ValueError):
    """Raised when content cannot be decoded with the requested encoding."""


def _as_bytes(content: str | bytes) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)


def decode_base64_content(content: str | bytes) -> bytes:
    """Decode standard, padded base64; line breaks inside the text are ignored."""
    data = _as_bytes(content).replace(b"\r", b"").replace(b"\n", b"")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"unable to decode base64: {exc}") from exc


def decode_gzip_content(content: str | bytes) -> bytes:
    """Decompress gzip data.

    A malformed header is an error. Once the header is accepted, whatever can
    be decompressed is returned, even if the stream is cut short or corrupt
    further on.
    """
    data = _as_bytes(content)
    if len(data) < _GZIP_HEADER_LEN:
        raise DecodeError("unable to decode gzip: unexpected end of data")
    if not data.startswith(_GZIP_MAGIC) or data[2] != _GZIP_DEFLATE:
        raise DecodeError("unable to decode gzip: invalid header")

    out = bytearray()
    with gzip.GzipFile(fileobj=io.BytesIO(data)) as stream:
        try:
            while chunk := stream.read1(_READ_SIZE):
                out += chunk
        except (EOFError, OSError, zlib.error):
            pass
    return bytes(out)


def decode_content(content: str | bytes, encoding: str) -> bytes:
    """Decode *content* according to a write_files ``encoding`` value."""
    if encoding == "":
        return _as_bytes(content)
    if encoding in ("b64", "base64"):
        return decode_base64_content(content)
    if encoding in ("gz", "gzip"):
        return decode_gzip_content(content)
    if encoding in ("gz+base64", "gzip+base64", "gz+b64", "gzip+b64"):
        return decode_gzip_content(decode_base64_content(content))
    raise DecodeError(f'unsupported encoding "{encoding}"')