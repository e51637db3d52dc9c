"""Helpers for decoding Gmail payload data and reading headers."""

from __future__ import annotations

import base64
import binascii
from typing import Dict, Iterable, Optional


def b64url_decode(data: str | bytes | None) -> bytes:
    """
    Decode the URL-safe base64 blobs Gmail returns (without guaranteed padding).
    Malformed input yields empty bytes.
    """
    if not data:
        return b""
    if isinstance(data, str):
        try:
            raw = data.encode("ascii")
        except UnicodeEncodeError:
            return b""
    else:
        raw = data
    padding = (-len(raw)) % 4
    if padding:
        raw += b"=" * padding
    try:
        return base64.urlsafe_b64decode(raw)
    except (binascii.Error, ValueError):
        return b""


def b64url_encode(data: str | bytes) -> str:
    """
    Encode to the transport-safe alphabet Gmail expects for `raw` uploads:
    `-` and `_` instead of `+` and `/`, no trailing padding.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def decode_text(data: str | bytes | None) -> str:
    """Base64url-decode a body blob into UTF-8 text, replacing bad bytes."""
    return b64url_decode(data).decode("utf-8", "replace")


def get_header(headers: Optional[Iterable[Dict]], name: str) -> Optional[str]:
    """
    Return the value of the first header matching `name` case-insensitively.
    """
    if not headers:
        return None
    wanted = name.lower()
    for header in headers:
        if (header.get("name") or "").lower() == wanted:
            return header.get("value")
    return None


__all__ = ["b64url_decode", "b64url_encode", "decode_text", "get_header"]
