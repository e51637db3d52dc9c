"""Assemble outbound messages in the raw form Gmail's send/draft APIs accept."""

from __future__ import annotations

import base64
import secrets
import time
from typing import List, Optional

from .decoder import b64url_encode
from .types import MimeOptions

CRLF = "\r\n"


def new_boundary() -> str:
    """Millisecond timestamp plus a random token; unique per message."""
    return f"----boundary_{int(time.time() * 1000)}_{secrets.token_hex(8)}"


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _single_part(lines: List[str], content_type: str, text: str) -> None:
    lines.append(f"Content-Type: {content_type}; charset=UTF-8")
    lines.append("Content-Transfer-Encoding: base64")
    lines.append("")
    lines.append(_b64(text))


def build_mime_lines(options: MimeOptions, *, boundary: Optional[str] = None) -> List[str]:
    """
    Header and body lines in emission order, before CRLF joining.
    """
    lines: List[str] = [f"To: {options.to}"]
    if options.cc:
        lines.append(f"Cc: {options.cc}")
    if options.bcc:
        lines.append(f"Bcc: {options.bcc}")
    lines.append(f"Subject: {options.subject}")
    if options.in_reply_to:
        lines.append(f"In-Reply-To: {options.in_reply_to}")
    if options.references:
        lines.append(f"References: {options.references}")
    lines.append("MIME-Version: 1.0")

    if options.text_body and options.html_body:
        boundary = boundary or new_boundary()
        lines.append(f'Content-Type: multipart/alternative; boundary="{boundary}"')
        lines.append("")
        lines.append(f"--{boundary}")
        _single_part(lines, "text/plain", options.text_body)
        lines.append(f"--{boundary}")
        _single_part(lines, "text/html", options.html_body)
        lines.append(f"--{boundary}--")
    elif options.html_body:
        _single_part(lines, "text/html", options.html_body)
    else:
        _single_part(lines, "text/plain", options.text_body or "")
    return lines


def build_mime_message(options: MimeOptions, *, boundary: Optional[str] = None) -> str:
    """
    Serialize `options` into a transport-safe RawMessage (URL-safe base64,
    padding stripped) suitable for `{"raw": ...}` request bodies.
    Pass `boundary` to make multipart output reproducible.
    """
    raw = CRLF.join(build_mime_lines(options, boundary=boundary))
    return b64url_encode(raw)


__all__ = ["build_mime_lines", "build_mime_message", "new_boundary"]
