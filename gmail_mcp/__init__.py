"""Gmail operations as agent tools: MIME building, payload decoding, MCP wiring."""

__version__ = "1.0.0"

from .client import GmailClient
from .decoder import b64url_decode, b64url_encode, get_header
from .mime import build_mime_message
from .parser import extract_attachments, extract_body, parse_message, strip_html
from .types import AttachmentInfo, EmailDetail, ExtractedBody, MimeOptions

__all__ = [
    "AttachmentInfo",
    "EmailDetail",
    "ExtractedBody",
    "GmailClient",
    "MimeOptions",
    "b64url_decode",
    "b64url_encode",
    "build_mime_message",
    "extract_attachments",
    "extract_body",
    "get_header",
    "parse_message",
    "strip_html",
]
