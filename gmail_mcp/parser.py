from __future__ import annotations
from typing import Dict, Iterator, List
import re
from .types import AttachmentInfo, EmailDetail, ExtractedBody
from .decoder import decode_text, get_header

# ------------------ Public API ------------------

def parse_message(msg: Dict) -> EmailDetail:
    """
    Build an EmailDetail from a Gmail API message dict returned by:
      gmail.users().messages().get(userId="me", id=..., format="full")
    """
    payload = msg.get("payload") or {}
    headers = payload.get("headers")
    extracted = extract_body(payload)

    return EmailDetail(
        id=msg.get("id") or "",
        thread_id=msg.get("threadId") or "",
        label_ids=list(msg.get("labelIds") or []),
        from_=get_header(headers, "From") or "",
        to=get_header(headers, "To") or "",
        cc=get_header(headers, "Cc") or "",
        subject=get_header(headers, "Subject") or "",
        date=get_header(headers, "Date") or "",
        body=resolve_body(extracted),
        html_body=extracted.html,
        attachments=extract_attachments(payload),
    )

def extract_body(payload: Dict | None) -> ExtractedBody:
    """
    Pick the first non-empty text/plain and text/html bodies in pre-order.
    Later candidates for a field that is already filled are never decoded.
    """
    found = ExtractedBody()
    for part in walk_parts(payload):
        if found.text and found.html:
            break
        mime = part.get("mimeType")
        data = (part.get("body") or {}).get("data")
        if not data:
            continue
        if mime == "text/plain" and not found.text:
            found.text = decode_text(data)
        elif mime == "text/html" and not found.html:
            found.html = decode_text(data)
    return found

def extract_attachments(payload: Dict | None) -> List[AttachmentInfo]:
    """
    Collect every part that names a file and points at an attachmentId.
    """
    atts: List[AttachmentInfo] = []
    for part in walk_parts(payload):
        filename = part.get("filename") or ""
        body = part.get("body") or {}
        attachment_id = body.get("attachmentId")
        if filename and attachment_id:
            atts.append(AttachmentInfo(
                filename=filename,
                mime_type=part.get("mimeType") or "application/octet-stream",
                size=body.get("size") or 0,
                attachment_id=attachment_id,
            ))
    return atts

def resolve_body(extracted: ExtractedBody) -> str:
    """Plain text if present, otherwise the HTML reduced to text."""
    if extracted.text:
        return extracted.text
    if extracted.html:
        return strip_html(extracted.html)
    return ""

# ------------------ HTML reduction ------------------

_BR        = re.compile(r"<br\s*/?>", re.I)
_P_CLOSE   = re.compile(r"</p>", re.I)
_DIV_CLOSE = re.compile(r"</div>", re.I)
_TAG       = re.compile(r"<[^>]+>")
_HEX_REF   = re.compile(r"&#x([0-9a-fA-F]+);")
_DEC_REF   = re.compile(r"&#(\d+);")
_NEWLINES  = re.compile(r"\n{3,}")

# UTF-16 surrogate halves written as references, hex or decimal
_HIGH_REF = r"&#(x0*d[89ab][0-9a-f]{2}|0*(?:5529[6-9]|55[3-9]\d\d|56[0-2]\d\d|563[01]\d));"
_LOW_REF  = r"&#(x0*d[c-f][0-9a-f]{2}|0*(?:5632\d|563[3-9]\d|56[4-9]\d\d|57[0-2]\d\d|573[0-3]\d|5734[0-3]));"
_SURROGATE_PAIR = re.compile(_HIGH_REF + _LOW_REF, re.I)

_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&#39;", "'"),
)

def strip_html(html: str) -> str:
    """
    Best-effort HTML to text. Not a parser: script/style contents leak through.
    """
    text = _BR.sub("\n", html)
    text = _P_CLOSE.sub("\n\n", text)
    text = _DIV_CLOSE.sub("\n", text)
    text = _TAG.sub("", text)
    for entity, repl in _ENTITIES:
        text = text.replace(entity, repl)
    text = _SURROGATE_PAIR.sub(_surrogate_pair, text)
    text = _HEX_REF.sub(lambda m: _char_ref(m, 16), text)
    text = _DEC_REF.sub(lambda m: _char_ref(m, 10), text)
    text = _NEWLINES.sub("\n\n", text)
    return text.strip()

# ------------------ utilities ------------------

def walk_parts(payload: Dict | None) -> Iterator[Dict]:
    """
    Yield the Gmail MIME tree (payload + parts[]) depth-first, parents first,
    children left to right.
    """
    if not payload:
        return
    stack = [payload]
    while stack:
        p = stack.pop()
        yield p
        # reversed so the leftmost child is popped next
        stack.extend(reversed(p.get("parts") or []))

def _char_ref(match: re.Match, base: int) -> str:
    try:
        code = int(match.group(1), base)
    except ValueError:
        return match.group(0)
    # lone surrogates and values past U+10FFFF stay as written
    if 0xD800 <= code <= 0xDFFF or code > 0x10FFFF:
        return match.group(0)
    return chr(code)

def _ref_code(token: str) -> int:
    return int(token[1:], 16) if token[0] in "xX" else int(token)

def _surrogate_pair(match: re.Match) -> str:
    units = "".join(chr(_ref_code(token)) for token in match.groups())
    return units.encode("utf-16-le", "surrogatepass").decode("utf-16-le")
