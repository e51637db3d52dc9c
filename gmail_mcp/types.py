from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class AttachmentInfo:
    """
    Metadata for a part whose content Gmail stores separately.
    Use `GmailClient.get_attachment(...)` with `attachment_id` to download it.
    """
    filename: str
    attachment_id: str
    mime_type: str = "application/octet-stream"
    size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "mimeType": self.mime_type,
            "size": self.size,
            "attachmentId": self.attachment_id,
        }


@dataclass
class ExtractedBody:
    text: str = ""                            # first text/plain part, "" if none
    html: str = ""                            # first text/html part, "" if none


@dataclass
class MimeOptions:
    """
    Input for `build_mime_message`. Empty strings count as absent.
    """
    to: str
    subject: str
    cc: Optional[str] = None
    bcc: Optional[str] = None
    text_body: Optional[str] = None
    html_body: Optional[str] = None
    in_reply_to: Optional[str] = None         # Message-ID being answered
    references: Optional[str] = None          # space-separated Message-ID chain


@dataclass
class EmailSummary:
    id: str
    thread_id: str
    snippet: str = ""
    from_: str = ""
    to: str = ""
    subject: str = ""
    date: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "threadId": self.thread_id,
            "snippet": self.snippet,
            "from": self.from_,
            "to": self.to,
            "subject": self.subject,
            "date": self.date,
        }


@dataclass
class EmailDetail:
    """
    Canonical view of a fully fetched message. `body` is plain text, falling
    back to a reduced rendering of `html_body` when no text part exists.
    """
    id: str
    thread_id: str
    label_ids: List[str] = field(default_factory=list)
    from_: str = ""
    to: str = ""
    cc: str = ""
    subject: str = ""
    date: str = ""
    body: str = ""
    html_body: str = ""
    attachments: List[AttachmentInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "threadId": self.thread_id,
            "labelIds": list(self.label_ids),
            "from": self.from_,
            "to": self.to,
            "cc": self.cc,
            "subject": self.subject,
            "date": self.date,
            "body": self.body,
            "htmlBody": self.html_body,
            "attachments": [a.to_dict() for a in self.attachments],
        }


@dataclass
class DraftSummary:
    draft_id: str
    message_id: str
    snippet: str = ""
    subject: str = ""
    to: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "draftId": self.draft_id,
            "messageId": self.message_id,
            "snippet": self.snippet,
            "subject": self.subject,
            "to": self.to,
        }


@dataclass
class LabelInfo:
    id: str
    name: str
    type: str = ""
    messages_total: Optional[int] = None
    messages_unread: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "name": self.name, "type": self.type}
        if self.messages_total is not None:
            out["messagesTotal"] = self.messages_total
        if self.messages_unread is not None:
            out["messagesUnread"] = self.messages_unread
        return out


@dataclass
class SentMessage:
    message_id: str
    thread_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"messageId": self.message_id, "threadId": self.thread_id}


@dataclass
class CreatedDraft:
    draft_id: str
    message_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"draftId": self.draft_id, "messageId": self.message_id}


@dataclass
class AttachmentData:
    data: str                                 # base64url, exactly as Gmail returns it
    size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"data": self.data, "size": self.size}
