"""Gmail operations exposed to agent tooling, built on an authenticated API handle."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .decoder import get_header
from .mime import build_mime_message
from .parser import parse_message
from .types import (
    AttachmentData,
    CreatedDraft,
    DraftSummary,
    EmailDetail,
    EmailSummary,
    LabelInfo,
    MimeOptions,
    SentMessage,
)

logger = logging.getLogger(__name__)

SUMMARY_HEADERS: Sequence[str] = ("From", "To", "Subject", "Date")
REPLY_HEADERS: Sequence[str] = ("From", "To", "Cc", "Subject", "Message-ID", "References")

# Gmail rejects batch requests with more than 100 calls.
BATCH_LIMIT = 100

FORWARD_SEPARATOR = "---------- Forwarded message ---------"


def reply_subject(subject: str) -> str:
    return subject if subject.startswith("Re:") else f"Re: {subject}"


def forward_subject(subject: str) -> str:
    return subject if subject.startswith("Fwd:") else f"Fwd: {subject}"


def reply_all_cc(original_to: str, original_cc: str) -> str:
    """
    Join the original To and Cc fields, skipping empty ones. Addresses that
    appear in both fields are kept twice.
    """
    return ", ".join(value for value in (original_to, original_cc) if value)


def chain_references(references: str, message_id: str) -> str:
    return f"{references} {message_id}" if references else message_id


def forward_body(original: EmailDetail) -> str:
    return "\n".join([
        "",
        FORWARD_SEPARATOR,
        f"From: {original.from_}",
        f"Date: {original.date}",
        f"Subject: {original.subject}",
        f"To: {original.to}",
        "",
        original.body,
    ])


def _bodies(body: str, is_html: bool) -> Dict[str, Optional[str]]:
    if is_html:
        return {"text_body": None, "html_body": body}
    return {"text_body": body, "html_body": None}


def _params(**kwargs: Any) -> Dict[str, Any]:
    """Drop unset optional query parameters."""
    return {k: v for k, v in kwargs.items() if v is not None}


class GmailClient:
    """
    Facade over the Gmail v1 discovery client.

    `service` is the object returned by `googleapiclient.discovery.build`
    (see `gmail_mcp.auth.build_gmail_service`); it is only read, never
    reconfigured, so one instance can serve every request.
    """

    def __init__(self, service, user_id: str = "me") -> None:
        self.service = service
        self.user_id = user_id

    @property
    def _messages(self):
        return self.service.users().messages()

    @property
    def _drafts(self):
        return self.service.users().drafts()

    @property
    def _labels(self):
        return self.service.users().labels()

    # ------------------ batching ------------------

    def _execute_batch(self, requests: List[Any]) -> List[Dict[str, Any]]:
        """
        Run independent GET requests through Gmail batch calls and return the
        responses in the order given. Any failure fails the whole call with
        the earliest failing request's error.
        """
        responses: Dict[str, Any] = {}
        errors: Dict[str, Exception] = {}

        def _collect(request_id, response, exception):
            if exception is not None:
                errors[request_id] = exception
            else:
                responses[request_id] = response

        for start in range(0, len(requests), BATCH_LIMIT):
            batch = self.service.new_batch_http_request(callback=_collect)
            for offset, request in enumerate(requests[start:start + BATCH_LIMIT]):
                batch.add(request, request_id=str(start + offset))
            batch.execute()
            if errors:
                first = min(errors, key=int)
                logger.warning("Batch fetch failed at item %s of %d", first, len(requests))
                raise errors[first]

        return [responses[str(i)] for i in range(len(requests))]

    # ------------------ search & read ------------------

    def search_emails(
        self,
        query: str,
        max_results: int = 10,
        page_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        resp = self._messages.list(
            **_params(userId=self.user_id, q=query, maxResults=max_results, pageToken=page_token)
        ).execute()

        refs = resp.get("messages") or []
        details = self._execute_batch([
            self._messages.get(
                userId=self.user_id,
                id=ref["id"],
                format="metadata",
                metadataHeaders=list(SUMMARY_HEADERS),
            )
            for ref in refs
        ])
        emails = [self._summarize(detail) for detail in details]
        return {"emails": emails, "nextPageToken": resp.get("nextPageToken")}

    @staticmethod
    def _summarize(detail: Dict[str, Any]) -> EmailSummary:
        headers = (detail.get("payload") or {}).get("headers")
        return EmailSummary(
            id=detail.get("id") or "",
            thread_id=detail.get("threadId") or "",
            snippet=detail.get("snippet") or "",
            from_=get_header(headers, "From") or "",
            to=get_header(headers, "To") or "",
            subject=get_header(headers, "Subject") or "",
            date=get_header(headers, "Date") or "",
        )

    def get_email(self, message_id: str) -> EmailDetail:
        msg = self._messages.get(userId=self.user_id, id=message_id, format="full").execute()
        return parse_message(msg)

    # ------------------ send, reply, forward ------------------

    def _send(self, raw: str, thread_id: Optional[str] = None) -> SentMessage:
        request_body: Dict[str, Any] = {"raw": raw}
        if thread_id:
            request_body["threadId"] = thread_id
        res = self._messages.send(userId=self.user_id, body=request_body).execute()
        return SentMessage(message_id=res.get("id") or "", thread_id=res.get("threadId") or "")

    def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
        is_html: bool = False,
    ) -> SentMessage:
        raw = build_mime_message(
            MimeOptions(to=to, subject=subject, cc=cc, bcc=bcc, **_bodies(body, is_html))
        )
        return self._send(raw)

    def reply_to_email(
        self,
        message_id: str,
        body: str,
        is_html: bool = False,
        reply_all: bool = False,
    ) -> SentMessage:
        original = self._messages.get(
            userId=self.user_id,
            id=message_id,
            format="metadata",
            metadataHeaders=list(REPLY_HEADERS),
        ).execute()

        headers = (original.get("payload") or {}).get("headers")
        original_from = get_header(headers, "From") or ""
        original_to = get_header(headers, "To") or ""
        original_cc = get_header(headers, "Cc") or ""
        original_subject = get_header(headers, "Subject") or ""
        original_message_id = get_header(headers, "Message-ID") or ""
        original_references = get_header(headers, "References") or ""

        raw = build_mime_message(MimeOptions(
            to=original_from,
            subject=reply_subject(original_subject),
            cc=reply_all_cc(original_to, original_cc) if reply_all else None,
            in_reply_to=original_message_id,
            references=chain_references(original_references, original_message_id),
            **_bodies(body, is_html),
        ))
        return self._send(raw, thread_id=original.get("threadId"))

    def forward_email(self, message_id: str, to: str) -> SentMessage:
        original = self.get_email(message_id)
        raw = build_mime_message(MimeOptions(
            to=to,
            subject=forward_subject(original.subject),
            text_body=forward_body(original),
        ))
        return self._send(raw)

    # ------------------ drafts ------------------

    def create_draft(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
        is_html: bool = False,
    ) -> CreatedDraft:
        raw = build_mime_message(
            MimeOptions(to=to, subject=subject, cc=cc, bcc=bcc, **_bodies(body, is_html))
        )
        res = self._drafts.create(userId=self.user_id, body={"message": {"raw": raw}}).execute()
        return CreatedDraft(
            draft_id=res.get("id") or "",
            message_id=(res.get("message") or {}).get("id") or "",
        )

    def list_drafts(self, max_results: int = 10, page_token: Optional[str] = None) -> Dict[str, Any]:
        resp = self._drafts.list(
            **_params(userId=self.user_id, maxResults=max_results, pageToken=page_token)
        ).execute()

        refs = resp.get("drafts") or []
        details = self._execute_batch([
            self._drafts.get(userId=self.user_id, id=ref["id"], format="metadata")
            for ref in refs
        ])
        drafts = []
        for detail in details:
            message = detail.get("message") or {}
            headers = (message.get("payload") or {}).get("headers")
            drafts.append(DraftSummary(
                draft_id=detail.get("id") or "",
                message_id=message.get("id") or "",
                snippet=message.get("snippet") or "",
                subject=get_header(headers, "Subject") or "",
                to=get_header(headers, "To") or "",
            ))
        return {"drafts": drafts, "nextPageToken": resp.get("nextPageToken")}

    def send_draft(self, draft_id: str) -> SentMessage:
        res = self._drafts.send(userId=self.user_id, body={"id": draft_id}).execute()
        return SentMessage(message_id=res.get("id") or "", thread_id=res.get("threadId") or "")

    def delete_draft(self, draft_id: str) -> None:
        self._drafts.delete(userId=self.user_id, id=draft_id).execute()

    # ------------------ organisation ------------------

    def _modify(
        self,
        message_id: str,
        add: Sequence[str] = (),
        remove: Sequence[str] = (),
    ) -> None:
        body: Dict[str, List[str]] = {}
        if add:
            body["addLabelIds"] = list(add)
        if remove:
            body["removeLabelIds"] = list(remove)
        self._messages.modify(userId=self.user_id, id=message_id, body=body).execute()

    def trash_email(self, message_id: str) -> None:
        self._messages.trash(userId=self.user_id, id=message_id).execute()

    def archive_email(self, message_id: str) -> None:
        self._modify(message_id, remove=["INBOX"])

    def mark_as_read(self, message_id: str) -> None:
        self._modify(message_id, remove=["UNREAD"])

    def mark_as_unread(self, message_id: str) -> None:
        self._modify(message_id, add=["UNREAD"])

    # ------------------ labels ------------------

    def list_labels(self) -> List[LabelInfo]:
        res = self._labels.list(userId=self.user_id).execute()
        return [
            LabelInfo(
                id=label.get("id") or "",
                name=label.get("name") or "",
                type=label.get("type") or "",
                messages_total=label.get("messagesTotal"),
                messages_unread=label.get("messagesUnread"),
            )
            for label in res.get("labels") or []
        ]

    def create_label(
        self,
        name: str,
        background_color: Optional[str] = None,
        text_color: Optional[str] = None,
    ) -> LabelInfo:
        body: Dict[str, Any] = {
            "name": name,
            "labelListVisibility": "labelShow",
            "messageListVisibility": "show",
        }
        if background_color or text_color:
            body["color"] = {
                "backgroundColor": background_color or "#000000",
                "textColor": text_color or "#ffffff",
            }
        res = self._labels.create(userId=self.user_id, body=body).execute()
        return LabelInfo(
            id=res.get("id") or "",
            name=res.get("name") or "",
            type=res.get("type") or "user",
        )

    def apply_label(self, message_id: str, label_id: str) -> None:
        self._modify(message_id, add=[label_id])

    def remove_label(self, message_id: str, label_id: str) -> None:
        self._modify(message_id, remove=[label_id])

    # ------------------ attachments ------------------

    def get_attachment(self, message_id: str, attachment_id: str) -> AttachmentData:
        res = self._messages.attachments().get(
            userId=self.user_id, messageId=message_id, id=attachment_id
        ).execute()
        return AttachmentData(data=res.get("data") or "", size=res.get("size") or 0)


__all__ = [
    "BATCH_LIMIT",
    "GmailClient",
    "chain_references",
    "forward_body",
    "forward_subject",
    "reply_all_cc",
    "reply_subject",
]
