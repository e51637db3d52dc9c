"""Tool table for the agent-facing surface and the uniform result envelope.

Every tool call returns either

    {"content": [{"type": "text", "text": "<pretty JSON>"}]}

or, for any failure,

    {"content": [{"type": "text", "text": "Error: <message>"}], "isError": True}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from googleapiclient.errors import HttpError

from .client import GmailClient

logger = logging.getLogger(__name__)

Handler = Callable[[GmailClient, Dict[str, Any]], Any]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: Handler


TOOLS: Dict[str, ToolSpec] = {}


def _tool(name: str, description: str, properties: Dict[str, Any], required: Sequence[str] = ()):
    schema = {"type": "object", "properties": properties, "required": list(required)}

    def register(fn: Handler) -> Handler:
        TOOLS[name] = ToolSpec(name, description, schema, fn)
        return fn

    return register


# ------------------ envelope ------------------

def _jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def success(payload: Any) -> Dict[str, Any]:
    text = json.dumps(_jsonable(payload), indent=2, ensure_ascii=False)
    return {"content": [{"type": "text", "text": text}]}


def failure(message: str) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": f"Error: {message}"}], "isError": True}


def error_message(exc: BaseException) -> str:
    if isinstance(exc, HttpError):
        return getattr(exc, "reason", None) or str(exc)
    return str(exc) or exc.__class__.__name__


def invoke(client: GmailClient, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Run one tool call; never raises."""
    spec = TOOLS.get(name)
    if spec is None:
        return failure(f"Unknown tool: {name}")
    logger.debug("Calling tool %s", name)
    try:
        return success(spec.handler(client, dict(arguments or {})))
    except Exception as exc:
        logger.warning("Tool %s failed: %s", name, exc, exc_info=logger.isEnabledFor(logging.DEBUG))
        return failure(error_message(exc))


# ------------------ argument helpers ------------------

def _require(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    if value is None:
        raise ValueError(f"Missing required parameter: {key}")
    if not isinstance(value, str):
        raise ValueError(f"Invalid parameter: {key} must be a string")
    return value


def _text(args: Dict[str, Any], key: str) -> Optional[str]:
    value = args.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"Invalid parameter: {key} must be a string")
    return value


def _flag(args: Dict[str, Any], key: str) -> bool:
    value = args.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"Invalid parameter: {key} must be a boolean")
    return value


def _count(args: Dict[str, Any], key: str, default: int = 10) -> int:
    value = args.get(key)
    if value is None:
        return default
    # bool is an int subclass; JSON clients may send 5.0
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
        raise ValueError(f"Invalid parameter: {key} must be an integer")
    return int(value)


def _string(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description}


_MESSAGE_ID = {"messageId": _string("The email message ID")}

_COMPOSE = {
    "to": _string("Recipient email address(es), comma-separated"),
    "subject": _string("Email subject"),
    "body": _string("Email body content"),
    "cc": _string("CC recipients, comma-separated"),
    "bcc": _string("BCC recipients, comma-separated"),
    "isHtml": {
        "type": "boolean",
        "default": False,
        "description": "Whether body is HTML (default: plain text)",
    },
}

_PAGING = {
    "maxResults": {
        "type": "integer",
        "default": 10,
        "description": "Maximum number of results (default: 10)",
    },
    "pageToken": _string("Token for next page of results"),
}


# ------------------ search & read ------------------

@_tool(
    "search_emails",
    "Search emails using Gmail query syntax (e.g., \"from:alice subject:meeting is:unread\"). "
    "Returns matching messages with snippets.",
    {"query": _string("Gmail search query (supports Gmail search operators)"), **_PAGING},
    ["query"],
)
def _search_emails(client, args):
    return client.search_emails(
        _require(args, "query"),
        _count(args, "maxResults"),
        _text(args, "pageToken"),
    )


@_tool(
    "get_email",
    "Get the full content of an email by message ID. Returns headers, body text, and attachment list.",
    _MESSAGE_ID,
    ["messageId"],
)
def _get_email(client, args):
    return client.get_email(_require(args, "messageId"))


# ------------------ send & reply ------------------

@_tool("send_email", "Send a new email message.", _COMPOSE, ["to", "subject", "body"])
def _send_email(client, args):
    sent = client.send_email(
        _require(args, "to"),
        _require(args, "subject"),
        _require(args, "body"),
        _text(args, "cc"),
        _text(args, "bcc"),
        _flag(args, "isHtml"),
    )
    return {"status": "sent", **sent.to_dict()}


@_tool(
    "reply_to_email",
    "Reply to an existing email, preserving the thread. Automatically sets reply headers.",
    {
        "messageId": _string("The message ID to reply to"),
        "body": _string("Reply body content"),
        "isHtml": {"type": "boolean", "default": False, "description": "Whether body is HTML"},
        "replyAll": {"type": "boolean", "default": False, "description": "Reply to all recipients"},
    },
    ["messageId", "body"],
)
def _reply_to_email(client, args):
    sent = client.reply_to_email(
        _require(args, "messageId"),
        _require(args, "body"),
        _flag(args, "isHtml"),
        _flag(args, "replyAll"),
    )
    return {"status": "sent", **sent.to_dict()}


@_tool(
    "forward_email",
    "Forward an email to new recipients.",
    {
        "messageId": _string("The message ID to forward"),
        "to": _string("Recipient email address(es), comma-separated"),
    },
    ["messageId", "to"],
)
def _forward_email(client, args):
    sent = client.forward_email(_require(args, "messageId"), _require(args, "to"))
    return {"status": "forwarded", **sent.to_dict()}


# ------------------ drafts ------------------

@_tool("create_draft", "Create a new email draft.", _COMPOSE, ["to", "subject", "body"])
def _create_draft(client, args):
    draft = client.create_draft(
        _require(args, "to"),
        _require(args, "subject"),
        _require(args, "body"),
        _text(args, "cc"),
        _text(args, "bcc"),
        _flag(args, "isHtml"),
    )
    return {"status": "draft_created", **draft.to_dict()}


@_tool("list_drafts", "List email drafts.", _PAGING)
def _list_drafts(client, args):
    return client.list_drafts(_count(args, "maxResults"), _text(args, "pageToken"))


@_tool(
    "send_draft",
    "Send an existing draft by its draft ID.",
    {"draftId": _string("The draft ID to send")},
    ["draftId"],
)
def _send_draft(client, args):
    sent = client.send_draft(_require(args, "draftId"))
    return {"status": "sent", **sent.to_dict()}


@_tool(
    "delete_draft",
    "Permanently delete a draft.",
    {"draftId": _string("The draft ID to delete")},
    ["draftId"],
)
def _delete_draft(client, args):
    draft_id = _require(args, "draftId")
    client.delete_draft(draft_id)
    return {"status": "deleted", "draftId": draft_id}


# ------------------ organisation ------------------

def _message_action(name: str, description: str, method: str, status: str) -> None:
    @_tool(name, description, _MESSAGE_ID, ["messageId"])
    def _handler(client, args):
        message_id = _require(args, "messageId")
        getattr(client, method)(message_id)
        return {"status": status, "messageId": message_id}


_message_action("trash_email", "Move an email to the trash.", "trash_email", "trashed")
_message_action(
    "archive_email", "Archive an email by removing it from the inbox.", "archive_email", "archived"
)
_message_action("mark_as_read", "Mark an email as read.", "mark_as_read", "marked_read")
_message_action("mark_as_unread", "Mark an email as unread.", "mark_as_unread", "marked_unread")


# ------------------ labels ------------------

@_tool("list_labels", "List all Gmail labels.", {})
def _list_labels(client, args):
    return client.list_labels()


@_tool(
    "create_label",
    "Create a new Gmail label.",
    {
        "name": _string('Label name (use "/" for nested labels, e.g., "Projects/Work")'),
        "backgroundColor": _string("Background color hex code"),
        "textColor": _string("Text color hex code"),
    },
    ["name"],
)
def _create_label(client, args):
    label = client.create_label(
        _require(args, "name"), _text(args, "backgroundColor"), _text(args, "textColor")
    )
    return {"status": "created", **label.to_dict()}


_LABEL_TARGET = {
    "messageId": _string("The message ID"),
    "labelId": _string("The label ID"),
}


@_tool("apply_label", "Apply a label to an email message.", _LABEL_TARGET, ["messageId", "labelId"])
def _apply_label(client, args):
    message_id, label_id = _require(args, "messageId"), _require(args, "labelId")
    client.apply_label(message_id, label_id)
    return {"status": "label_applied", "messageId": message_id, "labelId": label_id}


@_tool("remove_label", "Remove a label from an email message.", _LABEL_TARGET, ["messageId", "labelId"])
def _remove_label(client, args):
    message_id, label_id = _require(args, "messageId"), _require(args, "labelId")
    client.remove_label(message_id, label_id)
    return {"status": "label_removed", "messageId": message_id, "labelId": label_id}


# ------------------ attachments ------------------

@_tool(
    "get_attachment",
    "Download an email attachment. Returns the content as base64-encoded data.",
    {
        "messageId": _string("The message ID containing the attachment"),
        "attachmentId": _string("The attachment ID (from get_email results)"),
    },
    ["messageId", "attachmentId"],
)
def _get_attachment(client, args):
    return client.get_attachment(_require(args, "messageId"), _require(args, "attachmentId"))


__all__ = ["TOOLS", "ToolSpec", "error_message", "failure", "invoke", "success"]
