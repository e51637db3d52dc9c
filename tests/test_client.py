import base64
import unittest

from gmail_mcp.client import (
    BATCH_LIMIT,
    GmailClient,
    chain_references,
    forward_subject,
    reply_all_cc,
    reply_subject,
)
from fakes import FakeGmailService, b64url, decode_raw


def headers(**values):
    return [{"name": name.replace("_", "-"), "value": value} for name, value in values.items()]


def metadata(mid, **hdrs):
    return {
        "id": mid,
        "threadId": f"t-{mid}",
        "snippet": f"snippet {mid}",
        "payload": {"headers": headers(**hdrs)},
    }


def header_lines(raw):
    head, _, _ = decode_raw(raw).partition("\r\n\r\n")
    return head.split("\r\n")


class TestComposition(unittest.TestCase):
    def test_subject_prefixes_are_idempotent(self):
        self.assertEqual(reply_subject("Hello"), "Re: Hello")
        self.assertEqual(reply_subject("Re: Hello"), "Re: Hello")
        self.assertEqual(reply_subject("RE: Hello"), "Re: RE: Hello")
        self.assertEqual(forward_subject("Hello"), "Fwd: Hello")
        self.assertEqual(forward_subject("Fwd: Hello"), "Fwd: Hello")

    def test_reply_all_cc(self):
        self.assertEqual(reply_all_cc("a@x.com", ""), "a@x.com")
        self.assertEqual(reply_all_cc("", "c@x.com"), "c@x.com")
        self.assertEqual(reply_all_cc("a@x.com", "a@x.com, c@x.com"), "a@x.com, a@x.com, c@x.com")
        self.assertEqual(reply_all_cc("", ""), "")

    def test_chain_references(self):
        self.assertEqual(chain_references("", "<m1@x>"), "<m1@x>")
        self.assertEqual(chain_references("<m0@x>", "<m1@x>"), "<m0@x> <m1@x>")


class TestSearch(unittest.TestCase):
    def setUp(self):
        self.service = FakeGmailService(reverse_batches=True)
        self.service.on("messages.list", lambda **kw: {
            "messages": [{"id": "m1"}, {"id": "m2"}, {"id": "m3"}],
            "nextPageToken": "NEXT",
        })
        self.service.on("messages.get", lambda **kw: metadata(
            kw["id"], From=f"{kw['id']}@x.com", To="me@x.com", Subject=f"subject {kw['id']}", Date="today",
        ))
        self.client = GmailClient(self.service)

    def test_results_keep_list_order(self):
        result = self.client.search_emails("is:unread", 5)
        self.assertEqual([e.id for e in result["emails"]], ["m1", "m2", "m3"])
        self.assertEqual(result["nextPageToken"], "NEXT")
        first = result["emails"][0].to_dict()
        self.assertEqual(first["from"], "m1@x.com")
        self.assertEqual(first["threadId"], "t-m1")
        self.assertEqual(first["snippet"], "snippet m1")

    def test_list_and_detail_parameters(self):
        self.client.search_emails("from:alice", 7)
        listed = self.service.calls_to("messages.list")[0]
        self.assertEqual(listed, {"userId": "me", "q": "from:alice", "maxResults": 7})
        detail = self.service.calls_to("messages.get")[0]
        self.assertEqual(detail["format"], "metadata")
        self.assertEqual(detail["metadataHeaders"], ["From", "To", "Subject", "Date"])
        self.assertEqual(self.service.batches, [["0", "1", "2"]])

    def test_page_token_is_forwarded(self):
        self.client.search_emails("q", 10, "PAGE2")
        self.assertEqual(self.service.calls_to("messages.list")[0]["pageToken"], "PAGE2")

    def test_no_matches_skips_batch(self):
        self.service.on("messages.list", lambda **kw: {"resultSizeEstimate": 0})
        result = self.client.search_emails("nothing")
        self.assertEqual(result["emails"], [])
        self.assertIsNone(result["nextPageToken"])
        self.assertEqual(self.service.batches, [])

    def test_one_failed_detail_fails_the_batch(self):
        def get(**kw):
            if kw["id"] in ("m1", "m3"):
                raise RuntimeError(f"boom {kw['id']}")
            return metadata(kw["id"])

        self.service.on("messages.get", get)
        with self.assertRaises(RuntimeError) as ctx:
            self.client.search_emails("q")
        self.assertEqual(str(ctx.exception), "boom m1")

    def test_large_listing_is_split_into_batches(self):
        ids = [{"id": f"m{i}"} for i in range(BATCH_LIMIT + 20)]
        self.service.on("messages.list", lambda **kw: {"messages": ids})
        result = self.client.search_emails("q", len(ids))
        self.assertEqual([len(b) for b in self.service.batches], [BATCH_LIMIT, 20])
        self.assertEqual([e.id for e in result["emails"]], [i["id"] for i in ids])


class TestGetEmail(unittest.TestCase):
    def test_detail_with_html_fallback_and_attachments(self):
        service = FakeGmailService().on("messages.get", lambda **kw: {
            "id": kw["id"],
            "threadId": "t1",
            "labelIds": ["INBOX"],
            "payload": {
                "mimeType": "multipart/mixed",
                "headers": headers(From="a@x.com", To="b@x.com", Cc="c@x.com", Subject="Report", Date="d"),
                "parts": [
                    {"mimeType": "text/html", "body": {"data": b64url("<p>Numbers</p>&#8364;5")}},
                    {"filename": "r.pdf", "mimeType": "application/pdf", "body": {"attachmentId": "ATT", "size": 9}},
                ],
            },
        })
        detail = GmailClient(service).get_email("m1").to_dict()
        self.assertEqual(service.calls_to("messages.get")[0]["format"], "full")
        self.assertEqual(detail["body"], "Numbers\n\n€5")
        self.assertEqual(detail["htmlBody"], "<p>Numbers</p>&#8364;5")
        self.assertEqual(detail["cc"], "c@x.com")
        self.assertEqual(detail["attachments"], [
            {"filename": "r.pdf", "mimeType": "application/pdf", "size": 9, "attachmentId": "ATT"},
        ])


class TestSending(unittest.TestCase):
    def setUp(self):
        self.service = FakeGmailService()
        self.service.on("messages.send", lambda **kw: {"id": "sent1", "threadId": kw["body"].get("threadId", "new")})
        self.client = GmailClient(self.service)

    def sent_raw(self):
        return self.service.calls_to("messages.send")[-1]["body"]["raw"]

    def test_send_email(self):
        result = self.client.send_email("b@x.com", "Hi", "Hello", cc="c@x.com", bcc="d@x.com")
        self.assertEqual(result.to_dict(), {"messageId": "sent1", "threadId": "new"})
        body = self.service.calls_to("messages.send")[0]["body"]
        self.assertNotIn("threadId", body)
        lines = header_lines(self.sent_raw())
        self.assertEqual(lines[:3], ["To: b@x.com", "Cc: c@x.com", "Bcc: d@x.com"])
        self.assertIn("Content-Type: text/plain; charset=UTF-8", lines)

    def test_send_html(self):
        self.client.send_email("b@x.com", "Hi", "<b>Hello</b>", is_html=True)
        self.assertIn("Content-Type: text/html; charset=UTF-8", header_lines(self.sent_raw()))

    def test_reply_html(self):
        self._original(From="alice@x.com", Subject="Plans", Message_ID="<m1@x>")
        self.client.reply_to_email("m1", "<p>Sure</p>", is_html=True)
        lines = header_lines(self.sent_raw())
        self.assertIn("Content-Type: text/html; charset=UTF-8", lines)
        self.assertNotIn("Content-Type: text/plain; charset=UTF-8", lines)
        self.assertIn("In-Reply-To: <m1@x>", lines)

    def _original(self, **hdrs):
        self.service.on("messages.get", lambda **kw: {
            "id": kw["id"], "threadId": "thread-9", "payload": {"headers": headers(**hdrs)},
        })

    def test_reply_threads_onto_original(self):
        self._original(
            From="alice@x.com", To="me@x.com", Cc="bob@x.com", Subject="Plans",
            Message_ID="<m1@x>", References="<m0@x>",
        )
        result = self.client.reply_to_email("m1", "Sounds good")
        get = self.service.calls_to("messages.get")[0]
        self.assertEqual(get["metadataHeaders"], ["From", "To", "Cc", "Subject", "Message-ID", "References"])
        self.assertEqual(self.service.calls_to("messages.send")[0]["body"]["threadId"], "thread-9")
        self.assertEqual(result.thread_id, "thread-9")
        self.assertEqual(header_lines(self.sent_raw())[:5], [
            "To: alice@x.com",
            "Subject: Re: Plans",
            "In-Reply-To: <m1@x>",
            "References: <m0@x> <m1@x>",
            "MIME-Version: 1.0",
        ])

    def test_reply_all_and_existing_prefix(self):
        self._original(From="alice@x.com", To="a@x.com", Cc="", Subject="Re: Plans", Message_ID="<m1@x>")
        self.client.reply_to_email("m1", "ok", reply_all=True)
        lines = header_lines(self.sent_raw())
        self.assertIn("Cc: a@x.com", lines)
        self.assertIn("Subject: Re: Plans", lines)
        self.assertIn("References: <m1@x>", lines)

    def test_forward_is_unthreaded(self):
        self.service.on("messages.get", lambda **kw: {
            "id": kw["id"],
            "threadId": "thread-9",
            "payload": {
                "mimeType": "text/plain",
                "headers": headers(From="alice@x.com", To="me@x.com", Subject="Plans", Date="Mon",
                                   Message_ID="<m1@x>"),
                "body": {"data": b64url("Original text")},
            },
        })
        self.client.forward_email("m1", "carol@x.com")
        send = self.service.calls_to("messages.send")[0]["body"]
        self.assertNotIn("threadId", send)
        decoded = decode_raw(send["raw"])
        head, _, body = decoded.partition("\r\n\r\n")
        self.assertIn("Subject: Fwd: Plans", head)
        self.assertNotIn("In-Reply-To", head)
        self.assertNotIn("References", head)

        self.assertEqual(base64.b64decode(body).decode(), "\n".join([
            "",
            "---------- Forwarded message ---------",
            "From: alice@x.com",
            "Date: Mon",
            "Subject: Plans",
            "To: me@x.com",
            "",
            "Original text",
        ]))

    def test_forward_html_with_surrogate_pair_references(self):
        self.service.on("messages.get", lambda **kw: {
            "id": kw["id"],
            "threadId": "thread-9",
            "payload": {
                "mimeType": "text/html",
                "headers": headers(From="alice@x.com", Subject="Smile"),
                "body": {"data": b64url("<p>Smile &#55357;&#56832; &#xD800;</p>")},
            },
        })
        self.client.forward_email("m1", "carol@x.com")
        _, _, body = decode_raw(self.sent_raw()).partition("\r\n\r\n")
        self.assertTrue(base64.b64decode(body).decode().endswith("Smile \U0001F600 &#xD800;"))


class TestDrafts(unittest.TestCase):
    def setUp(self):
        self.service = FakeGmailService(reverse_batches=True)
        self.client = GmailClient(self.service)

    def test_create_draft(self):
        self.service.on("drafts.create", lambda **kw: {"id": "d1", "message": {"id": "m1"}})
        result = self.client.create_draft("b@x.com", "Hi", "<p>x</p>", is_html=True)
        self.assertEqual(result.to_dict(), {"draftId": "d1", "messageId": "m1"})
        raw = self.service.calls_to("drafts.create")[0]["body"]["message"]["raw"]
        self.assertIn("Content-Type: text/html; charset=UTF-8", header_lines(raw))

    def test_list_drafts_in_order(self):
        self.service.on("drafts.list", lambda **kw: {"drafts": [{"id": "d1"}, {"id": "d2"}]})
        self.service.on("drafts.get", lambda **kw: {
            "id": kw["id"],
            "message": {
                "id": f"m-{kw['id']}",
                "snippet": "draft text",
                "payload": {"headers": headers(Subject=f"S {kw['id']}", To="z@x.com")},
            },
        })
        result = self.client.list_drafts(5)
        self.assertEqual([d.to_dict() for d in result["drafts"]], [
            {"draftId": "d1", "messageId": "m-d1", "snippet": "draft text", "subject": "S d1", "to": "z@x.com"},
            {"draftId": "d2", "messageId": "m-d2", "snippet": "draft text", "subject": "S d2", "to": "z@x.com"},
        ])
        self.assertEqual(self.service.calls_to("drafts.list")[0], {"userId": "me", "maxResults": 5})
        self.assertEqual(self.service.calls_to("drafts.get")[0]["format"], "metadata")

    def test_send_and_delete_draft(self):
        self.service.on("drafts.send", lambda **kw: {"id": "m9", "threadId": "t9"})
        self.assertEqual(self.client.send_draft("d1").to_dict(), {"messageId": "m9", "threadId": "t9"})
        self.assertEqual(self.service.calls_to("drafts.send")[0]["body"], {"id": "d1"})
        self.client.delete_draft("d1")
        self.assertEqual(self.service.calls_to("drafts.delete")[0], {"userId": "me", "id": "d1"})


class TestOrganisation(unittest.TestCase):
    def setUp(self):
        self.service = FakeGmailService()
        self.client = GmailClient(self.service, user_id="someone@x.com")

    def modify_bodies(self):
        return [kw["body"] for kw in self.service.calls_to("messages.modify")]

    def test_label_modifications(self):
        self.client.archive_email("m1")
        self.client.mark_as_read("m1")
        self.client.mark_as_unread("m1")
        self.client.apply_label("m1", "Label_1")
        self.client.remove_label("m1", "Label_2")
        self.assertEqual(self.modify_bodies(), [
            {"removeLabelIds": ["INBOX"]},
            {"removeLabelIds": ["UNREAD"]},
            {"addLabelIds": ["UNREAD"]},
            {"addLabelIds": ["Label_1"]},
            {"removeLabelIds": ["Label_2"]},
        ])
        self.assertTrue(all(kw["userId"] == "someone@x.com" for kw in self.service.calls_to("messages.modify")))

    def test_trash(self):
        self.client.trash_email("m1")
        self.assertEqual(self.service.calls_to("messages.trash"), [{"userId": "someone@x.com", "id": "m1"}])

    def test_list_labels(self):
        self.service.on("labels.list", lambda **kw: {"labels": [
            {"id": "INBOX", "name": "INBOX", "type": "system", "messagesTotal": 4, "messagesUnread": 1},
            {"id": "Label_1", "name": "Work"},
        ]})
        labels = [label.to_dict() for label in self.client.list_labels()]
        self.assertEqual(labels, [
            {"id": "INBOX", "name": "INBOX", "type": "system", "messagesTotal": 4, "messagesUnread": 1},
            {"id": "Label_1", "name": "Work", "type": ""},
        ])

    def test_create_label(self):
        self.service.on("labels.create", lambda **kw: {"id": "Label_3", "name": kw["body"]["name"]})
        label = self.client.create_label("Projects/Work", background_color="#16a765")
        self.assertEqual(label.to_dict(), {"id": "Label_3", "name": "Projects/Work", "type": "user"})
        self.assertEqual(self.service.calls_to("labels.create")[0]["body"], {
            "name": "Projects/Work",
            "labelListVisibility": "labelShow",
            "messageListVisibility": "show",
            "color": {"backgroundColor": "#16a765", "textColor": "#ffffff"},
        })

    def test_create_label_without_colors(self):
        self.client.create_label("Plain")
        self.assertNotIn("color", self.service.calls_to("labels.create")[0]["body"])

    def test_get_attachment(self):
        self.service.on("messages.attachments.get", lambda **kw: {"data": "QUJD"})
        result = self.client.get_attachment("m1", "ATT")
        self.assertEqual(result.to_dict(), {"data": "QUJD", "size": 0})
        self.assertEqual(self.service.calls_to("messages.attachments.get"),
                         [{"userId": "someone@x.com", "messageId": "m1", "id": "ATT"}])


if __name__ == "__main__":
    unittest.main()
