"""Tests for inbound Slack message parsing."""

from vibranium.slack.messages import IncomingMessage, is_bot_tagged, is_deleting_message


class TestFromEvent:
    def test_plain_message(self):
        msg = IncomingMessage.from_event(
            {"text": "hi", "ts": "1.0", "channel": "C1", "user": "U1"}
        )
        assert msg.text == "hi"
        assert msg.ts == "1.0"
        assert msg.thread_ts == ""
        assert msg.subtype is None
        assert not msg.in_thread

    def test_thread_reply(self):
        msg = IncomingMessage.from_event({"text": "re", "ts": "2.0", "thread_ts": "1.0"})
        assert msg.in_thread
        assert msg.thread_ts == "1.0"

    def test_deletion_uses_deleted_ts_and_previous_text(self):
        msg = IncomingMessage.from_event(
            {
                "subtype": "message_deleted",
                "ts": "9.9",
                "deleted_ts": "3.0",
                "previous_message": {"text": "oops", "ts": "3.0"},
            }
        )
        assert msg.ts == "3.0"
        assert msg.previous_text == "oops"
        assert msg.text == ""
        assert is_deleting_message(msg)

    def test_deletion_without_deleted_ts_falls_back_to_previous(self):
        msg = IncomingMessage.from_event(
            {"subtype": "message_deleted", "previous_message": {"text": "x", "ts": "4.0"}}
        )
        assert msg.ts == "4.0"

    def test_missing_fields_default_to_empty(self):
        msg = IncomingMessage.from_event({"text": None, "user": None})
        assert msg.text == ""
        assert msg.user == ""


class TestIsBotTagged:
    def test_tagged(self):
        assert is_bot_tagged("hey <@B1> help", "B1")

    def test_other_user_tagged(self):
        assert not is_bot_tagged("hey <@U9> help", "B1")

    def test_unknown_bot_id(self):
        assert not is_bot_tagged("hey <@B1>", None)

    def test_empty_text(self):
        assert not is_bot_tagged("", "B1")


def test_other_subtypes_are_not_deletions():
    msg = IncomingMessage.from_event({"subtype": "message_changed", "text": "edit"})
    assert not is_deleting_message(msg)
