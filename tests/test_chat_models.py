"""Tests for chat data models."""

import pytest

from turfchat.chat.models import ChatIdentity, Conversation, Message


class TestMessageFromPayload:
    def test_server_row(self):
        m = Message.from_payload(
            {
                "id": "m1",
                "chat_id": "c1",
                "sender_id": "u1",
                "sender_role": "owner",
                "content": "hi",
                "created_at": "2026-01-01T10:00:00Z",
            }
        )
        assert m.id == "m1"
        assert m.conversation_id == "c1"
        assert m.sender_id == "u1"
        assert m.sender_role == "owner"
        assert m.content == "hi"
        assert m.created_at == "2026-01-01T10:00:00Z"
        assert m.read is False

    def test_camel_case_fields(self):
        m = Message.from_payload({"id": "m1", "conversationId": "c9", "senderId": "u2"})
        assert m.conversation_id == "c9"
        assert m.sender_id == "u2"

    def test_numeric_id_becomes_string(self):
        assert Message.from_payload({"id": 42, "chat_id": 7}).id == "42"

    def test_missing_id_raises(self):
        with pytest.raises(ValueError, match="no id"):
            Message.from_payload({"chat_id": "c1", "content": "hi"})

    def test_non_mapping_raises(self):
        with pytest.raises(ValueError, match="mapping"):
            Message.from_payload(["m1"])

    def test_missing_content_is_empty_string(self):
        assert Message.from_payload({"id": "m1", "content": None}).content == ""


class TestReadFlag:
    def test_new_schema(self):
        assert Message.from_payload({"id": "m1", "is_read": True}).read is True

    def test_legacy_schema(self):
        assert Message.from_payload({"id": "m1", "read": True}).read is True

    def test_camel_case(self):
        assert Message.from_payload({"id": "m1", "isRead": True}).read is True

    def test_new_schema_wins_over_legacy(self):
        m = Message.from_payload({"id": "m1", "is_read": False, "read": True})
        assert m.read is False

    def test_null_new_flag_reads_as_unread(self):
        m = Message.from_payload({"id": "m1", "is_read": None, "read": True})
        assert m.read is False

    def test_legacy_flag_used_when_new_flag_absent(self):
        assert Message.from_payload({"id": "m1", "read": True}).read is True

    def test_absent_defaults_to_unread(self):
        assert Message.from_payload({"id": "m1"}).read is False


def test_is_from():
    m = Message(id="m1", conversation_id="c1", sender_id="u1")
    assert m.is_from("u1")
    assert not m.is_from("u2")
    assert not m.is_from(None)


class TestConversation:
    def test_from_payload(self):
        c = Conversation.from_payload(
            {
                "id": "c1",
                "owner_id": "o1",
                "player_id": "p1",
                "last_message": "see you",
                "updated_at": "2026-01-01T10:00:00Z",
                "is_favorite": True,
                "other_user": {"name": "Ravi", "email": "r@example.com"},
            }
        )
        assert c.id == "c1"
        assert c.is_favorite is True
        assert c.display_name == "Ravi"

    def test_client_id_fallback_for_owner(self):
        c = Conversation.from_payload({"id": "c1", "client_id": "o1", "player_id": "p1"})
        assert c.owner_id == "o1"

    def test_unknown_display_name(self):
        c = Conversation.from_payload({"id": "c1", "owner_id": "o1", "player_id": "p1"})
        assert c.display_name == "Unknown"

    def test_other_participant(self):
        c = Conversation(id="c1", owner_id="o1", player_id="p1")
        assert c.other_participant_id("o1") == "p1"
        assert c.other_participant_id("p1") == "o1"

    def test_missing_id_raises(self):
        with pytest.raises(ValueError):
            Conversation.from_payload({"owner_id": "o1"})


def test_identity_default_role():
    assert ChatIdentity(user_id="u1").role == "player"
