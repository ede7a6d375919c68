"""Tests for the chat orchestration service."""

from unittest.mock import Mock, patch

import pytest

from conversation_module.config import ChatConfig
from conversation_module.errors import NotFoundError, ProviderError, StoreError, ValidationError
from conversation_module.service import ChatService, derive_title
from conversation_module.store import InMemoryConversationStore

from .conftest import FakeLLMClient


class TestChatTurn:
    def test_first_turn_creates_conversation(self, service, store):
        result = service.chat(None, "hi")

        conversation = store.get_by_id(result.conversation_id)
        assert result.reply_text == "Hello there!"
        assert [m.sender for m in conversation.messages] == ["user", "ai"]
        assert conversation.messages[0].text == "hi"
        assert conversation.messages[1].text == "Hello there!"

    def test_turns_alternate_user_and_ai(self, service, store):
        conversation_id = service.chat(None, "one").conversation_id
        for text in ("two", "three", "four"):
            assert service.chat(conversation_id, text).conversation_id == conversation_id

        messages = store.get_by_id(conversation_id).messages
        assert len(messages) == 8
        assert [m.sender for m in messages] == ["user", "ai"] * 4

    def test_unknown_id_starts_new_conversation(self, service, store):
        bogus = "0" * 32

        result = service.chat(bogus, "hello?")

        assert result.conversation_id != bogus
        messages = store.get_by_id(result.conversation_id).messages
        assert [m.sender for m in messages] == ["user", "ai"]

    @pytest.mark.parametrize("message", [None, "", "   ", 42])
    def test_invalid_message_persists_nothing(self, service, store, fake_client, message):
        with pytest.raises(ValidationError):
            service.chat(None, message)

        assert store.list_summaries() == []
        assert fake_client.calls == []

    def test_prompt_contains_system_and_window(self, service, fake_client):
        conversation_id = service.chat(None, "first").conversation_id
        for i in range(6):
            service.chat(conversation_id, f"follow-up {i}")

        prompt = fake_client.calls[-1]
        assert len(prompt) == 11
        assert prompt[0]["role"] == "system"
        assert prompt[-1] == {"role": "user", "content": "follow-up 5"}

    def test_provider_failure_keeps_user_message(self, store, failing_client):
        service = ChatService(ChatConfig(), store=store, client=failing_client)

        with pytest.raises(ProviderError) as excinfo:
            service.chat(None, "are you there?")

        assert excinfo.value.status_code == 429
        (summary,) = store.list_summaries()
        messages = store.get_by_id(summary.id).messages
        assert [m.sender for m in messages] == ["user"]
        assert messages[0].text == "are you there?"

    @pytest.mark.parametrize(
        "json_data",
        [
            {"choices": [{"message": "plain string"}]},
            {"choices": [{"message": {"content": ["part"]}}]},
        ],
    )
    @patch("conversation_module.llm_client.requests.post")
    def test_malformed_reply_keeps_user_message(self, mock_post, store, json_data):
        response = Mock(status_code=200, ok=True, text="")
        response.json.return_value = json_data
        mock_post.return_value = response
        service = ChatService(ChatConfig(), store=store)

        with pytest.raises(ProviderError) as excinfo:
            service.chat(None, "keep me")

        assert excinfo.value.status_code == 502
        (summary,) = store.list_summaries()
        messages = store.get_by_id(summary.id).messages
        assert [(m.sender, m.text) for m in messages] == [("user", "keep me")]

    def test_non_text_reply_from_client_keeps_user_message(self, store):
        service = ChatService(ChatConfig(), store=store, client=FakeLLMClient(reply=None))

        with pytest.raises(ProviderError):
            service.chat(None, "keep me too")

        (summary,) = store.list_summaries()
        assert [m.sender for m in store.get_by_id(summary.id).messages] == ["user"]

    def test_provider_failure_on_existing_conversation(self, store):
        client = FakeLLMClient()
        service = ChatService(ChatConfig(), store=store, client=client)
        conversation_id = service.chat(None, "hi").conversation_id
        client.error = ProviderError("down", status_code=503)

        with pytest.raises(ProviderError):
            service.chat(conversation_id, "still there?")

        assert [m.sender for m in store.get_by_id(conversation_id).messages] == ["user", "ai", "user"]

    def test_store_failure_propagates(self, fake_client):
        class BrokenStore(InMemoryConversationStore):
            def append_and_save(self, conversation_id, messages, title=None):
                raise StoreError("disk full")

        service = ChatService(ChatConfig(), store=BrokenStore(), client=fake_client)

        with pytest.raises(StoreError):
            service.chat(None, "hi")

    def test_empty_provider_reply_is_stored(self, store):
        service = ChatService(ChatConfig(), store=store, client=FakeLLMClient(reply=""))

        result = service.chat(None, "say nothing")

        assert result.reply_text == ""
        assert store.get_by_id(result.conversation_id).messages[1].text == ""

    def test_title_derived_for_new_conversation(self, service, store):
        result = service.chat(None, "  Plan a trip\nto Lisbon please")

        assert store.get_by_id(result.conversation_id).title == "Plan a trip"

    def test_existing_title_is_not_overwritten(self, service):
        conversation = service.create_conversation()
        service.rename_conversation(conversation.id, "Mine")

        service.chat(conversation.id, "hello")

        assert service.get_conversation(conversation.id).title == "Mine"


class TestConversationOperations:
    def test_create_and_get(self, service):
        conversation = service.create_conversation()

        assert service.get_conversation(conversation.id).messages == []

    def test_get_missing(self, service):
        with pytest.raises(NotFoundError):
            service.get_conversation("missing")

    def test_rename_trims_and_bumps_updated_at(self, service):
        conversation = service.create_conversation()

        renamed = service.rename_conversation(conversation.id, " My Chat ")

        assert renamed.title == "My Chat"
        assert renamed.updated_at > conversation.updated_at

    @pytest.mark.parametrize("title", [None, "", "   ", 7, ["x"]])
    def test_rename_rejects_invalid_title(self, service, title):
        conversation = service.create_conversation()

        with pytest.raises(ValidationError):
            service.rename_conversation(conversation.id, title)

    def test_rename_missing(self, service):
        with pytest.raises(NotFoundError):
            service.rename_conversation("missing", "title")

    def test_list_most_recent_first(self, service):
        older = service.create_conversation()
        newer = service.create_conversation()
        service.chat(older.id, "bump")

        assert [s.id for s in service.list_conversations()] == [older.id, newer.id]

    def test_export_missing(self, service):
        with pytest.raises(NotFoundError):
            service.export_conversation("missing", "json")


class TestDeriveTitle:
    def test_collapses_whitespace(self):
        assert derive_title("  hello    world  ") == "hello world"

    def test_truncates_long_messages(self):
        title = derive_title("word " * 40)

        assert len(title) <= 50
        assert title.endswith("...")
