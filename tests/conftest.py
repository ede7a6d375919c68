"""Shared fixtures for the conversation module tests."""

from typing import Dict, List

import pytest

from conversation_module.config import ChatConfig
from conversation_module.errors import ProviderError
from conversation_module.service import ChatService
from conversation_module.store import InMemoryConversationStore


class FakeLLMClient:
    """Records prompts and answers with a canned reply (or fails)."""

    def __init__(self, reply: str = "Hello there!", error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls: List[List[Dict[str, str]]] = []

    def complete(self, messages, *, model_kwargs=None):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_client():
    return FakeLLMClient()


@pytest.fixture
def failing_client():
    return FakeLLMClient(error=ProviderError("rate limited", status_code=429, payload={"error": "slow down"}))


@pytest.fixture
def store():
    return InMemoryConversationStore()


@pytest.fixture
def service(store, fake_client):
    return ChatService(ChatConfig(), store=store, client=fake_client)
