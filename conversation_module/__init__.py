"""Conversation-scoped chat orchestration backed by a document store.

This package wires an OpenAI-compatible chat-completions provider (OpenRouter
by default) to a persistent conversation store. Each chat turn resolves or
creates a conversation, sends a bounded context window to the provider, and
records the user/assistant pair. The primary entry points are
``conversation_module.api.create_app`` for running the HTTP service and
``conversation_module.service.ChatService`` for embedding the chat engine
directly into Python code.
"""

from .config import ChatConfig, ChatLLMConfig, load_config_from_env
from .service import ChatService

__all__ = ["ChatConfig", "ChatLLMConfig", "ChatService", "load_config_from_env"]
