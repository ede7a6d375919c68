"""High level orchestration for persisted, multi-turn chat."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from .config import ChatConfig
from .context import build_context_window
from .errors import NotFoundError, ProviderError, StoreError, ValidationError
from .export import ExportedFile, export_conversation
from .llm_client import ChatLLMClient
from .models import Conversation, ConversationSummary, Message
from .store import ConversationStore, InMemoryConversationStore, JsonFileConversationStore

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 50


class TurnState(str, enum.Enum):
    RESOLVING = "resolving"
    BUILDING = "building"
    COMPLETING = "completing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ChatTurnResult:
    reply_text: str
    conversation_id: str


class ChatService:
    """Core chat engine used by both the API and direct Python consumers."""

    def __init__(
        self,
        config: Optional[ChatConfig] = None,
        *,
        store: Optional[ConversationStore] = None,
        client: Optional[ChatLLMClient] = None,
    ) -> None:
        self.config = config or ChatConfig()
        self.client = client or ChatLLMClient(self.config.llm)
        if store is None:
            store = (
                JsonFileConversationStore(self.config.store_dir)
                if self.config.store_dir
                else InMemoryConversationStore()
            )
        self.store = store

    def chat(self, conversation_id: Optional[str], message: Any) -> ChatTurnResult:
        """Run one turn: resolve, build the window, complete, persist.

        A supplied id that does not resolve starts a new conversation. When
        the provider fails, the user message is still persisted and the
        :class:`ProviderError` propagates.
        """
        self._transition(TurnState.RESOLVING, conversation_id)
        if not isinstance(message, str) or not message.strip():
            self._transition(TurnState.FAILED, conversation_id)
            raise ValidationError("Message is required")

        conversation = self._resolve(conversation_id)
        title = derive_title(message) if not conversation.title and not conversation.messages else None

        self._transition(TurnState.BUILDING, conversation.id)
        user_message = Message(sender="user", text=message)
        history = [*conversation.messages, user_message]
        prompt = build_context_window(
            history,
            self.config.system_prompt,
            self.config.context_window_size,
        )

        self._transition(TurnState.COMPLETING, conversation.id)
        try:
            reply = self.client.complete(prompt, model_kwargs=self.config.model_kwargs)
            if not isinstance(reply, str):
                raise ProviderError("Completion provider returned a non-text reply", status_code=502)
        except ProviderError:
            self._transition(TurnState.FAILED, conversation.id)
            logger.exception("Completion failed for conversation %s", conversation.id)
            self._save_user_turn(conversation.id, user_message, title)
            raise

        self._transition(TurnState.PERSISTING, conversation.id)
        ai_message = Message(sender="ai", text=reply)
        try:
            saved = self.store.append_and_save(conversation.id, [user_message, ai_message], title)
        except (StoreError, NotFoundError):
            self._transition(TurnState.FAILED, conversation.id)
            raise

        self._transition(TurnState.DONE, saved.id)
        logger.info(
            "Completed turn for conversation %s (%d message(s) stored)",
            saved.id,
            len(saved.messages),
        )
        return ChatTurnResult(reply_text=reply, conversation_id=saved.id)

    def list_conversations(self) -> List[ConversationSummary]:
        return self.store.list_summaries()

    def get_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.store.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        return conversation

    def create_conversation(self) -> Conversation:
        conversation = self.store.create()
        logger.info("Started conversation %s", conversation.id)
        return conversation

    def rename_conversation(self, conversation_id: str, title: Any) -> Conversation:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Valid title is required.")
        conversation = self.store.update_title(conversation_id, title.strip())
        logger.info("Renamed conversation %s", conversation_id)
        return conversation

    def export_conversation(self, conversation_id: str, fmt: str) -> ExportedFile:
        return export_conversation(self.get_conversation(conversation_id), fmt)

    def _resolve(self, conversation_id: Optional[str]) -> Conversation:
        if conversation_id:
            conversation = self.store.get_by_id(conversation_id)
            if conversation is not None:
                return conversation
            logger.warning("Conversation ID %s not found. Creating a new one.", conversation_id)
        return self.store.create()

    def _save_user_turn(self, conversation_id: str, user_message: Message, title: Optional[str]) -> None:
        try:
            self.store.append_and_save(conversation_id, [user_message], title)
        except (StoreError, NotFoundError):
            logger.exception("Failed to persist user message for conversation %s", conversation_id)

    @staticmethod
    def _transition(state: TurnState, conversation_id: Optional[str]) -> None:
        logger.debug("Chat turn for conversation %s -> %s", conversation_id, state.value)


def derive_title(message: str) -> str:
    """First line of ``message``, whitespace-collapsed and capped in length."""
    first_line = message.strip().splitlines()[0] if message.strip() else ""
    title = " ".join(first_line.split())
    if len(title) > TITLE_MAX_CHARS:
        title = title[: TITLE_MAX_CHARS - 3].rstrip() + "..."
    return title
