"""Conversation persistence: an in-memory store and a JSON document store.

Both stores serialise mutations behind a single lock, so two batches appended
to the same conversation are never partially merged. The order in which
concurrent batches land is whichever acquires the lock first.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError as ModelValidationError

from .errors import NotFoundError, StoreError
from .models import Conversation, ConversationSummary, Message, utcnow

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def new_conversation_id() -> str:
    return uuid.uuid4().hex


def new_conversation() -> Conversation:
    now = utcnow()
    return Conversation(id=new_conversation_id(), created_at=now, updated_at=now)


class ConversationStore:
    """Interface consumed by :class:`~conversation_module.service.ChatService`."""

    def create(self) -> Conversation:
        raise NotImplementedError

    def get_by_id(self, conversation_id: str) -> Optional[Conversation]:
        raise NotImplementedError

    def append_and_save(
        self,
        conversation_id: str,
        messages: Iterable[Message],
        title: Optional[str] = None,
    ) -> Conversation:
        raise NotImplementedError

    def update_title(self, conversation_id: str, title: str) -> Conversation:
        raise NotImplementedError

    def list_summaries(self) -> List[ConversationSummary]:
        raise NotImplementedError


class InMemoryConversationStore(ConversationStore):
    """Process-local store, handy for embedding and tests."""

    def __init__(self) -> None:
        self._conversations: Dict[str, Conversation] = {}
        self._lock = threading.Lock()

    def create(self) -> Conversation:
        conversation = new_conversation()
        with self._lock:
            self._conversations[conversation.id] = conversation
        logger.debug("Created conversation %s", conversation.id)
        return conversation.model_copy(deep=True)

    def get_by_id(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            return conversation.model_copy(deep=True) if conversation else None

    def append_and_save(
        self,
        conversation_id: str,
        messages: Iterable[Message],
        title: Optional[str] = None,
    ) -> Conversation:
        with self._lock:
            conversation = self._require(conversation_id)
            conversation.messages.extend(msg.model_copy() for msg in messages)
            if title is not None:
                conversation.title = title
            conversation.touch()
            return conversation.model_copy(deep=True)

    def update_title(self, conversation_id: str, title: str) -> Conversation:
        with self._lock:
            conversation = self._require(conversation_id)
            conversation.title = title
            conversation.touch()
            return conversation.model_copy(deep=True)

    def list_summaries(self) -> List[ConversationSummary]:
        with self._lock:
            summaries = [conv.summary() for conv in self._conversations.values()]
        return sorted(summaries, key=lambda item: item.updated_at, reverse=True)

    def _require(self, conversation_id: str) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation '{conversation_id}' not found")
        return conversation


class JsonFileConversationStore(ConversationStore):
    """One ``<id>.json`` document per conversation inside ``store_dir``.

    Documents are written to a temporary file in the same directory and
    swapped in with :func:`os.replace`, so a reader never observes a
    half-written conversation.
    """

    def __init__(self, store_dir: str) -> None:
        self.store_dir = Path(store_dir)
        try:
            self.store_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot prepare store directory {self.store_dir}") from exc
        self._lock = threading.RLock()
        logger.info("Using conversation store at %s", self.store_dir)

    def create(self) -> Conversation:
        conversation = new_conversation()
        with self._lock:
            self._write(conversation)
        logger.debug("Created conversation %s", conversation.id)
        return conversation

    def get_by_id(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock:
            return self._read(conversation_id)

    def append_and_save(
        self,
        conversation_id: str,
        messages: Iterable[Message],
        title: Optional[str] = None,
    ) -> Conversation:
        with self._lock:
            conversation = self._require(conversation_id)
            conversation.messages.extend(messages)
            if title is not None:
                conversation.title = title
            conversation.touch()
            self._write(conversation)
            return conversation

    def update_title(self, conversation_id: str, title: str) -> Conversation:
        with self._lock:
            conversation = self._require(conversation_id)
            conversation.title = title
            conversation.touch()
            self._write(conversation)
            return conversation

    def list_summaries(self) -> List[ConversationSummary]:
        summaries: List[ConversationSummary] = []
        with self._lock:
            for path in self.store_dir.glob("*.json"):
                conversation = self._read(path.stem)
                if conversation is not None:
                    summaries.append(conversation.summary())
        return sorted(summaries, key=lambda item: item.updated_at, reverse=True)

    def _path(self, conversation_id: str) -> Optional[Path]:
        if not isinstance(conversation_id, str) or not _ID_PATTERN.match(conversation_id):
            return None
        return self.store_dir / f"{conversation_id}.json"

    def _require(self, conversation_id: str) -> Conversation:
        conversation = self._read(conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation '{conversation_id}' not found")
        return conversation

    def _read(self, conversation_id: str) -> Optional[Conversation]:
        path = self._path(conversation_id)
        if path is None or not path.exists():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
            return Conversation.model_validate_json(raw)
        except (OSError, ModelValidationError) as exc:
            logger.exception("Failed to load conversation document %s", path)
            raise StoreError(f"Failed to load conversation '{conversation_id}'") from exc

    def _write(self, conversation: Conversation) -> None:
        path = self._path(conversation.id)
        if path is None:
            raise StoreError(f"Invalid conversation id '{conversation.id}'")
        payload = conversation.model_dump_json(by_alias=True, indent=2)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.store_dir, prefix=".tmp-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except OSError as exc:
            logger.exception("Failed to persist conversation %s", conversation.id)
            raise StoreError(f"Failed to persist conversation '{conversation.id}'") from exc
