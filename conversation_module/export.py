"""Render stored conversations as downloadable files."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .errors import ValidationError
from .models import Conversation

UNTITLED = "Untitled Chat"

_MIME_TYPES = {
    "json": "application/json",
    "txt": "text/plain",
}


@dataclass(frozen=True)
class ExportedFile:
    content: str
    mime_type: str
    filename: str


def export_conversation(conversation: Conversation, fmt: str) -> ExportedFile:
    """Render ``conversation`` as ``json`` or ``txt``."""
    fmt = (fmt or "").lower()
    if fmt == "json":
        content = conversation.model_dump_json(by_alias=True, indent=2)
    elif fmt == "txt":
        content = render_transcript(conversation)
    else:
        raise ValidationError("Invalid export format. Supported: json, txt.")
    return ExportedFile(
        content=content,
        mime_type=_MIME_TYPES[fmt],
        filename=f"chat_{conversation.id[:8]}.{fmt}",
    )


def render_transcript(conversation: Conversation) -> str:
    lines = [
        f"Conversation ID: {conversation.id}",
        f"Title: {conversation.title or UNTITLED}",
        f"Created: {_local(conversation.created_at)}",
        f"Last Updated: {_local(conversation.updated_at)}",
        "",
        "--- Conversation Log ---",
        "",
    ]
    for msg in conversation.messages:
        lines.append(f"{msg.sender.upper()} ({_local(msg.timestamp, '%H:%M:%S')}): {msg.text}")
        lines.append("")
    return "\n".join(lines) + "\n"


def _local(value: datetime, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    return value.astimezone().strftime(fmt)
