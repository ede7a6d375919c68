"""Context window construction for completion requests."""

from __future__ import annotations

from typing import Dict, List, Sequence

from .models import Message

DEFAULT_WINDOW_SIZE = 10


def build_context_window(
    messages: Sequence[Message],
    system_prompt: str,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> List[Dict[str, str]]:
    """Return the system prompt followed by the last ``window_size`` messages."""
    recent = list(messages)[-window_size:] if window_size > 0 else []
    prompt: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
    prompt.extend(
        {"role": "user" if msg.sender == "user" else "assistant", "content": msg.text}
        for msg in recent
    )
    return prompt
