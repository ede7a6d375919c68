"""Configuration objects for the conversation module."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .errors import ConfigurationError


def _default_headers() -> Dict[str, str]:
    return {
        "HTTP-Referer": "http://localhost:5173",
        "X-Title": "Conversation Chat Backend",
    }


@dataclass(frozen=True)
class ChatLLMConfig:
    """Completion provider connection details."""

    endpoint: str = "https://openrouter.ai/api/v1/chat/completions"
    api_key: str = ""
    model: str = "openai/gpt-3.5-turbo"
    request_timeout: int = 60
    default_headers: Dict[str, str] = field(default_factory=_default_headers)


@dataclass
class ChatConfig:
    """Runtime controls for chat behaviour."""

    llm: ChatLLMConfig = field(default_factory=ChatLLMConfig)
    store_dir: Optional[str] = None
    system_prompt: str = "You are a helpful and friendly AI assistant. Be concise."
    context_window_size: int = 10
    allowed_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    model_kwargs: Dict[str, object] = field(default_factory=dict)


def load_config_from_env(env: Optional[Mapping[str, str]] = None) -> ChatConfig:
    """Build a :class:`ChatConfig` from environment variables.

    ``OPENROUTER_API_KEY`` and ``CHAT_STORE_DIR`` are mandatory; everything
    else falls back to the dataclass defaults.
    """
    env = os.environ if env is None else env

    api_key = (env.get("OPENROUTER_API_KEY") or "").strip()
    if not api_key:
        raise ConfigurationError("OPENROUTER_API_KEY is not set")
    store_dir = (env.get("CHAT_STORE_DIR") or "").strip()
    if not store_dir:
        raise ConfigurationError("CHAT_STORE_DIR is not set")

    defaults = ChatLLMConfig()
    headers = dict(defaults.default_headers)
    if env.get("OPENROUTER_REFERER"):
        headers["HTTP-Referer"] = env["OPENROUTER_REFERER"]
    if env.get("OPENROUTER_APP_TITLE"):
        headers["X-Title"] = env["OPENROUTER_APP_TITLE"]

    try:
        timeout = int(env.get("LLM_REQUEST_TIMEOUT") or defaults.request_timeout)
        window_size = int(env.get("CONTEXT_WINDOW_SIZE") or 10)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc
    if window_size < 1:
        raise ConfigurationError("CONTEXT_WINDOW_SIZE must be at least 1")

    llm = ChatLLMConfig(
        endpoint=env.get("OPENROUTER_ENDPOINT") or defaults.endpoint,
        api_key=api_key,
        model=env.get("OPENROUTER_MODEL") or defaults.model,
        request_timeout=timeout,
        default_headers=headers,
    )
    config = ChatConfig(llm=llm, store_dir=store_dir, context_window_size=window_size)
    origins = env.get("ALLOWED_ORIGINS")
    if origins:
        config.allowed_origins = [origin.strip() for origin in origins.split(",") if origin.strip()]
    return config
