"""Client wrapper for chat-completions requests."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import ChatLLMConfig
from .errors import ProviderError

logger = logging.getLogger(__name__)


class ChatLLMClient:
    """Thin wrapper around an OpenAI-compatible chat-completions endpoint.

    Every call is a single attempt; retry policy belongs to the caller.
    """

    def __init__(self, config: ChatLLMConfig) -> None:
        self.config = config

    def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        model_kwargs: Optional[Dict[str, object]] = None,
    ) -> str:
        """Return the full completion text for ``messages``."""
        payload: Dict[str, object] = {
            "model": self.config.model,
            "messages": messages,
        }
        if model_kwargs:
            payload.update(model_kwargs)

        logger.debug(
            "Requesting completion from %s using model %s (%d message(s))",
            self.config.endpoint,
            self.config.model,
            len(messages),
        )
        try:
            response = requests.post(
                self.config.endpoint,
                json=payload,
                headers=self._headers(),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Completion request to %s failed: %s", self.config.endpoint, exc)
            raise ProviderError(f"Completion provider unreachable: {exc}", status_code=502) from exc

        if not response.ok:
            body = self._error_body(response)
            logger.error("Completion provider returned %s: %s", response.status_code, body)
            raise ProviderError(
                f"Completion provider returned {response.status_code}",
                status_code=response.status_code,
                payload=body,
            )

        try:
            data = response.json()
            message = data["choices"][0].get("message") or {}
            if not isinstance(message, dict):
                raise TypeError(f"message is {type(message).__name__}")
            content = message.get("content")
            if content is None:
                content = ""
            if not isinstance(content, str):
                raise TypeError(f"content is {type(content).__name__}")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            logger.error("Unusable completion payload: %s", response.text[:500])
            raise ProviderError("Completion provider returned an unusable response", status_code=502) from exc
        return content

    def _headers(self) -> Dict[str, str]:
        headers = dict(self.config.default_headers)
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    @staticmethod
    def _error_body(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text
