"""OpenAI-compatible chat-completions client used by the text delegates."""

from __future__ import annotations

import logging
import os
from copy import deepcopy
from typing import Any, Mapping, MutableMapping, Sequence

from openai import OpenAI

logger = logging.getLogger(__name__)


DEFAULT_EXTRA_BODY: Mapping[str, Any] = {
    "extra_body": {"chat_template_kwargs": {"enable_thinking": False}}
}

PROVIDERS = ("vllm", "deepseek", "openai")


class LLMClient:
    """Thin wrapper over :class:`openai.OpenAI` with provider defaults."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        provider: str = "openai",
        api_key: str | None = None,
        api_key_env: str | None = None,
        default_extra_body: Mapping[str, Any] | None = None,
    ) -> None:
        provider_key = provider.lower()
        if provider_key not in PROVIDERS:
            raise ValueError(f"Unsupported provider '{provider}'")

        if api_key is None:
            env_name = api_key_env or (
                "DEEPSEEK_API_KEY" if provider_key == "deepseek" else "OPENAI_API_KEY"
            )
            api_key = os.environ.get(env_name) or ""

        extra = default_extra_body
        if extra is None and provider_key == "vllm":
            extra = DEFAULT_EXTRA_BODY

        self._client = OpenAI(base_url=base_url, api_key=api_key)
        self.model = model
        self.provider = provider_key
        self.default_extra_body = dict(extra or {})

    def chat(
        self,
        messages: Sequence[Mapping[str, object]],
        *,
        temperature: float | None = None,
        extra_body: Mapping[str, Any] | None = None,
    ) -> str:
        payload: MutableMapping[str, Any] = {"model": self.model, "messages": list(messages)}
        if temperature is not None:
            payload["temperature"] = temperature
        merged = self._merge_extra(extra_body)
        if merged:
            payload.update(merged)

        logger.debug("Dispatching chat request: %s", payload)
        response = self._client.chat.completions.create(**payload)
        logger.debug("Chat raw response: %s", response)
        choice = response.choices[0].message
        return (getattr(choice, "content", "") or "").strip()

    def _merge_extra(
        self, extra_body: Mapping[str, Any] | None
    ) -> MutableMapping[str, Any] | None:
        if not self.default_extra_body and not extra_body:
            return None
        merged: MutableMapping[str, Any] = deepcopy(self.default_extra_body)
        for key, value in (extra_body or {}).items():
            current = merged.get(key)
            if isinstance(current, MutableMapping) and isinstance(value, Mapping):
                current.update(value)
            else:
                merged[key] = deepcopy(value)
        return merged


__all__ = ["LLMClient", "PROVIDERS"]
