"""Text-understanding delegates: intent classification, fact extraction and
reply composition.

Each delegate is a one-method protocol so callers can inject deterministic
stand-ins. The ``LLM*`` implementations send a fixed system prompt plus a JSON
payload through :class:`~.clients.LLMClient`. They raise on malformed output;
deciding what a malformed answer means is left to the workflows.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Sequence

from .clients import LLMClient
from .prompts import EXTRACTION_PROMPT, INTENT_PROMPT, SUMMARY_PROMPT
from .schemas import MemoryEntry

logger = logging.getLogger(__name__)


class IntentClassifier(Protocol):
    def classify(self, utterance: str) -> Mapping[str, Any]:
        ...


class FactExtractor(Protocol):
    def extract(self, utterance: str) -> Mapping[str, Any]:
        ...


class ReplyComposer(Protocol):
    def compose(self, facts: Sequence[MemoryEntry], question: str) -> str:
        ...


class ChatClient(Protocol):
    def chat(
        self,
        messages: Sequence[Mapping[str, object]],
        *,
        temperature: float | None = None,
        extra_body: Mapping[str, Any] | None = None,
    ) -> str:
        ...


def extract_json(message: str) -> Optional[Mapping[str, Any]]:
    """Parse the first JSON object in ``message``.

    Tolerates markdown fences, a leading ``json`` tag and prose around the
    object. Returns ``None`` when no object can be found.
    """

    sanitized = (message or "").strip()
    if sanitized.startswith("```"):
        sanitized = sanitized[3:]
        if sanitized.lower().startswith("json"):
            sanitized = sanitized[4:]
        sanitized = sanitized.lstrip("\n")
        if sanitized.endswith("```"):
            sanitized = sanitized[:-3]
    elif sanitized.lower().startswith("json"):
        sanitized = sanitized[4:].lstrip(": ")

    try:
        parsed = json.loads(sanitized)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, Mapping):
        return parsed

    start = None
    depth = 0
    in_string = False
    escape = False
    for idx, char in enumerate(sanitized):
        if start is None:
            if char == "{":
                start = idx
                depth = 1
        elif in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                try:
                    blob = json.loads(sanitized[start : idx + 1])
                except json.JSONDecodeError:
                    return None
                return blob if isinstance(blob, Mapping) else None
    return None


@dataclass
class _JSONDelegate:
    llm_client: ChatClient
    temperature: float | None = None

    def _invoke(self, system_prompt: str, payload: Mapping[str, object]) -> Mapping[str, Any]:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": json.dumps(payload, ensure_ascii=False)},
        ]
        raw = self.llm_client.chat(messages, temperature=self.temperature)
        parsed = extract_json(raw)
        if parsed is None:
            raise ValueError(f"Delegate returned no JSON object: {raw!r}")
        return parsed


@dataclass
class LLMIntentClassifier(_JSONDelegate):
    temperature: float | None = 0.2

    def classify(self, utterance: str) -> Mapping[str, Any]:
        return self._invoke(INTENT_PROMPT, {"message": utterance})


@dataclass
class LLMFactExtractor(_JSONDelegate):
    temperature: float | None = 0.6

    def extract(self, utterance: str) -> Mapping[str, Any]:
        return self._invoke(EXTRACTION_PROMPT, {"message": utterance})


@dataclass
class LLMReplyComposer:
    """Summarise ranked facts into a short answer to ``question``."""

    llm_client: ChatClient
    temperature: float | None = 0.3

    def compose(self, facts: Sequence[MemoryEntry], question: str) -> str:
        payload = {
            "question": question,
            "memories": [
                {"text": fact.text, "score": fact.match_count, "date": fact.memory_date}
                for fact in facts
            ],
        }
        messages = [
            {"role": "system", "content": SUMMARY_PROMPT},
            {"role": "user", "content": json.dumps(payload, ensure_ascii=False)},
        ]
        return self.llm_client.chat(messages, temperature=self.temperature).strip()


def build_llm_delegates(
    llm_client: LLMClient,
) -> tuple[LLMIntentClassifier, LLMFactExtractor, LLMReplyComposer]:
    return (
        LLMIntentClassifier(llm_client=llm_client),
        LLMFactExtractor(llm_client=llm_client),
        LLMReplyComposer(llm_client=llm_client),
    )


__all__ = [
    "ChatClient",
    "FactExtractor",
    "IntentClassifier",
    "LLMFactExtractor",
    "LLMIntentClassifier",
    "LLMReplyComposer",
    "ReplyComposer",
    "build_llm_delegates",
    "extract_json",
]
