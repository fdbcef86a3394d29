"""Resolve a free-text request into an :class:`Intent`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .delegates import IntentClassifier
from .schemas import CONVERSATION, INTENT_KINDS, UPDATE, Intent

logger = logging.getLogger(__name__)


def _text_field(raw: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def coerce_intent(raw: Any) -> Intent:
    """Validate a classifier answer, falling back to a conversation intent."""

    if not isinstance(raw, Mapping):
        logger.warning("Classifier answer is not an object: %r", raw)
        return Intent()

    kind = _text_field(raw, "intent", "kind")
    kind = kind.lower() if kind else None
    if kind not in INTENT_KINDS:
        logger.warning("Classifier answer has no usable intent: %r", raw)
        return Intent()
    if kind == CONVERSATION:
        return Intent()

    search_term = _text_field(raw, "search_term", "searchTerm")
    if not search_term:
        logger.warning("Classifier answer for %r lacks a search term: %r", kind, raw)
        return Intent()

    new_value = _text_field(raw, "new_value", "newValue") if kind == UPDATE else None
    return Intent(kind=kind, search_term=search_term, new_value=new_value)


@dataclass
class IntentRouter:
    """Ask the classifier what an utterance means; never raises."""

    classifier: IntentClassifier

    def resolve(self, utterance: str) -> Intent:
        if not isinstance(utterance, str) or not utterance.strip():
            return Intent()
        try:
            raw = self.classifier.classify(utterance)
        except Exception as exc:
            logger.warning("Intent classification failed, treating as conversation: %s", exc)
            return Intent()
        intent = coerce_intent(raw)
        logger.info("Resolved intent %s", intent.to_payload())
        return intent


__all__ = ["IntentRouter", "coerce_intent"]
