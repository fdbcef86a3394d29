"""Typed data structures used by the memory resolution engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

RESULT_TYPE = "memory"

SEARCH = "search"
UPDATE = "update"
DELETE = "delete"
CONVERSATION = "conversation"

INTENT_KINDS = frozenset({SEARCH, UPDATE, DELETE, CONVERSATION})
MUTATION_KINDS = frozenset({UPDATE, DELETE})


@dataclass
class MemoryEntry:
    """One stored fact, annotated with its score for the current query.

    ``match_count`` only has meaning inside the result set it came from.
    ``column`` and ``row_id`` are provenance handed back by the store and are
    never interpreted here.
    """

    id: str
    text: str
    created_at: str
    memory_date: str
    match_count: int = 0
    column: str = ""
    row_id: int | str = 0

    def to_payload(self) -> Mapping[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "createdAt": self.created_at,
            "memoryDate": self.memory_date,
            "column": self.column,
            "rowId": self.row_id,
            "matchCount": self.match_count,
        }


@dataclass
class Intent:
    """The resolved meaning of one utterance."""

    kind: str = CONVERSATION
    search_term: Optional[str] = None
    new_value: Optional[str] = None

    def to_payload(self) -> Mapping[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind}
        if self.search_term:
            payload["searchTerm"] = self.search_term
        if self.new_value:
            payload["newValue"] = self.new_value
        return payload


@dataclass(frozen=True)
class PendingMutation:
    """A user's selection, rebuilt in full from every commit request."""

    kind: str
    memory_id: Optional[str]
    user_id: Optional[str]
    new_value: Optional[str] = None

    def missing_fields(self) -> List[str]:
        missing = []
        if not isinstance(self.memory_id, str) or not self.memory_id.strip():
            missing.append("id")
        if not isinstance(self.user_id, str) or not self.user_id.strip():
            missing.append("userId")
        if self.kind == UPDATE and (
            not isinstance(self.new_value, str) or not self.new_value.strip()
        ):
            missing.append("newValue")
        return missing


@dataclass
class MemoryResponse:
    """One response per request; ``status`` mirrors an HTTP status code."""

    message: str
    action: Optional[str] = None
    results: Optional[List[MemoryEntry]] = None
    new_value: Optional[str] = None
    memory_id: Optional[str] = None
    status: int = 200

    @property
    def ok(self) -> bool:
        return self.status < 400

    def to_payload(self) -> Mapping[str, Any]:
        payload: Dict[str, Any] = {"message": self.message, "resultType": RESULT_TYPE}
        if self.action is not None:
            payload["action"] = self.action
        if self.results is not None:
            payload["results"] = [entry.to_payload() for entry in self.results]
        if self.new_value is not None:
            payload["newValue"] = self.new_value
        if self.memory_id is not None:
            payload["memoryId"] = self.memory_id
        return payload


__all__ = [
    "CONVERSATION",
    "DELETE",
    "INTENT_KINDS",
    "Intent",
    "MUTATION_KINDS",
    "MemoryEntry",
    "MemoryResponse",
    "PendingMutation",
    "RESULT_TYPE",
    "SEARCH",
    "UPDATE",
]
