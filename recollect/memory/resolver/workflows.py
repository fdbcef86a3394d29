"""Search, mutation and conversation workflows.

Every workflow turns its outcome into a :class:`MemoryResponse`. Delegate
failures fail open; store failures become a status 500 response and are
handed to the optional ``error_sink`` for operators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence

from .delegates import FactExtractor, ReplyComposer
from .ranking import rank
from .schemas import DELETE, MUTATION_KINDS, UPDATE, MemoryEntry, MemoryResponse, PendingMutation
from .storage import FactStore

logger = logging.getLogger(__name__)

ErrorSink = Callable[[str, BaseException, Mapping[str, object]], None]

FALLBACK_REPLY = "I understand, but I'm having trouble processing that right now."
DEFAULT_REPLY = "I'm here to help!"


def _plural(count: int) -> str:
    return "memory" if count == 1 else "memories"


def no_memories_message(search_term: str) -> str:
    return (
        f'I don\'t have any stored memories about "{search_term}". '
        "Would you like to tell me about it?"
    )


def fallback_summary(facts: Sequence[MemoryEntry]) -> str:
    count = len(facts)
    top_text = facts[0].text if facts else ""
    return f"I found {count} {_plural(count)} related to your question. {top_text}".strip()


@dataclass
class _StoreBound:
    store: FactStore
    error_sink: Optional[ErrorSink] = None

    def _report(self, location: str, exc: BaseException, context: Mapping[str, object]) -> None:
        logger.error("%s failed: %s", location, exc, exc_info=exc)
        if self.error_sink is None:
            return
        try:
            self.error_sink(location, exc, context)
        except Exception as sink_exc:
            logger.warning("Error sink raised while recording %s: %s", location, sink_exc)


@dataclass
class SearchWorkflow(_StoreBound):
    """Rank the user's facts against a term and compose an answer."""

    composer: Optional[ReplyComposer] = None

    def __call__(self, search_term: str, user_id: str) -> MemoryResponse:
        logger.info("Searching memories for %r", search_term)
        try:
            hits = self.store.search_facts(user_id, search_term)
        except Exception as exc:
            self._report("memory.search", exc, {"searchTerm": search_term, "userId": user_id})
            return MemoryResponse(
                message="Sorry, I couldn't search your memories right now.", status=500
            )

        ranked = rank(hits, search_term)
        if not ranked:
            return MemoryResponse(message=no_memories_message(search_term), results=[])

        logger.info(
            "Search for %r kept %s of %s hits (top score %s)",
            search_term,
            len(ranked),
            len(hits),
            ranked[0].match_count,
        )
        return MemoryResponse(message=self._summarize(ranked, search_term), results=ranked)

    def _summarize(self, facts: List[MemoryEntry], question: str) -> str:
        if self.composer is None:
            return fallback_summary(facts)
        try:
            reply = self.composer.compose(facts, question)
        except Exception as exc:
            logger.warning("Reply composition failed, using template: %s", exc)
            return fallback_summary(facts)
        if not isinstance(reply, str) or not reply.strip():
            logger.warning("Reply composer returned nothing, using template")
            return fallback_summary(facts)
        return reply.strip()


@dataclass
class MutationWorkflow(_StoreBound):
    """Two-phase update/delete: list candidates, then apply one selection."""

    def propose(
        self,
        kind: str,
        search_term: str,
        user_id: str,
        new_value: Optional[str] = None,
    ) -> MemoryResponse:
        if kind not in MUTATION_KINDS:
            raise ValueError(f"Unsupported mutation kind '{kind}'")

        if kind == UPDATE and not (new_value or "").strip():
            logger.warning("Update for %r has no new value", search_term)
            return MemoryResponse(
                message=(
                    f'I couldn\'t work out what "{search_term}" should be changed to. '
                    "Would you like to add this information instead?"
                ),
                action="not_found",
            )

        try:
            hits = self.store.search_facts(user_id, search_term)
        except Exception as exc:
            self._report(
                f"memory.{kind}.propose", exc, {"searchTerm": search_term, "userId": user_id}
            )
            return MemoryResponse(
                message=f"Sorry, I couldn't process your memory {self._noun(kind)} request right now.",
                status=500,
            )

        candidates = rank(hits, search_term, min_match=0, limit=None)
        if not candidates:
            logger.info("No memories found to %s for %r", kind, search_term)
            message = f'I couldn\'t find any memories about "{search_term}" to {kind}.'
            if kind == UPDATE:
                message += " Would you like to add this information instead?"
            return MemoryResponse(message=message, action="not_found")

        count = len(candidates)
        logger.info("Offering %s candidates to %s for %r", count, kind, search_term)
        return MemoryResponse(
            message=(
                f'I found {count} {_plural(count)} about "{search_term}". '
                f"Which one would you like to {kind}?"
            ),
            action=f"{kind}_choice",
            results=candidates,
            new_value=new_value if kind == UPDATE else None,
        )

    def commit(self, pending: PendingMutation) -> MemoryResponse:
        missing = pending.missing_fields()
        if missing:
            logger.warning("Rejecting %s commit, missing %s", pending.kind, ", ".join(missing))
            return MemoryResponse(
                message=f"Missing required parameters for memory {self._noun(pending.kind)}",
                status=400,
            )

        context = {"memoryId": pending.memory_id, "userId": pending.user_id}
        try:
            if pending.kind == UPDATE:
                applied = self.store.update_fact(
                    pending.user_id, pending.memory_id, pending.new_value.strip()
                )
            else:
                applied = self.store.delete_fact(pending.user_id, pending.memory_id)
        except Exception as exc:
            self._report(f"memory.{pending.kind}.commit", exc, context)
            return MemoryResponse(
                message=f"Sorry, I couldn't {pending.kind} your memory right now.", status=500
            )

        if not applied:
            self._report(
                f"memory.{pending.kind}.commit",
                LookupError(f"No memory {pending.memory_id!r} for this user"),
                context,
            )
            return MemoryResponse(
                message=f"Failed to {pending.kind} memory. Please try again.", status=500
            )

        logger.info("Memory %s: %s", "updated" if pending.kind == UPDATE else "deleted", pending.memory_id)
        if pending.kind == UPDATE:
            return MemoryResponse(
                message=f'I\'ve updated the memory to "{pending.new_value.strip()}".',
                action="updated",
            )
        return MemoryResponse(message="I've deleted the memory.", action="deleted")

    @staticmethod
    def _noun(kind: str) -> str:
        return "deletion" if kind == DELETE else "update"


@dataclass
class ConversationWorkflow(_StoreBound):
    """Reply to a chat message and store any fact it carries."""

    extractor: Optional[FactExtractor] = None

    def capture_fact(self, utterance: str, user_id: str) -> MemoryResponse:
        parsed = self._extract(utterance)
        if parsed is None:
            return MemoryResponse(message=FALLBACK_REPLY)

        reply = parsed.get("reply")
        reply = reply.strip() if isinstance(reply, str) and reply.strip() else DEFAULT_REPLY
        memory_text = parsed.get("memory")
        memory_text = memory_text.strip() if isinstance(memory_text, str) else ""

        if parsed.get("store") is not True or not memory_text:
            return MemoryResponse(message=reply)

        try:
            memory_id = self.store.append_fact(user_id, memory_text)
        except Exception as exc:
            self._report("memory.conversation", exc, {"userId": user_id})
            return MemoryResponse(
                message="Sorry, I couldn't process your memory message right now.", status=500
            )

        logger.info("Stored memory %s", memory_id)
        return MemoryResponse(message=reply, memory_id=str(memory_id))

    def _extract(self, utterance: str) -> Optional[Mapping[str, object]]:
        if self.extractor is None:
            return None
        try:
            parsed = self.extractor.extract(utterance)
        except Exception as exc:
            logger.warning("Fact extraction failed, storing nothing: %s", exc)
            return None
        if not isinstance(parsed, Mapping):
            logger.warning("Fact extractor answer is not an object: %r", parsed)
            return None
        return parsed


__all__ = [
    "ConversationWorkflow",
    "ErrorSink",
    "MutationWorkflow",
    "SearchWorkflow",
    "fallback_summary",
    "no_memories_message",
]
