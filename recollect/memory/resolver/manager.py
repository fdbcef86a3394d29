"""High-level entry points for memory requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .delegates import FactExtractor, IntentClassifier, ReplyComposer
from .router import IntentRouter
from .schemas import DELETE, SEARCH, UPDATE, Intent, MemoryResponse, PendingMutation
from .storage import FactStore
from .workflows import ConversationWorkflow, ErrorSink, MutationWorkflow, SearchWorkflow

logger = logging.getLogger(__name__)


@dataclass
class MemoryManager:
    """Route prompts to the right workflow and apply confirmed mutations.

    Holds no per-request state: a commit carries everything it needs, so a
    proposal that is never confirmed leaves nothing behind.
    """

    store: FactStore
    classifier: IntentClassifier
    extractor: FactExtractor
    composer: Optional[ReplyComposer] = None
    error_sink: Optional[ErrorSink] = None

    def __post_init__(self) -> None:
        self.router = IntentRouter(classifier=self.classifier)
        self.search_workflow = SearchWorkflow(
            store=self.store,
            error_sink=self.error_sink,
            composer=self.composer,
        )
        self.mutation_workflow = MutationWorkflow(store=self.store, error_sink=self.error_sink)
        self.conversation_workflow = ConversationWorkflow(
            store=self.store,
            error_sink=self.error_sink,
            extractor=self.extractor,
        )

    # ------------------------------------------------------------------
    # Prompt handling
    # ------------------------------------------------------------------
    def handle_prompt(self, prompt: Optional[str], user_id: Optional[str]) -> MemoryResponse:
        if not user_id:
            logger.warning("Memory request without a user id")
            return MemoryResponse(message="User ID is required for memory operations", status=400)

        if not isinstance(prompt, str) or not prompt.strip():
            logger.warning("Memory request without a prompt")
            return MemoryResponse(message="A prompt is required for memory operations", status=400)

        intent = self.router.resolve(prompt)
        return self.dispatch(intent, prompt, user_id)

    def dispatch(self, intent: Intent, prompt: str, user_id: str) -> MemoryResponse:
        if intent.kind == SEARCH:
            return self.search_workflow(intent.search_term or "", user_id)
        if intent.kind in (UPDATE, DELETE):
            return self.mutation_workflow.propose(
                intent.kind,
                intent.search_term or "",
                user_id,
                new_value=intent.new_value,
            )
        return self.conversation_workflow.capture_fact(prompt, user_id)

    # ------------------------------------------------------------------
    # Confirmed mutations
    # ------------------------------------------------------------------
    def commit_update(
        self,
        memory_id: Optional[str],
        new_value: Optional[str],
        user_id: Optional[str],
    ) -> MemoryResponse:
        pending = PendingMutation(
            kind=UPDATE, memory_id=memory_id, user_id=user_id, new_value=new_value
        )
        return self.mutation_workflow.commit(pending)

    def commit_delete(self, memory_id: Optional[str], user_id: Optional[str]) -> MemoryResponse:
        pending = PendingMutation(kind=DELETE, memory_id=memory_id, user_id=user_id)
        return self.mutation_workflow.commit(pending)


__all__ = ["MemoryManager"]
