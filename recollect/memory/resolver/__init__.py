"""Memory resolution and mutation engine.

This subpackage lets a user recall, correct or erase personal facts through
free-text requests. It wires together

* prompt templates for the intent, extraction and summary delegates,
* an OpenAI-compatible chat client backing those delegates,
* a SQLite keyword store that scores facts against a loose query,
* adaptive ranking of search hits, and
* workflows for search, two-phase update/delete and fact capture.
"""

from .clients import LLMClient
from .delegates import (
    FactExtractor,
    IntentClassifier,
    LLMFactExtractor,
    LLMIntentClassifier,
    LLMReplyComposer,
    ReplyComposer,
)
from .manager import MemoryManager
from .prompts import EXTRACTION_PROMPT, INTENT_PROMPT, SUMMARY_PROMPT
from .ranking import rank
from .router import IntentRouter
from .runtime import MemoryRuntime, main as runtime_main
from .schemas import Intent, MemoryEntry, MemoryResponse, PendingMutation
from .storage import FactDatabase, FactStore
from .workflows import ConversationWorkflow, MutationWorkflow, SearchWorkflow

__all__ = [
    "ConversationWorkflow",
    "EXTRACTION_PROMPT",
    "FactDatabase",
    "FactExtractor",
    "FactStore",
    "INTENT_PROMPT",
    "Intent",
    "IntentClassifier",
    "IntentRouter",
    "LLMClient",
    "LLMFactExtractor",
    "LLMIntentClassifier",
    "LLMReplyComposer",
    "MemoryEntry",
    "MemoryManager",
    "MemoryResponse",
    "MemoryRuntime",
    "MutationWorkflow",
    "PendingMutation",
    "ReplyComposer",
    "SUMMARY_PROMPT",
    "SearchWorkflow",
    "rank",
    "runtime_main",
]
