"""Normalisation, adaptive filtering and ranking of raw fact-store hits."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional

from .schemas import MemoryEntry

logger = logging.getLogger(__name__)

MAX_RESULTS = 10
# Below this many rows nothing is filtered out, whatever the scores.
MIN_ROWS_TO_FILTER = 3
FALLBACK_ID_PREFIX = "legacy_"


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_count(value: Any) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 0
    return max(count, 0)


def normalize_hit(raw: Mapping[str, Any]) -> MemoryEntry:
    """Turn one raw store hit into a :class:`MemoryEntry`, defaulting gaps.

    A missing id gets a ``legacy_`` prefixed identifier; store ids are bare
    uuids so the two can never collide.
    """

    memory_id = _first(raw, "id")
    if memory_id is None:
        memory_id = f"{FALLBACK_ID_PREFIX}{uuid.uuid4().hex}"
    created_at = _first(raw, "createdAt", "created_at", "timestamp")
    memory_date = _first(raw, "memoryDate", "memory_date", "date")
    return MemoryEntry(
        id=str(memory_id),
        text=str(raw.get("text") or ""),
        created_at=str(created_at or datetime.utcnow().isoformat()),
        memory_date=str(memory_date or date.today().isoformat()),
        match_count=_as_count(_first(raw, "matchCount", "match_count")),
        column=str(raw.get("column") or ""),
        row_id=_first(raw, "rowId", "row_id") or 0,
    )


def build_memory_table(raw_hits: Optional[Iterable[Mapping[str, Any]]]) -> List[MemoryEntry]:
    if not raw_hits:
        return []
    return [normalize_hit(hit) for hit in raw_hits]


def adaptive_threshold(best_score: int) -> int:
    if best_score > 10:
        return 3
    if best_score > 5:
        return 2
    return 1


def filter_and_sort(table: Iterable[MemoryEntry], min_match: int = 1) -> List[MemoryEntry]:
    """Sort by ``match_count`` descending, then drop weak rows if it is safe.

    Rows are only dropped when there are more than three of them and the best
    one already clears ``min_match``; otherwise the sorted table is returned
    whole.
    """

    ordered = sorted(table, key=lambda entry: entry.match_count, reverse=True)
    if len(ordered) > MIN_ROWS_TO_FILTER and ordered[0].match_count >= min_match:
        return [entry for entry in ordered if entry.match_count >= min_match]
    return ordered


def rank(
    raw_hits: Optional[Iterable[Mapping[str, Any]]],
    query: str,
    *,
    min_match: Optional[int] = None,
    limit: Optional[int] = MAX_RESULTS,
) -> List[MemoryEntry]:
    """Build the ranked memory table for ``query``.

    ``min_match=None`` derives the cutoff from the best score; ``0`` keeps
    every hit. ``limit=None`` disables truncation.
    """

    table = build_memory_table(raw_hits)
    if not table:
        logger.debug("No raw hits for %r", query)
        return []

    if min_match is None:
        best_score = max(entry.match_count for entry in table)
        min_match = adaptive_threshold(best_score)
        logger.debug("Using match threshold %s (best score %s) for %r", min_match, best_score, query)

    ranked = filter_and_sort(table, min_match)
    if limit is not None:
        ranked = ranked[:limit]
    logger.debug("Ranked %s of %s hits for %r", len(ranked), len(table), query)
    return ranked


__all__ = [
    "MAX_RESULTS",
    "adaptive_threshold",
    "build_memory_table",
    "filter_and_sort",
    "normalize_hit",
    "rank",
]
