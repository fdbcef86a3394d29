from __future__ import annotations

from typing import Any, List, Mapping, Sequence

from recollect.memory.resolver.ranking import (
    adaptive_threshold,
    build_memory_table,
    filter_and_sort,
    rank,
)


def _hits(scores: Sequence[int]) -> List[Mapping[str, Any]]:
    return [
        {"id": f"m{idx}", "text": f"fact {idx}", "matchCount": score}
        for idx, score in enumerate(scores)
    ]


def test_adaptive_threshold_bands() -> None:
    assert adaptive_threshold(0) == 1
    assert adaptive_threshold(5) == 1
    assert adaptive_threshold(6) == 2
    assert adaptive_threshold(10) == 2
    assert adaptive_threshold(11) == 3


def test_strong_top_score_drops_rows_below_three() -> None:
    ranked = rank(_hits([12, 1, 2, 5, 3]), "dog name")

    assert [entry.match_count for entry in ranked] == [12, 5, 3]
    assert all(entry.match_count >= 3 for entry in ranked)


def test_medium_top_score_uses_threshold_two() -> None:
    ranked = rank(_hits([6, 1, 2, 1]), "job")

    assert [entry.match_count for entry in ranked] == [6, 2]


def test_three_or_fewer_rows_are_never_dropped() -> None:
    ranked = rank(_hits([20, 0, 1]), "birthday")

    assert [entry.match_count for entry in ranked] == [20, 1, 0]


def test_weak_top_score_keeps_everything() -> None:
    ranked = rank(_hits([0, 0, 0, 0, 0]), "color")

    assert len(ranked) == 5


def test_sort_is_stable_for_ties() -> None:
    hits = [
        {"id": "a", "text": "a", "matchCount": 2},
        {"id": "b", "text": "b", "matchCount": 5},
        {"id": "c", "text": "c", "matchCount": 2},
        {"id": "d", "text": "d", "matchCount": 5},
    ]

    ranked = rank(hits, "letters")

    assert [entry.id for entry in ranked] == ["b", "d", "a", "c"]


def test_search_results_are_capped_at_ten() -> None:
    ranked = rank(_hits([1] * 15), "pizza")

    assert len(ranked) == 10
    assert [entry.id for entry in ranked] == [f"m{idx}" for idx in range(10)]


def test_include_everything_mode_keeps_all_rows() -> None:
    ranked = rank(_hits([12] + [0] * 14), "pizza", min_match=0, limit=None)

    assert len(ranked) == 15


def test_empty_hits_give_empty_table() -> None:
    assert rank([], "anything") == []
    assert rank(None, "anything") == []


def test_missing_fields_get_defaults() -> None:
    table = build_memory_table([{"text": "User likes pizza"}, {"text": "no id", "matchCount": None}])

    assert table[0].id.startswith("legacy_")
    assert table[1].id.startswith("legacy_")
    assert table[0].id != table[1].id
    assert table[0].match_count == 0
    assert table[1].match_count == 0
    assert table[0].column == ""
    assert table[0].row_id == 0


def test_memory_date_passes_through_untouched() -> None:
    table = build_memory_table(
        [{"id": "x", "text": "dentist", "memory_date": "next Tuesday-ish", "matchCount": "3"}]
    )

    assert table[0].memory_date == "next Tuesday-ish"
    assert table[0].match_count == 3
    assert table[0].to_payload()["memoryDate"] == "next Tuesday-ish"


def test_filter_and_sort_does_not_mutate_input() -> None:
    table = build_memory_table(_hits([1, 9, 4, 0]))
    original = [entry.id for entry in table]

    filter_and_sort(table, 2)

    assert [entry.id for entry in table] == original
