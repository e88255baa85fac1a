"""
tests/test_ranking.py — Competition Ranking Tests
==================================================
"""

from __future__ import annotations

import pytest

from karmabot.engine.ranking import RankedItem, ScoreRow, rank_items


def _rows(*pairs):
    return [ScoreRow(item=item, score=score) for item, score in pairs]


class TestRankAssignment:
    def test_ties_share_rank_and_skip(self):
        rows = _rows(("UA", 54), ("UB", 54), ("UC", 52), ("UD", 34), ("UE", 34), ("UF", 34), ("UG", 1))
        ranks = [r.rank for r in rank_items(rows, "users", "object")]
        assert ranks == [1, 1, 3, 4, 4, 4, 7]

    def test_no_ties(self):
        ranks = [r.rank for r in rank_items(_rows(("UA", 3), ("UB", 2), ("UC", 1)), fmt="object")]
        assert ranks == [1, 2, 3]

    def test_reranking_is_stable(self):
        rows = _rows(("UA", 5), ("UB", 5), ("UC", 2))
        first = rank_items(rows, fmt="object")
        again = rank_items(
            [ScoreRow(item=r.item_id, score=int(r.score.split()[0])) for r in first],
            fmt="object",
        )
        assert [(r.rank, r.item_id) for r in again] == [(r.rank, r.item_id) for r in first]

    def test_empty_input(self):
        assert rank_items([], "users", "slack") == []


class TestFiltering:
    def test_users_only(self):
        rows = _rows(("UA", 5), ("pizza", 4), ("UB", 3))
        assert [r.item_id for r in rank_items(rows, "users", "object")] == ["UA", "UB"]

    def test_things_only(self):
        rows = _rows(("UA", 5), ("pizza", 4), ("coffee", 4))
        ranked = rank_items(rows, "things", "object")
        assert [(r.rank, r.item_id) for r in ranked] == [(1, "pizza"), (1, "coffee")]

    def test_invalid_item_type(self):
        with pytest.raises(ValueError):
            rank_items([], "robots")

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            rank_items([], "users", "html")


class TestFormats:
    def test_slack_lines(self):
        lines = rank_items(_rows(("UA", 3), ("UB", 1)), "users", "slack")
        assert lines == [
            "1. <@UA> [3 points] :muscle:",
            "2. <@UB> [1 point]",
        ]

    def test_slack_things_get_tada(self):
        lines = rank_items(_rows(("pizza", 2),), "things", "slack")
        assert lines == ["1. Pizza [2 points] :tada:"]

    def test_object_uses_stored_name(self):
        rows = [ScoreRow(item="UA", score=2, name="alice smith")]
        assert rank_items(rows, "users", "object") == [
            RankedItem(rank=1, item="Alice smith", score="2 points", item_id="UA")
        ]

    def test_object_falls_back_to_id(self):
        ranked = rank_items([ScoreRow(item="UA", score=1)], "users", "object")
        assert ranked[0].item == "UA"
        assert ranked[0].score == "1 point"
