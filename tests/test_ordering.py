"""Tests for the ordering engine."""

import pytest

from amx.matrix.combination import attach_score, create, set_favourite
from amx.matrix.ordering import order
from amx.matrix.state import apply_event, begin_generation
from amx.schemas.events import RenderCompleted, RenderFailed, RenderProgress
from amx.schemas.models import SortMode


@pytest.fixture
def make(image_asset):
    """Factory for combinations with explicit ordering fields."""

    def _make(cid, status="pending", score=None, favourite=False, progress=0.0, sequence=0):
        c = create({"hero": image_asset}, combination_id=cid, sequence=sequence)
        if status != "pending":
            c = begin_generation(c)
            if progress:
                c = apply_event(c, RenderProgress(combination_id=cid, percent=progress)).combination
            if status == "completed":
                c = apply_event(c, RenderCompleted(combination_id=cid, url=f"https://x/{cid}.jpg")).combination
            elif status == "failed":
                c = apply_event(c, RenderFailed(combination_id=cid, reason="render error")).combination
        if score is not None:
            c = attach_score(c, score)
        return set_favourite(c, favourite)

    return _make


def _ids(items):
    return [c.id for c in items]


class TestPrimaryKey:
    def test_score_descending_unscored_last(self, make):
        items = [make("a"), make("b", score=0.2), make("c", score=0.9)]
        assert _ids(order(items, SortMode.SCORE)) == ["c", "b", "a"]

    def test_favourites_first(self, make):
        items = [make("a"), make("b", favourite=True), make("c")]
        assert _ids(order(items, SortMode.FAVOURITE)) == ["b", "a", "c"]

    def test_date_newest_first(self, make):
        items = [make("a", sequence=1), make("b", sequence=3), make("c", sequence=2)]
        assert _ids(order(items, SortMode.DATE)) == ["b", "c", "a"]

    def test_accepts_mode_string(self, make):
        items = [make("a", score=0.1), make("b", score=0.5)]
        assert _ids(order(items, "score")) == ["b", "a"]

    def test_unknown_mode_rejected(self, make):
        with pytest.raises(ValueError):
            order([make("a")], "alphabetical")


class TestTieBreakers:
    def test_completed_wins_equal_scores(self, make):
        items = [make("gen", status="generating", score=0.5, progress=90), make("done", status="completed", score=0.5)]
        assert _ids(order(items, SortMode.SCORE)) == ["done", "gen"]

    def test_completed_first_among_non_favourites(self, make):
        items = [make("p"), make("f", status="failed"), make("c", status="completed")]
        assert _ids(order(items, SortMode.FAVOURITE)) == ["c", "p", "f"]

    def test_progress_within_same_status(self, make):
        items = [make("slow", status="generating", progress=10), make("fast", status="generating", progress=80)]
        assert _ids(order(items, SortMode.SCORE)) == ["fast", "slow"]

    def test_progress_not_compared_across_statuses(self, make):
        items = [make("p"), make("g", status="generating", progress=60), make("f", status="failed")]
        # pending, generating and failed tie; insertion order is kept
        assert _ids(order(items, SortMode.SCORE)) == ["p", "g", "f"]


class TestStability:
    def test_repeat_calls_identical(self, make):
        items = [make(str(i), score=0.5) for i in range(10)]
        assert _ids(order(items)) == _ids(order(items))
        assert _ids(order(items)) == [str(i) for i in range(10)]

    def test_input_not_modified(self, make):
        items = [make("a"), make("b", score=0.9)]
        order(items)
        assert _ids(items) == ["a", "b"]
