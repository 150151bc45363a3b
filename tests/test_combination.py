"""Tests for combination construction, favourites and engagement scores."""

import math

import pydantic
import pytest

from amx.errors import RangeError, ValidationError
from amx.matrix.combination import attach_score, create, evolve, set_favourite
from amx.matrix.state import begin_generation
from amx.schemas.models import Combination, CombinationStatus


def test_create_starts_pending(image_asset):
    c = create({"hero": image_asset})
    assert c.status == CombinationStatus.PENDING
    assert c.progress == 0
    assert c.preview_url is None
    assert c.engagement_score is None
    assert c.is_favourite is False
    assert c.assets == {"hero": image_asset}


@pytest.mark.parametrize(
    "field",
    [{"status": CombinationStatus.COMPLETED}, {"progress": 50.0}, {"preview_url": "https://x/y.jpg"}],
)
def test_create_does_not_accept_render_state(image_asset, field):
    with pytest.raises(TypeError):
        create({"hero": image_asset}, **field)


def test_create_assigns_unique_ids(image_asset):
    a = create({"hero": image_asset})
    b = create({"hero": image_asset})
    assert a.id != b.id


def test_create_allows_empty_slot(image_asset):
    c = create({"hero": image_asset, "logo": None})
    assert c.assets["logo"] is None
    assert c.non_null_asset_ids() == ["img-1"]


def test_create_rejects_empty_assignment():
    with pytest.raises(ValidationError):
        create({})


def test_create_rejects_duplicate_variable_pairs(image_asset, video_asset):
    with pytest.raises(ValidationError, match="Duplicate"):
        create([("hero", image_asset), ("hero", video_asset)])


def test_create_rejects_blank_variable_name(image_asset):
    with pytest.raises(ValidationError):
        create({"  ": image_asset})


def test_has_video(image_asset, video_asset):
    assert create({"hero": image_asset, "clip": video_asset}).has_video()
    assert not create({"hero": image_asset}).has_video()


class TestFavourite:
    def test_set_favourite_keeps_status(self, image_asset):
        generating = begin_generation(create({"hero": image_asset}))
        fav = set_favourite(generating, True)
        assert fav.is_favourite is True
        assert fav.status == CombinationStatus.GENERATING
        assert fav.progress == generating.progress

    def test_unset_favourite(self, image_asset):
        c = set_favourite(create({"hero": image_asset}), True)
        assert set_favourite(c, False).is_favourite is False

    def test_original_snapshot_untouched(self, image_asset):
        c = create({"hero": image_asset})
        set_favourite(c, True)
        assert c.is_favourite is False


class TestAttachScore:
    @pytest.mark.parametrize("score", [0, 0.0, 0.55, 1, 1.0])
    def test_accepts_bounds(self, image_asset, score):
        c = attach_score(create({"hero": image_asset}), score)
        assert c.engagement_score == pytest.approx(score)

    @pytest.mark.parametrize("score", [-0.01, 1.01, 42, math.nan, "high", None])
    def test_rejects_out_of_range(self, image_asset, score):
        with pytest.raises(RangeError):
            attach_score(create({"hero": image_asset}), score)

    def test_status_untouched(self, completed_combination, image_asset):
        c = completed_combination({"hero": image_asset})
        scored = attach_score(c, 0.8)
        assert scored.status == CombinationStatus.COMPLETED
        assert scored.preview_url == c.preview_url


class TestSnapshotInvariants:
    def test_completed_requires_preview(self, image_asset):
        with pytest.raises(pydantic.ValidationError):
            Combination(id="c1", assets={"hero": image_asset}, status=CombinationStatus.COMPLETED)

    @pytest.mark.parametrize("status", ["pending", "generating", "failed"])
    def test_preview_only_when_completed(self, image_asset, status):
        with pytest.raises(pydantic.ValidationError):
            Combination(id="c1", assets={"hero": image_asset}, status=status, preview_url="https://x/y.jpg")

    def test_progress_bounds(self, image_asset):
        with pytest.raises(pydantic.ValidationError):
            evolve(create({"hero": image_asset}), progress=120)

    def test_snapshots_are_frozen(self, image_asset):
        c = create({"hero": image_asset})
        with pytest.raises(pydantic.ValidationError):
            c.status = CombinationStatus.COMPLETED
