"""Combination construction and the status-independent mutators (favourite, score)."""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Union

from amx.errors import RangeError, ValidationError
from amx.schemas.models import AssetRef, Combination

AssetAssignment = Union[
    Mapping[str, AssetRef | None],
    Iterable[tuple[str, AssetRef | None]],
]


def new_combination_id() -> str:
    return uuid.uuid4().hex


def _normalise_assets(assets: AssetAssignment) -> dict[str, AssetRef | None]:
    """Return a fresh variable → asset dict; reject empty, blank or duplicate names."""
    pairs = list(assets.items()) if isinstance(assets, Mapping) else list(assets)
    if not pairs:
        raise ValidationError("A combination needs at least one variable assignment")

    result: dict[str, AssetRef | None] = {}
    for name, asset in pairs:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(f"Variable name must be a non-empty string, got {name!r}")
        if name in result:
            raise ValidationError(f"Duplicate variable name: {name}")
        result[name] = asset
    return result


def create(
    assets: AssetAssignment,
    *,
    sequence: int = 0,
    combination_id: str | None = None,
    aspect_ratio: str | None = None,
) -> Combination:
    """Build a pending combination. Raises ValidationError on malformed assignments."""
    return Combination(
        id=combination_id or new_combination_id(),
        assets=_normalise_assets(assets),
        sequence=sequence,
        aspect_ratio=aspect_ratio,
    )


def set_favourite(combination: Combination, flag: bool) -> Combination:
    return evolve(combination, is_favourite=bool(flag))


def attach_score(combination: Combination, score: float) -> Combination:
    """Set the engagement score. Raises RangeError unless 0 <= score <= 1."""
    try:
        value = float(score)
    except (TypeError, ValueError):
        raise RangeError(f"Engagement score must be a number, got {score!r}")
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise RangeError(f"Engagement score must be within [0, 1], got {score!r}")
    return evolve(combination, engagement_score=value)


def evolve(combination: Combination, **changes: Any) -> Combination:
    """Return a validated copy with ``changes`` applied (``model_copy`` skips validation)."""
    data = dict(combination)
    data.update(changes)
    return Combination(**data)
