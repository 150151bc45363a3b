"""Enumerate combinations from per-variable candidate assets.

Each variable offers a list of candidate assets. Locked variables always take
their first candidate; every other variable is varied, producing the
cartesian product in variable order. ``max_combinations`` truncates the
product as soon as the cap is reached.
"""

from __future__ import annotations

from itertools import islice, product

from pydantic import BaseModel, Field

from amx.errors import ValidationError
from amx.schemas.models import AssetRef


class VariableSlot(BaseModel):
    """A template variable and the assets that may fill it."""

    name: str
    candidates: list[AssetRef] = Field(default_factory=list)
    locked: bool = False


def enumerate_assignments(
    slots: list[VariableSlot],
    max_combinations: int | None = None,
    vary: list[str] | None = None,
) -> list[dict[str, AssetRef | None]]:
    """Return one variable → asset mapping per combination.

    ``vary`` restricts variation to the named variables; the rest behave as
    locked. Variables with no candidates are kept as empty slots (None).
    Raises ValidationError when nothing can vary or names collide.
    """
    names = [s.name for s in slots]
    if len(set(names)) != len(names):
        raise ValidationError("Duplicate variable names in matrix slots")
    if max_combinations is not None and max_combinations < 1:
        raise ValidationError("max_combinations must be at least 1")

    varying = [
        s for s in slots
        if not s.locked and s.candidates and (not vary or s.name in vary)
    ]
    if not varying:
        raise ValidationError("No variables available for permutation")

    varying_names = {s.name for s in varying}
    fixed: dict[str, AssetRef | None] = {}
    for s in slots:
        if s.name in varying_names:
            continue
        fixed[s.name] = s.candidates[0] if s.candidates else None

    choices = product(*(s.candidates for s in varying))
    if max_combinations is not None:
        choices = islice(choices, max_combinations)

    assignments: list[dict[str, AssetRef | None]] = []
    for picked in choices:
        assignment = dict(fixed)
        assignment.update({s.name: asset for s, asset in zip(varying, picked)})
        # Keep the caller's variable order
        assignments.append({name: assignment[name] for name in names})
    return assignments
