"""Combination model, state machine, ordering, enumeration and storage."""

from amx.matrix.combination import attach_score, create, set_favourite
from amx.matrix.ordering import order
from amx.matrix.permutations import VariableSlot, enumerate_assignments
from amx.matrix.store import (
    CombinationStore,
    FileCombinationStore,
    InMemoryCombinationStore,
    get_combination_store,
)

__all__ = [
    "CombinationStore",
    "FileCombinationStore",
    "InMemoryCombinationStore",
    "VariableSlot",
    "attach_score",
    "create",
    "enumerate_assignments",
    "get_combination_store",
    "order",
    "set_favourite",
]
