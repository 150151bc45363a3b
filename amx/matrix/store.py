"""Combination storage: in-memory (default) or file-based.

The store is the only mutable shared resource. It holds immutable snapshots
keyed by id and remembers insertion order; callers replace a snapshot with
``update`` after running it through the state machine.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from amx.config import get_settings
from amx.errors import NotFoundError
from amx.matrix.combination import evolve
from amx.schemas.models import Combination

logger = logging.getLogger(__name__)


class CombinationStore(Protocol):
    def add(self, combination: Combination) -> Combination: ...
    def get(self, combination_id: str) -> Combination | None: ...
    def update(self, combination: Combination) -> None: ...
    def list(self) -> list[Combination]: ...


def require(store: CombinationStore, combination_id: str) -> Combination:
    """Return the combination or raise NotFoundError."""
    combination = store.get(combination_id)
    if combination is None:
        raise NotFoundError(combination_id)
    return combination


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class InMemoryCombinationStore:
    """Dict-backed store. Lives as long as the process."""

    def __init__(self):
        self._items: dict[str, Combination] = {}
        self._sequence = 0

    def add(self, combination: Combination) -> Combination:
        """Insert and stamp the next creation sequence number."""
        if combination.id in self._items:
            raise ValueError(f"Combination already stored: {combination.id}")
        self._sequence += 1
        stored = evolve(combination, sequence=self._sequence)
        self._items[stored.id] = stored
        return stored

    def get(self, combination_id: str) -> Combination | None:
        return self._items.get(combination_id)

    def update(self, combination: Combination) -> None:
        if combination.id not in self._items:
            raise NotFoundError(combination.id)
        self._items[combination.id] = combination

    def list(self) -> list[Combination]:
        return list(self._items.values())


# ---------------------------------------------------------------------------
# File-based implementation
# ---------------------------------------------------------------------------

class FileCombinationStore:
    """Persist combinations as JSON files. Survives restarts within same data dir."""

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._index_path = self._dir / "index.json"
        self._order: list[str] = self._load_index()

    def _load_index(self) -> list[str]:
        """Combination ids in insertion order."""
        if not self._index_path.exists():
            return []
        try:
            with open(self._index_path, "r", encoding="utf-8") as f:
                return list(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Combination index unreadable (%s); starting empty", e)
            return []

    def _save_index(self) -> None:
        with open(self._index_path, "w", encoding="utf-8") as f:
            json.dump(self._order, f, indent=2)

    def _path(self, combination_id: str) -> Path:
        return self._dir / f"{combination_id}.json"

    def add(self, combination: Combination) -> Combination:
        if combination.id in self._order:
            raise ValueError(f"Combination already stored: {combination.id}")
        last = self.get(self._order[-1]) if self._order else None
        stored = evolve(combination, sequence=(last.sequence if last else 0) + 1)
        self._write(stored)
        self._order.append(stored.id)
        self._save_index()
        return stored

    def get(self, combination_id: str) -> Combination | None:
        path = self._path(combination_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return Combination.model_validate(json.load(f))

    def update(self, combination: Combination) -> None:
        if combination.id not in self._order:
            raise NotFoundError(combination.id)
        self._write(combination)

    def list(self) -> list[Combination]:
        items = []
        for combination_id in self._order:
            combination = self.get(combination_id)
            if combination is not None:
                items.append(combination)
        return items

    def _write(self, combination: Combination) -> None:
        with open(self._path(combination.id), "w", encoding="utf-8") as f:
            json.dump(combination.model_dump(mode="json"), f, indent=2)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: CombinationStore | None = None


def get_combination_store() -> CombinationStore:
    """Return the process-wide store (file-based if configured, else in-memory)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.amx_store_backend == "file":
        _store = FileCombinationStore(settings.combinations_dir)
        logger.info("Using file-based combination store (%s)", settings.combinations_dir)
    else:
        _store = InMemoryCombinationStore()
        logger.info("Using in-memory combination store")
    return _store
