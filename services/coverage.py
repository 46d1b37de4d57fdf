"""Dimension coverage scheduling."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from agents.types import Dimension


class CoverageScheduler:
    """Hand out evaluation dimensions in ascending id order.

    Selection is deterministic: the smallest catalog id not yet consumed.
    Duplicate or unknown ids in ``consumed`` are ignored.
    """

    def __init__(self, catalog: Sequence[Dimension]) -> None:
        if not catalog:
            raise ValueError("dimension catalog must not be empty")
        ordered = sorted(catalog, key=lambda dim: dim.id)
        ids = [dim.id for dim in ordered]
        if len(set(ids)) != len(ids):
            raise ValueError("dimension ids must be unique")
        self._catalog: List[Dimension] = list(ordered)
        self._by_id: Dict[int, Dimension] = {dim.id: dim for dim in ordered}

    @property
    def size(self) -> int:
        return len(self._catalog)

    @property
    def catalog(self) -> List[Dimension]:
        return list(self._catalog)

    def remaining(self, consumed: Iterable[int]) -> List[Dimension]:
        used = set(consumed)
        return [dim for dim in self._catalog if dim.id not in used]

    def next_unused(self, consumed: Iterable[int]) -> Optional[Dimension]:
        """Smallest unused dimension, or None once the catalog is exhausted."""

        remaining = self.remaining(consumed)
        return remaining[0] if remaining else None

    def is_exhausted(self, consumed: Iterable[int]) -> bool:
        return self.next_unused(consumed) is None

    def get(self, dimension_id: int) -> Optional[Dimension]:
        return self._by_id.get(dimension_id)

    def name_for(self, dimension_id: int) -> str:
        dim = self._by_id.get(dimension_id)
        return dim.name if dim is not None else str(dimension_id)


__all__ = ["CoverageScheduler"]
