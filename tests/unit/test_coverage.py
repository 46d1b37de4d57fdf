import pytest

from agents.types import Dimension
from services.coverage import CoverageScheduler


def _catalog(*ids):
    return [Dimension(id=i, name=f"dim-{i}") for i in ids]


def test_next_unused_walks_ids_in_ascending_order():
    scheduler = CoverageScheduler(_catalog(3, 1, 2))
    consumed = []
    picked = []
    while not scheduler.is_exhausted(consumed):
        dim = scheduler.next_unused(consumed)
        picked.append(dim.id)
        consumed.append(dim.id)
    assert picked == [1, 2, 3]
    assert scheduler.next_unused(consumed) is None


def test_duplicate_and_unknown_consumed_ids_are_ignored():
    scheduler = CoverageScheduler(_catalog(1, 2, 3))
    assert scheduler.next_unused([1, 1, 1, 99]).id == 2
    assert [dim.id for dim in scheduler.remaining([2, 2])] == [1, 3]


def test_catalog_is_sorted_and_looked_up_by_id():
    scheduler = CoverageScheduler(_catalog(12, 4))
    assert [dim.id for dim in scheduler.catalog] == [4, 12]
    assert scheduler.size == 2
    assert scheduler.get(12).name == "dim-12"
    assert scheduler.get(5) is None
    assert scheduler.name_for(5) == "5"


@pytest.mark.parametrize("catalog", [[], _catalog(1, 1)])
def test_rejects_empty_or_duplicate_catalog(catalog):
    with pytest.raises(ValueError):
        CoverageScheduler(catalog)
