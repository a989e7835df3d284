"""Map a classifier's free-text answer onto a category id.

Resolution has two independent stages:

1. exact, case-insensitive lookup in the name index;
2. a containment fallback (predicted name contains an indexed name or the
   other way round) that tolerates near-miss phrasing such as
   "Office Supplies Store" for "Office Supplies".

The fallback returns the first index entry that satisfies containment, in
index insertion order. When several names share a substring ("Travel" and
"Business Travel") the winner depends on that order, so it can pick the less
specific category. This is a known precision/recall trade-off.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol, TypeVar
from uuid import UUID

T = TypeVar("T")


class NamedCategory(Protocol):
    id: UUID
    name: str


def clean_prediction(predicted: str | None) -> str:
    return (predicted or "").strip().strip("\"'").strip().lower()


def exact_match(predicted: str | None, index: Mapping[str, T]) -> T | None:
    key = clean_prediction(predicted)
    if not key:
        return None
    return index.get(key)


def fuzzy_match(predicted: str | None, index: Mapping[str, T]) -> T | None:
    """Containment fallback. Empty predictions never match."""
    key = clean_prediction(predicted)
    if not key:
        return None
    for name, value in index.items():
        if name in key or key in name:
            return value
    return None


class CategoryResolver:
    """Name index over one direction's categories."""

    def __init__(self, categories: Iterable[NamedCategory]):
        self.index: dict[str, UUID] = {}
        for category in categories:
            self.index.setdefault(category.name.lower(), category.id)

    def resolve(self, predicted: str | None) -> UUID | None:
        category_id = exact_match(predicted, self.index)
        if category_id is None:
            category_id = fuzzy_match(predicted, self.index)
        return category_id
