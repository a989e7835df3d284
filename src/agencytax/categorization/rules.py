"""Deterministic keyword categorization.

Rules are plain keywords stored in ``category_rules`` and evaluated in their
stored order against a normalized "description + merchant" string. This pass
is local (no network calls) and explainable, and only ever runs for expense
transactions: income always goes to the classifier.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol
from uuid import UUID

from agencytax.models.category import CategoryType

logger = logging.getLogger(__name__)

_DISALLOWED = re.compile(r"[^a-z0-9 ]")


class RuleLike(Protocol):
    keyword_pattern: str
    category_id: UUID


def normalize_text(*parts: str | None) -> str:
    """Lowercase and drop everything outside ``[a-z0-9 ]``.

    Parts are joined with a single space, missing parts count as empty.
    """
    raw = " ".join(part or "" for part in parts)
    return _DISALLOWED.sub("", raw.lower())


def direction_for_amount(amount: Decimal | int | float) -> CategoryType:
    """Negative amounts are money in (INCOME), everything else is EXPENSE."""
    return CategoryType.INCOME if amount < 0 else CategoryType.EXPENSE


@dataclass(frozen=True)
class KeywordRule:
    keyword: str
    category_id: UUID


class RuleMatcher:
    """First-match-wins keyword matcher over expense categories."""

    def __init__(self, rules: Iterable[RuleLike], expense_category_ids: Iterable[UUID]):
        allowed = set(expense_category_ids)
        self.rules: list[KeywordRule] = []
        for rule in rules:
            keyword = normalize_text(rule.keyword_pattern)
            if not keyword.strip():
                logger.warning("Ignoring category rule with empty keyword", extra={"keyword": rule.keyword_pattern})
                continue
            if rule.category_id not in allowed:
                # Would assign an income (or unknown) category to an expense.
                logger.warning(
                    "Ignoring category rule not mapped to an expense category",
                    extra={"keyword": rule.keyword_pattern, "category_id": str(rule.category_id)},
                )
                continue
            self.rules.append(KeywordRule(keyword=keyword, category_id=rule.category_id))

    def match(self, text: str, direction: CategoryType) -> UUID | None:
        """Return the category of the first rule whose keyword occurs in ``text``.

        Args:
            text: Output of :func:`normalize_text`
            direction: Transaction direction; INCOME never matches

        Returns:
            Category id, or None when no rule applies
        """
        if direction is not CategoryType.EXPENSE:
            return None
        for rule in self.rules:
            if rule.keyword in text:
                return rule.category_id
        return None
