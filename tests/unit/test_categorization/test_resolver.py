from types import SimpleNamespace
from uuid import uuid4

import pytest

from agencytax.categorization.resolver import CategoryResolver, clean_prediction, exact_match, fuzzy_match


@pytest.fixture
def resolver():
    categories = [
        SimpleNamespace(id=uuid4(), name="Office Supplies"),
        SimpleNamespace(id=uuid4(), name="Software"),
        SimpleNamespace(id=uuid4(), name="Travel"),
    ]
    return CategoryResolver(categories), {c.name: c.id for c in categories}


def test_clean_prediction() -> None:
    assert clean_prediction('  "Travel"\n') == "travel"
    assert clean_prediction(None) == ""


def test_exact_match_is_case_insensitive(resolver) -> None:
    matcher, ids = resolver
    assert matcher.resolve("SOFTWARE") == ids["Software"]


def test_predicted_name_contains_category(resolver) -> None:
    matcher, ids = resolver
    assert matcher.resolve("Office Supplies Store") == ids["Office Supplies"]


def test_category_contains_predicted_name(resolver) -> None:
    matcher, ids = resolver
    assert matcher.resolve("soft") == ids["Software"]


def test_unknown_name(resolver) -> None:
    matcher, _ = resolver
    assert matcher.resolve("Groceries") is None


def test_empty_prediction_never_matches(resolver) -> None:
    matcher, _ = resolver
    assert matcher.resolve("") is None
    assert matcher.resolve("   ") is None
    assert fuzzy_match("", {"travel": 1}) is None


def test_containment_follows_index_order() -> None:
    index = {"travel": "generic", "business travel": "specific"}
    assert exact_match("Business Travel Expense", index) is None
    assert fuzzy_match("Business Travel Expense", index) == "generic"


def test_duplicate_names_keep_first() -> None:
    first, second = uuid4(), uuid4()
    matcher = CategoryResolver([SimpleNamespace(id=first, name="Meals"), SimpleNamespace(id=second, name="MEALS")])

    assert matcher.index == {"meals": first}
    assert matcher.resolve("meals") == first
