"""Transaction categorization.

A local keyword pass for expenses, a language-model fallback for everything
the keywords miss, and a resolver that maps the model's answer back onto the
category taxonomy.
"""

from .resolver import CategoryResolver, fuzzy_match
from .rules import RuleMatcher, direction_for_amount, normalize_text

__all__ = [
    "CategoryResolver",
    "RuleMatcher",
    "direction_for_amount",
    "fuzzy_match",
    "normalize_text",
]
