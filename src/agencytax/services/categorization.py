"""Auto-categorization of uncategorized transactions.

For each transaction in a bounded batch:
1. Normalize description + merchant
2. Expense only: first matching keyword rule wins
3. No rule hit: ask the classifier for one category name of the same direction
4. Resolve that name (exact, then containment) against the direction's categories
5. Persist the category with ``is_reviewed = False``

Failures are recorded per transaction and never stop the batch.
"""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from agencytax.categorization.classifier import AIClassifier
from agencytax.categorization.resolver import CategoryResolver
from agencytax.categorization.rules import RuleMatcher, direction_for_amount, normalize_text
from agencytax.categorization.throttle import IntervalRateLimiter
from agencytax.core.exceptions import PipelineError
from agencytax.models.category import Category, CategoryType
from agencytax.models.transaction import Transaction
from agencytax.repositories.category import CategoryRepository
from agencytax.repositories.transaction import TransactionRepository
from agencytax.schemas.pipeline import CategorizeResult

logger = logging.getLogger(__name__)


class CategorizationError(Exception):
    """A single transaction could not be categorized. Message is user-facing."""


class CategorizationEngine:
    """Rule engine first, language model fallback second."""

    def __init__(
        self,
        transactions: TransactionRepository,
        categories: CategoryRepository,
        classifier: AIClassifier,
        rate_limiter: IntervalRateLimiter,
        batch_size: int = 200,
    ):
        self.transactions = transactions
        self.categories = categories
        self.classifier = classifier
        self.rate_limiter = rate_limiter
        self.batch_size = batch_size

    async def run(self, user_id: UUID) -> CategorizeResult:
        """Categorize up to ``batch_size`` of the user's uncategorized transactions.

        Raises:
            SQLAlchemyError: Only if the initial reads (transactions, categories, rules) fail
        """
        pending = await self.transactions.list_uncategorized(user_id, limit=self.batch_size)
        if not pending:
            return CategorizeResult(categorized=0, total=0)

        categories = await self.categories.list_categories()
        rules = await self.categories.list_rules()

        by_direction: dict[CategoryType, list[Category]] = {direction: [] for direction in CategoryType}
        for category in categories:
            by_direction[category.type].append(category)

        resolvers = {direction: CategoryResolver(items) for direction, items in by_direction.items()}
        allowed_names = {direction: [c.name for c in items] for direction, items in by_direction.items()}
        matcher = RuleMatcher(rules, [c.id for c in by_direction[CategoryType.EXPENSE]])

        categorized = 0
        errors: list[str] = []
        for txn in pending:
            try:
                category_id = await self._categorize_one(txn, matcher, resolvers, allowed_names)
            except CategorizationError as exc:
                errors.append(f"Transaction {txn.id}: {exc}")
                continue

            try:
                await self.transactions.set_category(txn.id, category_id)
            except SQLAlchemyError as exc:
                logger.error("Error updating transaction", extra={"transaction_id": str(txn.id)}, exc_info=True)
                errors.append(f"Failed to update transaction {txn.id}: {exc}")
                continue
            categorized += 1

        logger.info(
            "Categorization complete",
            extra={"user_id": str(user_id), "categorized": categorized, "total": len(pending)},
        )
        return CategorizeResult(
            categorized=categorized,
            total=len(pending),
            errors=errors or None,
        )

    async def _categorize_one(
        self,
        txn: Transaction,
        matcher: RuleMatcher,
        resolvers: dict[CategoryType, CategoryResolver],
        allowed_names: dict[CategoryType, list[str]],
    ) -> UUID:
        direction = direction_for_amount(txn.amount)
        text = normalize_text(txn.description, txn.merchant_name)

        category_id = matcher.match(text, direction)
        if category_id is not None:
            logger.info("Rule match", extra={"transaction_id": str(txn.id)})
            return category_id

        if direction is CategoryType.EXPENSE:
            logger.warning("Rule miss, falling back to classifier", extra={"transaction_id": str(txn.id)})
        else:
            logger.info("Income transaction, sending to classifier", extra={"transaction_id": str(txn.id)})

        names = allowed_names[direction]
        if not names:
            raise CategorizationError(f"No {direction.value} categories available")

        await self.rate_limiter.acquire()
        try:
            predicted = await self.classifier.classify(
                txn.description,
                txn.merchant_name,
                abs(Decimal(txn.amount)),
                direction,
                names,
            )
        except PipelineError as exc:
            logger.error(
                "Classifier error",
                extra={"transaction_id": str(txn.id), "error_code": exc.error_code},
            )
            raise CategorizationError(f"Classifier error - {exc}") from exc

        category_id = resolvers[direction].resolve(predicted)
        if category_id is None:
            logger.warning(
                "Classifier answer matched no category",
                extra={"transaction_id": str(txn.id), "error_code": "CAT_001"},
            )
            raise CategorizationError(f'No match for "{predicted}"')
        return category_id
