"""Language-model fallback classifier.

Used ONLY when no keyword rule matched. The model is asked to return exactly
one category name from a list restricted to the transaction's direction; the
answer is reconciled against the taxonomy by :mod:`.resolver`.
"""

import logging
from decimal import Decimal

from openai import AsyncOpenAI, OpenAIError

from agencytax.config import settings
from agencytax.core.exceptions import ClassifierError
from agencytax.models.category import CategoryType

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a precise categorization assistant. Return ONLY the exact category "
    "name from the list above. No extra text."
)


def build_prompt(
    description: str | None,
    merchant_name: str | None,
    abs_amount: Decimal,
    direction: CategoryType,
    allowed_names: list[str],
) -> str:
    numbered = "\n".join(f"{i}. {name}" for i, name in enumerate(allowed_names, start=1))
    return f"""You are a financial categorization assistant. Given a transaction, you must categorize it using ONLY one of the provided categories.

Transaction details:
- Description: "{description or ''}"
- Merchant: "{merchant_name or 'Unknown'}"
- Amount: {abs_amount} ({direction.value})
- Transaction Type: {direction.value}

Available categories for {direction.value} transactions:
{numbered}

Return ONLY the category name exactly as it appears in the list.

Category:"""


class AIClassifier:
    """Chat-completions backed classifier."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4o-mini",
        temperature: float = 0.1,
        max_tokens: int = 50,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def classify(
        self,
        description: str | None,
        merchant_name: str | None,
        abs_amount: Decimal,
        direction: CategoryType,
        allowed_names: list[str],
    ) -> str:
        """Ask the model for one category name.

        Returns:
            The model's answer, stripped. It is NOT guaranteed to be in ``allowed_names``.

        Raises:
            ClassifierError: On any transport or API failure
        """
        prompt = build_prompt(description, merchant_name, abs_amount, direction, allowed_names)
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as exc:
            raise ClassifierError(str(exc) or exc.__class__.__name__) from exc

        content = response.choices[0].message.content if response.choices else None
        predicted = (content or "").strip()
        logger.debug(
            "Classifier prediction",
            extra={"direction": direction.value, "predicted": predicted},
        )
        return predicted

    async def close(self) -> None:
        await self.client.close()


def get_classifier() -> AIClassifier:
    return AIClassifier(
        client=AsyncOpenAI(api_key=settings.openai_api_key),
        model=settings.classifier_model,
        temperature=settings.classifier_temperature,
        max_tokens=settings.classifier_max_tokens,
    )
