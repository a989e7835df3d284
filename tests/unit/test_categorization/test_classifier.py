from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError

from agencytax.api import deps
from agencytax.categorization.classifier import AIClassifier, build_prompt
from agencytax.core.exceptions import ClassifierError
from agencytax.models.category import CategoryType


def _client(content=None, side_effect=None):
    client = MagicMock()
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


def test_build_prompt_lists_allowed_names() -> None:
    prompt = build_prompt("AWS INVOICE", None, Decimal("49.00"), CategoryType.EXPENSE, ["Software", "Travel"])

    assert '- Description: "AWS INVOICE"' in prompt
    assert '- Merchant: "Unknown"' in prompt
    assert "- Amount: 49.00 (EXPENSE)" in prompt
    assert "1. Software\n2. Travel" in prompt
    assert prompt.endswith("Category:")


class TestAIClassifier:
    @pytest.mark.asyncio
    async def test_returns_stripped_answer(self):
        client = _client(content="  Travel\n")
        classifier = AIClassifier(client, model="gpt-4o-mini", temperature=0.1, max_tokens=50)

        answer = await classifier.classify("DELTA AIR", "Delta", Decimal("310.20"), CategoryType.EXPENSE, ["Travel"])

        assert answer == "Travel"
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 50
        assert [m["role"] for m in kwargs["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_empty_content(self):
        classifier = AIClassifier(_client(content=None))

        assert await classifier.classify("X", None, Decimal("1"), CategoryType.INCOME, ["Sales"]) == ""

    @pytest.mark.asyncio
    async def test_api_failure_raises_classifier_error(self):
        error = APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
        classifier = AIClassifier(_client(side_effect=error))

        with pytest.raises(ClassifierError) as exc_info:
            await classifier.classify("X", None, Decimal("1"), CategoryType.EXPENSE, ["Software"])

        assert exc_info.value.error_code == "CLS_001"


@pytest.mark.asyncio
async def test_request_scoped_classifier_is_closed(monkeypatch):
    client = _client(content="Travel")
    client.close = AsyncMock()
    monkeypatch.setattr(deps, "get_classifier", lambda: AIClassifier(client))

    dependency = deps.get_ai_classifier()
    classifier = await dependency.__anext__()
    assert classifier.client is client
    client.close.assert_not_awaited()

    with pytest.raises(StopAsyncIteration):
        await dependency.__anext__()
    client.close.assert_awaited_once()
