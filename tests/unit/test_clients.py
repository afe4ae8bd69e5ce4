"""Unit tests for the finance API and FX clients (HTTP mocked)"""

import httpx
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from cashwise_engine.domain.exceptions import CurrencyConversionError, DataSourceError
from cashwise_engine.domain.models import Frequency
from cashwise_engine.infrastructure.clients.currency import FxQuote, FxRateClient
from cashwise_engine.infrastructure.clients.finance_api import (
    FinanceApiClient,
    parse_budget,
    parse_subscription,
    parse_transaction,
)
from cashwise_engine.utils.date_utils import local_today


def _response(payload, status_code=200):
    return httpx.Response(status_code, json=payload, request=httpx.Request("GET", "http://finance.local"))


def _quote(rate: str) -> FxQuote:
    return FxQuote(
        provider="frankfurter",
        base="USD",
        quote="EUR",
        rate=Decimal(rate),
        rate_date=date(2024, 6, 1),
        fetched_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )


def test_parse_transaction():
    txn = parse_transaction(
        {
            "id": 7,
            "description": "Laptop (2/3)",
            "amount": 299.9,
            "currency": "usd",
            "date": "2024-06-10T00:00:00Z",
            "groupId": "g-1",
        }
    )

    assert txn.id == "7"
    assert txn.amount == Decimal("299.9")
    assert txn.currency == "USD"
    assert txn.date == date(2024, 6, 10)
    assert txn.group_id == "g-1"


def test_parse_subscription_tolerates_bad_day_of_month():
    sub = parse_subscription(
        {
            "id": "s1",
            "description": "Gym",
            "amount": "30",
            "frequency": "weekly",
            "dayOfMonth": "abc",
            "nextDueDate": "2024-06-03",
            "active": False,
        }
    )

    assert sub.frequency == Frequency.WEEKLY
    assert sub.day_of_month is None
    assert sub.active is False
    assert sub.currency == "EUR"


def test_parse_subscription_without_due_date_uses_local_today():
    sub = parse_subscription({"id": "s2", "amount": 5})

    assert sub.next_due_date == local_today()
    assert sub.frequency == Frequency.MONTHLY


def test_parse_budget_accepts_either_limit_field():
    assert parse_budget({"category": "Food", "monthlyLimit": 300}).limit == Decimal("300")
    assert parse_budget({"category": "Food", "limit": "120.5", "currency": "brl"}).currency == "BRL"


@patch("httpx.AsyncClient.get")
async def test_list_transactions_accepts_paged_body(mock_get: AsyncMock):
    mock_get.return_value = _response(
        {"content": [{"id": 1, "description": "Coffee", "amount": 3, "date": "2024-06-01"}]}
    )

    transactions = await FinanceApiClient(base_url="http://finance.local").list_transactions()

    assert [t.description for t in transactions] == ["Coffee"]
    assert mock_get.await_args.args[0] == "http://finance.local/expenses"


@patch("httpx.AsyncClient.get")
async def test_finance_timeout_becomes_data_source_error(mock_get: AsyncMock):
    mock_get.side_effect = httpx.ReadTimeout("slow")

    with pytest.raises(DataSourceError, match="timeout"):
        await FinanceApiClient(base_url="http://finance.local").list_subscriptions()


@patch("httpx.AsyncClient.get")
async def test_finance_server_error_becomes_data_source_error(mock_get: AsyncMock):
    mock_get.return_value = _response({"error": "boom"}, status_code=500)

    with pytest.raises(DataSourceError, match="500"):
        await FinanceApiClient(base_url="http://finance.local").list_budgets()


@patch("httpx.AsyncClient.get")
async def test_malformed_record_becomes_data_source_error(mock_get: AsyncMock):
    mock_get.return_value = _response([{"description": "no id"}])

    with pytest.raises(DataSourceError, match="Invalid record"):
        await FinanceApiClient(base_url="http://finance.local").list_transactions()


async def test_fx_base_currency_is_identity():
    client = FxRateClient(base_currency="EUR")

    with patch.object(FxRateClient, "_fetch_quote", new=AsyncMock()) as mock_fetch:
        assert await client.convert(Decimal("12.5"), "eur") == Decimal("12.5")

    mock_fetch.assert_not_awaited()


async def test_fx_quotes_are_cached_and_marked_up():
    client = FxRateClient(base_currency="EUR", markup_bps=100)

    with patch.object(FxRateClient, "_fetch_quote", new=AsyncMock(return_value=_quote("0.9"))) as mock_fetch:
        first = await client.convert(Decimal("100"), "USD")
        second = await client.convert(Decimal("10"), "usd")

    assert first == Decimal("89.1")
    assert second == Decimal("8.91")
    mock_fetch.assert_awaited_once_with("USD")


@patch("httpx.AsyncClient.get")
async def test_fx_provider_failure_becomes_conversion_error(mock_get: AsyncMock):
    mock_get.side_effect = httpx.ConnectError("down")

    with pytest.raises(CurrencyConversionError):
        await FxRateClient(base_currency="EUR").convert(Decimal("1"), "USD")


@patch("httpx.AsyncClient.get")
async def test_fx_unexpected_payload_becomes_conversion_error(mock_get: AsyncMock):
    mock_get.return_value = _response({"rates": {}, "date": "2024-06-01"})

    with pytest.raises(CurrencyConversionError):
        await FxRateClient(base_currency="EUR").convert(Decimal("1"), "USD")
