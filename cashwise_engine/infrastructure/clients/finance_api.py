"""Finance REST API client for transaction, subscription and budget snapshots"""

import httpx
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from cashwise_engine.domain.models import Budget, Frequency, Subscription, Transaction
from cashwise_engine.domain.exceptions import DataSourceError
from cashwise_engine.config import settings
from cashwise_engine.utils.date_utils import local_today


def _items(payload: Any) -> List[Dict[str, Any]]:
    """Accept both plain lists and paged `{"content": [...]}` bodies"""
    if isinstance(payload, dict):
        payload = payload.get("content", [])
    if not isinstance(payload, list):
        raise ValueError("expected a list of records")
    return payload


def _day_of_month(value: Any) -> Optional[int]:
    """Non-numeric or out-of-range days fall back to None (follow the anchor)"""
    try:
        day = int(value)
    except (TypeError, ValueError):
        return None
    return day if 1 <= day <= 31 else None


def parse_transaction(raw: Dict[str, Any]) -> Transaction:
    return Transaction(
        id=str(raw["id"]),
        description=raw.get("description") or "",
        amount=Decimal(str(raw["amount"])),
        currency=(raw.get("currency") or settings.base_currency).upper(),
        date=date.fromisoformat(raw["date"][:10]),
        category=raw.get("category"),
        group_id=raw.get("groupId"),
    )


def parse_subscription(raw: Dict[str, Any]) -> Subscription:
    next_due = raw.get("nextDueDate")
    return Subscription(
        id=str(raw["id"]),
        description=raw.get("description") or "",
        amount=Decimal(str(raw["amount"])),
        currency=(raw.get("currency") or settings.base_currency).upper(),
        category=raw.get("category"),
        frequency=Frequency((raw.get("frequency") or "MONTHLY").upper()),
        day_of_month=_day_of_month(raw.get("dayOfMonth")),
        active=bool(raw.get("active", True)),
        next_due_date=date.fromisoformat(next_due[:10]) if next_due else local_today(),
    )


def parse_budget(raw: Dict[str, Any]) -> Budget:
    return Budget(
        category=raw["category"],
        limit=Decimal(str(raw.get("monthlyLimit", raw.get("limit")))),
        currency=(raw.get("currency") or settings.base_currency).upper(),
    )


class FinanceApiClient:
    """Read-only client for the finance backend"""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url or settings.finance_api_base
        self.token = token or settings.finance_api_token
        self.timeout = timeout or settings.http_timeout_seconds

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, path: str) -> List[Dict[str, Any]]:
        """
        Fetch one collection.

        Raises:
            DataSourceError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, headers=self._headers()) as client:
            try:
                response = await client.get(f"{self.base_url}{path}")
                response.raise_for_status()
                return _items(response.json())

            except httpx.TimeoutException as e:
                raise DataSourceError(f"Finance API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise DataSourceError(f"Finance API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise DataSourceError(f"Finance API unreachable: {e}") from e
            except ValueError as e:
                raise DataSourceError(f"Invalid response from finance API: {e}") from e

    async def list_transactions(self) -> List[Transaction]:
        return self._parse(await self._get("/expenses"), parse_transaction)

    async def list_incomes(self) -> List[Transaction]:
        return self._parse(await self._get("/incomes"), parse_transaction)

    async def list_subscriptions(self) -> List[Subscription]:
        return self._parse(await self._get("/subscriptions"), parse_subscription)

    async def list_budgets(self) -> List[Budget]:
        return self._parse(await self._get("/budgets"), parse_budget)

    @staticmethod
    def _parse(items, parser):
        try:
            return [parser(item) for item in items]
        except (KeyError, ValueError, TypeError, InvalidOperation) as e:
            raise DataSourceError(f"Invalid record from finance API: {e}") from e
