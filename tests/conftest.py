"""Pytest fixtures for testing"""

import asyncio
import pytest
from datetime import date, datetime
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from cashwise_engine.api.main import create_app
from cashwise_engine.api.dependencies import get_finance_client, get_fx_client, get_notifier
from cashwise_engine.domain.exceptions import CurrencyConversionError, DataSourceError, NotifierError
from cashwise_engine.domain.models import Frequency, Subscription, Transaction
from cashwise_engine.infrastructure.database.models import Base
from cashwise_engine.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def txn(id, description, amount, on, currency="EUR", **kwargs) -> Transaction:
    return Transaction(
        id=id,
        description=description,
        amount=Decimal(str(amount)),
        currency=currency,
        date=on,
        **kwargs,
    )


def sub(id, amount, next_due, frequency=Frequency.MONTHLY, **kwargs) -> Subscription:
    kwargs.setdefault("description", f"Subscription {id}")
    kwargs.setdefault("currency", "EUR")
    return Subscription(
        id=id,
        amount=Decimal(str(amount)),
        frequency=frequency,
        next_due_date=next_due,
        **kwargs,
    )


class FakeNotifier:
    """Records every call in order; can deny permission, fail or hang"""

    def __init__(self, granted: bool = True, fail_on_schedule: int | None = None, hang_on: str | None = None):
        self.granted = granted
        self.fail_on_schedule = fail_on_schedule
        self.hang_on = hang_on
        self.calls: list[tuple] = []
        self.scheduled: list[tuple[datetime, str, str]] = []

    async def _maybe_hang(self, step: str) -> None:
        if self.hang_on == step:
            await asyncio.sleep(5)

    async def cancel_all(self) -> None:
        self.calls.append(("cancel_all",))
        await self._maybe_hang("cancel_all")
        self.scheduled.clear()

    async def request_permission(self) -> bool:
        self.calls.append(("request_permission",))
        await self._maybe_hang("request_permission")
        return self.granted

    async def schedule_at(self, when: datetime, title: str, body: str) -> str:
        self.calls.append(("schedule_at", when))
        await self._maybe_hang("schedule_at")
        if self.fail_on_schedule is not None and len(self.scheduled) >= self.fail_on_schedule:
            raise NotifierError("notifier unavailable")
        self.scheduled.append((when, title, body))
        return f"job-{len(self.scheduled)}"

    def pending(self) -> list[dict]:
        return [
            {"id": f"job-{n}", "title": title, "body": body, "trigger_at": when.isoformat()}
            for n, (when, title, body) in enumerate(sorted(self.scheduled), start=1)
        ]


class FakeFinanceClient:
    def __init__(self, transactions=None, subscriptions=None, budgets=None, incomes=None, fail=False, fail_budgets=False):
        self.transactions = transactions or []
        self.subscriptions = subscriptions or []
        self.budgets = budgets or []
        self.incomes = incomes or []
        self.fail = fail
        self.fail_budgets = fail_budgets

    async def _result(self, items):
        if self.fail:
            raise DataSourceError("Finance API timeout after 5.0s")
        return items

    async def list_transactions(self):
        return await self._result(self.transactions)

    async def list_subscriptions(self):
        return await self._result(self.subscriptions)

    async def list_incomes(self):
        return await self._result(self.incomes)

    async def list_budgets(self):
        if self.fail_budgets:
            raise DataSourceError("budgets down")
        return await self._result(self.budgets)


class FakeConverter:
    """Fixed rates into EUR; unknown currencies fail"""

    base_currency = "EUR"

    def __init__(self, rates=None):
        self.rates = {"EUR": Decimal("1")}
        self.rates.update(rates or {})
        self.calls: list[tuple[Decimal, str]] = []

    async def convert(self, amount: Decimal, currency: str) -> Decimal:
        self.calls.append((amount, currency))
        if currency not in self.rates:
            raise CurrencyConversionError(f"no rate for {currency}")
        return amount * self.rates[currency]


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def finance_client() -> FakeFinanceClient:
    return FakeFinanceClient()


@pytest.fixture
def converter() -> FakeConverter:
    return FakeConverter(rates={"USD": Decimal("0.5"), "BRL": Decimal("0.2")})


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def client(db: Session, finance_client: FakeFinanceClient, converter: FakeConverter, notifier: FakeNotifier) -> TestClient:
    """Create FastAPI test client with test database and fake collaborators"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_finance_client] = lambda: finance_client
    app.dependency_overrides[get_fx_client] = lambda: converter
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app)


@pytest.fixture
def laptop_transactions() -> list[Transaction]:
    """Three-month laptop purchase plus unrelated spending"""
    return [
        txn("1", "Laptop (1/3)", 300, date(2024, 1, 10)),
        txn("2", "Laptop (2/3)", 300, date(2024, 2, 10)),
        txn("3", "Laptop (3/3)", 300, date(2024, 3, 10)),
        txn("4", "Groceries", 42, date(2024, 2, 11)),
    ]
