"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from cashwise_engine.infrastructure.clients.currency import FxRateClient
from cashwise_engine.infrastructure.clients.finance_api import FinanceApiClient
from cashwise_engine.infrastructure.clients.notifier import SchedulerNotifier
from cashwise_engine.infrastructure.database.repositories import (
    ReminderSettingsStore,
    SettingsRepository,
)
from cashwise_engine.infrastructure.database.session import get_db
from cashwise_engine.scheduler import ReminderScheduler


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_finance_client() -> FinanceApiClient:
    """Provide finance API client instance"""
    return FinanceApiClient()


def get_fx_client() -> FxRateClient:
    """Fresh converter per request so rates are consistent within one response"""
    return FxRateClient()


@lru_cache(maxsize=1)
def get_notifier() -> SchedulerNotifier:
    """Process-wide notifier; its job store must outlive requests"""
    return SchedulerNotifier()


@lru_cache(maxsize=1)
def get_reminder_scheduler(notifier: SchedulerNotifier = Depends(get_notifier)) -> ReminderScheduler:
    """One scheduler per notifier so concurrent rebuilds share its lock"""
    return ReminderScheduler(notifier)


def get_reminder_settings_store(db: Session = Depends(get_db)) -> ReminderSettingsStore:
    return ReminderSettingsStore(SettingsRepository(db))
