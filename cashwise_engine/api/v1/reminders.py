"""Reminder settings, preview and full rebuild endpoints"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from cashwise_engine.api.dependencies import (
    get_finance_client,
    get_notifier,
    get_reminder_scheduler,
    get_reminder_settings_store,
    get_request_id,
)
from cashwise_engine.api.v1.schemas import (
    RebuildResponse,
    ReminderPreviewItem,
    ReminderPreviewResponse,
    ReminderSettingsSchema,
    ScheduledReminderItem,
    ScheduledRemindersResponse,
)
from cashwise_engine.config import settings as app_settings
from cashwise_engine.domain.exceptions import (
    CollaboratorTimeoutError,
    DataSourceError,
    NotifierError,
)
from cashwise_engine.domain.models import ReminderSettings
from cashwise_engine.domain.reminders import build_reminders
from cashwise_engine.infrastructure.clients.finance_api import FinanceApiClient
from cashwise_engine.infrastructure.clients.notifier import SchedulerNotifier
from cashwise_engine.infrastructure.database.repositories import ReminderSettingsStore
from cashwise_engine.infrastructure.database.session import get_db
from cashwise_engine.infrastructure.observability.metrics import data_source_failures_counter
from cashwise_engine.scheduler import ReminderScheduler
from cashwise_engine.utils.date_utils import local_now

router = APIRouter()


def _to_schema(reminder_settings: ReminderSettings) -> ReminderSettingsSchema:
    return ReminderSettingsSchema(
        enabled=reminder_settings.enabled,
        time=reminder_settings.time,
        days_before=list(reminder_settings.days_before),
    )


async def _fetch_snapshot(finance_client: FinanceApiClient, request_id: str):
    try:
        transactions = await finance_client.list_transactions()
        subscriptions = await finance_client.list_subscriptions()
    except DataSourceError as e:
        data_source_failures_counter.inc()
        logging.error(f"Finance API error, reminders left untouched: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Finance service unavailable")
    return transactions, subscriptions


@router.get("/reminders/settings", response_model=ReminderSettingsSchema)
def get_reminder_settings(store: ReminderSettingsStore = Depends(get_reminder_settings_store)):
    return _to_schema(store.load())


@router.put("/reminders/settings", response_model=ReminderSettingsSchema)
def update_reminder_settings(
    body: ReminderSettingsSchema,
    db: Session = Depends(get_db),
    store: ReminderSettingsStore = Depends(get_reminder_settings_store),
):
    saved = store.save(
        ReminderSettings(enabled=body.enabled, time=body.time, days_before=tuple(body.days_before))
    )
    db.commit()
    return _to_schema(saved)


@router.get("/reminders/preview", response_model=ReminderPreviewResponse)
async def preview_reminders(
    request: Request,
    finance_client: FinanceApiClient = Depends(get_finance_client),
    store: ReminderSettingsStore = Depends(get_reminder_settings_store),
):
    """Reminders a rebuild would schedule right now, without touching the notifier"""
    transactions, subscriptions = await _fetch_snapshot(finance_client, get_request_id(request))
    planned, skipped = build_reminders(
        transactions,
        subscriptions,
        store.load(),
        now=local_now(),
        horizon_days=app_settings.reminder_horizon_days,
    )
    return ReminderPreviewResponse(
        reminders=[
            ReminderPreviewItem(
                dedup_key=r.dedup_key, trigger_at=r.trigger_at, title=r.title, body=r.body
            )
            for _, r in planned
        ],
        skipped_duplicates=skipped,
    )


@router.get("/reminders/scheduled", response_model=ScheduledRemindersResponse)
def list_scheduled_reminders(notifier: SchedulerNotifier = Depends(get_notifier)):
    """Reminders currently held by the notifier, earliest first"""
    return ScheduledRemindersResponse(
        reminders=[ScheduledReminderItem(**item) for item in notifier.pending()]
    )


@router.post("/reminders/rebuild", response_model=RebuildResponse)
async def rebuild_reminders(
    request: Request,
    finance_client: FinanceApiClient = Depends(get_finance_client),
    store: ReminderSettingsStore = Depends(get_reminder_settings_store),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
):
    """
    Cancel every scheduled reminder and rebuild from the current snapshot.

    Flow:
    1. Load reminder settings (defaults when missing)
    2. Fetch transactions and subscriptions unless reminders are disabled;
       on failure nothing is cancelled or scheduled
    3. Run the full cancel-then-schedule rebuild
    """
    request_id = get_request_id(request)
    reminder_settings = store.load()

    transactions, subscriptions = [], []
    if reminder_settings.enabled:
        transactions, subscriptions = await _fetch_snapshot(finance_client, request_id)

    try:
        result = await scheduler.schedule_reminders(transactions, subscriptions, reminder_settings)
    except (NotifierError, CollaboratorTimeoutError) as e:
        logging.error(f"Reminder rebuild failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Notification service unavailable")

    return RebuildResponse(
        status=result.status.value,
        scheduled=result.scheduled,
        skipped_duplicates=result.skipped_duplicates,
    )
