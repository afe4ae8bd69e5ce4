"""Reminder computation: trigger times, message templates, deduplication"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Iterator, List, Optional, Tuple

from cashwise_engine.domain.installments import installments_between, match_installment
from cashwise_engine.domain.models import (
    DEFAULT_DAYS_BEFORE,
    DEFAULT_REMINDER_TIME,
    ReminderSettings,
    ScheduledReminder,
    Subscription,
    Transaction,
)
from cashwise_engine.domain.recurrence import project_occurrences
from cashwise_engine.utils.date_utils import end_of_day, parse_time_of_day

DEFAULT_HORIZON_DAYS = 45

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "BRL": "R$",
    "JPY": "¥",
    "CHF": "CHF ",
    "CAD": "C$",
    "AUD": "A$",
}

MESSAGES = {
    "installment": "Installment",
    "subscription": "Subscription",
    "due_today": "due today",
    "due_tomorrow": "due tomorrow",
    "due_in_days": "due in {days} days",
}


@dataclass(frozen=True)
class DueItem:
    """Something with a due date that may deserve reminders"""

    source: str  # "installment" | "subscription"
    source_id: str
    due_date: date
    label: str
    amount: Decimal
    currency: str


def normalize_settings(raw: Optional[dict]) -> ReminderSettings:
    """
    Build ReminderSettings from a stored mapping, falling back to defaults.

    Malformed values never raise: a non-list days_before becomes the default,
    negative or non-integer offsets are dropped, duplicates keep their first
    position.
    """
    if not isinstance(raw, dict):
        return ReminderSettings()

    days = raw.get("daysBefore", raw.get("days_before"))
    if isinstance(days, (list, tuple)):
        cleaned: List[int] = []
        for value in days:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                continue
            if value not in cleaned:
                cleaned.append(value)
        days_before = tuple(cleaned)
    else:
        days_before = DEFAULT_DAYS_BEFORE

    time_value = raw.get("time")
    if not isinstance(time_value, str) or not time_value:
        time_value = DEFAULT_REMINDER_TIME

    return ReminderSettings(
        enabled=bool(raw.get("enabled", False)),
        time=time_value,
        days_before=days_before,
    )


def settings_to_dict(settings: ReminderSettings) -> dict:
    return {
        "enabled": settings.enabled,
        "time": settings.time,
        "daysBefore": list(settings.days_before),
    }


def format_amount(amount: Decimal, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get((currency or "").upper(), f"{currency} ")
    value = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{symbol}{value}"


def due_text(days_before: int) -> str:
    if days_before == 0:
        return MESSAGES["due_today"]
    if days_before == 1:
        return MESSAGES["due_tomorrow"]
    return MESSAGES["due_in_days"].format(days=days_before)


def horizon_end_for(now: datetime, horizon_days: int = DEFAULT_HORIZON_DAYS) -> datetime:
    return end_of_day(now.date() + timedelta(days=horizon_days))


def collect_due_items(
    transactions: Iterable[Transaction],
    subscriptions: Iterable[Subscription],
    today: date,
    horizon_end: datetime,
) -> Iterator[DueItem]:
    """Installments dated within the horizon, then projected subscription dates"""
    for txn in installments_between(transactions, today, horizon_end.date()):
        match = match_installment(txn.description)
        yield DueItem(
            source="installment",
            source_id=str(txn.id),
            due_date=txn.date,
            label=f"{match.base or txn.description} ({match.index}/{match.total})",
            amount=txn.amount,
            currency=txn.currency,
        )

    for sub in subscriptions:
        if not sub.active:
            continue
        for occurrence in project_occurrences(sub, horizon_end, today=today):
            yield DueItem(
                source="subscription",
                source_id=f"sub-{sub.id}",
                due_date=occurrence.due_date,
                label=sub.description or MESSAGES["subscription"],
                amount=occurrence.amount,
                currency=occurrence.currency,
            )


def build_reminders(
    transactions: Iterable[Transaction],
    subscriptions: Iterable[Subscription],
    settings: ReminderSettings,
    *,
    now: datetime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> Tuple[List[Tuple[DueItem, ScheduledReminder]], int]:
    """
    Compute the full, deduplicated reminder set for one rebuild.

    Each (due item, days_before) pair triggers at `settings.time` on
    `due_date - days_before`; triggers not strictly after `now` or beyond
    the horizon are dropped. The dedup key combines source id, offset and
    trigger day. Returns the reminders in scheduling order together with
    the number of duplicates skipped.
    """
    reminder_time = parse_time_of_day(settings.time)
    horizon_end = horizon_end_for(now, horizon_days)

    seen = set()
    skipped = 0
    reminders = []
    for item in collect_due_items(transactions, subscriptions, now.date(), horizon_end):
        for days_before in settings.days_before:
            trigger_at = datetime.combine(item.due_date - timedelta(days=days_before), reminder_time)
            if trigger_at <= now or trigger_at > horizon_end:
                continue

            dedup_key = f"{item.source_id}-{days_before}-{trigger_at.date().isoformat()}"
            if dedup_key in seen:
                skipped += 1
                continue
            seen.add(dedup_key)

            reminders.append(
                (
                    item,
                    ScheduledReminder(
                        dedup_key=dedup_key,
                        trigger_at=trigger_at,
                        title=f"{MESSAGES[item.source]} {due_text(days_before)}",
                        body=f"{item.label} · {format_amount(item.amount, item.currency)}",
                    ),
                )
            )
    return reminders, skipped
