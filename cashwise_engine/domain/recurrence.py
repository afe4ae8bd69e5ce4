"""Due-date projection for recurring subscriptions"""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from cashwise_engine.domain.models import Frequency, Occurrence, Subscription
from cashwise_engine.utils.date_utils import add_months, add_years, local_today

logger = logging.getLogger(__name__)

WEEKS_PER_MONTH = Decimal("4.33")
MONTHS_PER_YEAR = Decimal("12")
MAX_STEPS = 20_000  # ~380 years of weekly steps


def advance(current: date, frequency: Frequency, day_of_month: Optional[int] = None) -> date:
    """
    Next due date after `current`.

    WEEKLY adds 7 days, YEARLY keeps month/day (Feb 29 -> Feb 28), MONTHLY
    moves one calendar month and lands on `day_of_month` (or the current day)
    clamped to the month's length.
    """
    if frequency == Frequency.WEEKLY:
        return current + timedelta(days=7)
    if frequency == Frequency.YEARLY:
        return add_years(current, 1)
    return add_months(current, 1, desired_day=day_of_month)


def project_occurrences(
    subscription: Subscription,
    horizon_end: date | datetime,
    *,
    today: Optional[date] = None,
) -> List[Occurrence]:
    """
    Future occurrences of a subscription up to and including horizon_end.

    Stale anchors are rolled forward past `today` without emitting the
    missed dates. Comparisons are date-only.
    """
    if not subscription.active:
        return []

    today = today or local_today()
    if isinstance(horizon_end, datetime):
        horizon_end = horizon_end.date()

    cursor = subscription.next_due_date
    steps = 0
    while cursor < today:
        cursor = advance(cursor, subscription.frequency, subscription.day_of_month)
        steps += 1
        if steps >= MAX_STEPS:
            logger.warning(
                "Subscription anchor too far in the past, skipping projection",
                extra={"subscription_id": subscription.id},
            )
            return []

    occurrences = []
    while cursor <= horizon_end:
        occurrences.append(
            Occurrence(
                subscription_id=subscription.id,
                due_date=cursor,
                amount=subscription.amount,
                currency=subscription.currency,
            )
        )
        cursor = advance(cursor, subscription.frequency, subscription.day_of_month)
    return occurrences


def monthly_cost(subscription: Subscription) -> Decimal:
    """Subscription amount prorated to one month"""
    if subscription.frequency == Frequency.WEEKLY:
        return subscription.amount * WEEKS_PER_MONTH
    if subscription.frequency == Frequency.YEARLY:
        return subscription.amount / MONTHS_PER_YEAR
    return subscription.amount


def active_subscriptions(subscriptions: Iterable[Subscription]) -> List[Subscription]:
    return [s for s in subscriptions if s.active]
