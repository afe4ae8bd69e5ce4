"""Full-rebuild reminder scheduling against an external notifier"""

import asyncio
import logging
import time
from collections import Counter
from datetime import datetime
from typing import Any, Awaitable, List, Optional, Protocol, TypeVar

from cashwise_engine.config import settings as app_settings
from cashwise_engine.domain.exceptions import CollaboratorTimeoutError
from cashwise_engine.domain.models import (
    RebuildResult,
    RebuildStatus,
    ReminderSettings,
    Subscription,
    Transaction,
)
from cashwise_engine.domain.reminders import build_reminders
from cashwise_engine.infrastructure.observability.logging import log_rebuild
from cashwise_engine.infrastructure.observability.metrics import (
    external_call_histogram,
    rebuild_failure_counter,
    record_rebuild,
)
from cashwise_engine.utils.date_utils import local_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Notifier(Protocol):
    """Notification scheduling primitives the engine relies on"""

    async def cancel_all(self) -> None: ...

    async def schedule_at(self, when: datetime, title: str, body: str) -> Any: ...

    async def request_permission(self) -> bool: ...


class ReminderScheduler:
    """
    Replaces every scheduled reminder on each call.

    States per invocation:
    - disabled: cancel_all, nothing else
    - rebuilding: cancel_all -> permission -> compute -> schedule each

    Every collaborator call is awaited in sequence and bounded by
    `step_timeout`. If anything fails after the first cancel_all, a second
    cancel_all wipes whatever was scheduled so far and the error is re-raised;
    the notifier then holds no reminders rather than a partial set.

    Rebuilds on one scheduler are serialized, so overlapping callers never
    interleave their cancel and schedule steps.
    """

    def __init__(
        self,
        notifier: Notifier,
        step_timeout: float | None = None,
        horizon_days: int | None = None,
    ):
        self.notifier = notifier
        self.step_timeout = (
            app_settings.external_call_timeout_seconds if step_timeout is None else step_timeout
        )
        self.horizon_days = app_settings.reminder_horizon_days if horizon_days is None else horizon_days
        self._lock = asyncio.Lock()

    async def _call(self, step: str, awaitable: Awaitable[T]) -> T:
        try:
            with external_call_histogram.labels(step=step).time():
                return await asyncio.wait_for(awaitable, timeout=self.step_timeout)
        except asyncio.TimeoutError as e:
            raise CollaboratorTimeoutError(step, self.step_timeout) from e

    async def schedule_reminders(
        self,
        transactions: List[Transaction],
        subscriptions: List[Subscription],
        settings: ReminderSettings,
        *,
        now: Optional[datetime] = None,
    ) -> RebuildResult:
        async with self._lock:
            return await self._rebuild(transactions, subscriptions, settings, now)

    async def _rebuild(
        self,
        transactions: List[Transaction],
        subscriptions: List[Subscription],
        settings: ReminderSettings,
        now: Optional[datetime],
    ) -> RebuildResult:
        start_time = time.time()

        if not settings.enabled:
            await self._call("cancel_all", self.notifier.cancel_all())
            return self._finish(RebuildResult(status=RebuildStatus.DISABLED), Counter(), start_time)

        # Cancel before the permission check so a revoked permission never
        # leaves stale reminders behind.
        try:
            await self._call("cancel_all", self.notifier.cancel_all())
        except Exception:
            rebuild_failure_counter.labels(step="cancel_all").inc()
            raise

        step = "request_permission"
        by_source: Counter = Counter()
        try:
            granted = await self._call(step, self.notifier.request_permission())
            if not granted:
                logger.warning("Notification permission denied, no reminders scheduled")
                return self._finish(
                    RebuildResult(status=RebuildStatus.PERMISSION_DENIED), by_source, start_time
                )

            now = now or local_now()
            planned, skipped = build_reminders(
                transactions,
                subscriptions,
                settings,
                now=now,
                horizon_days=self.horizon_days,
            )

            step = "schedule_at"
            for item, reminder in planned:
                await self._call(
                    step,
                    self.notifier.schedule_at(reminder.trigger_at, reminder.title, reminder.body),
                )
                by_source[item.source] += 1
        except Exception as e:
            rebuild_failure_counter.labels(step=step).inc()
            logger.error(
                f"Reminder rebuild aborted at {step}: {e}",
                extra={"step": step, "scheduled_before_failure": sum(by_source.values())},
            )
            await self._rollback()
            raise

        result = RebuildResult(
            status=RebuildStatus.SCHEDULED,
            scheduled=sum(by_source.values()),
            skipped_duplicates=skipped,
        )
        return self._finish(result, by_source, start_time)

    async def _rollback(self) -> None:
        try:
            await self._call("cancel_all", self.notifier.cancel_all())
        except Exception:
            logger.exception("Rollback cancel_all failed, partial reminder set may remain")

    def _finish(self, result: RebuildResult, by_source: Counter, start_time: float) -> RebuildResult:
        duration_ms = (time.time() - start_time) * 1000
        record_rebuild(result.status.value, dict(by_source))
        log_rebuild(result.status.value, result.scheduled, result.skipped_duplicates, duration_ms)
        return result
