"""Reminder notifier: APScheduler job store plus push webhook delivery"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List

import httpx
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from cashwise_engine.config import settings
from cashwise_engine.domain.exceptions import NotifierError
from cashwise_engine.infrastructure.observability.metrics import webhook_failure_counter

logger = logging.getLogger(__name__)

REMINDER_JOBSTORE = "reminders"


class PushWebhookClient:
    """Client for delivering due reminders to the push gateway"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = webhook_url or settings.push_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds

    async def send_reminder(self, payload: Dict[str, Any]) -> None:
        """
        Send one reminder with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx errors and network failures
        """
        attempt = 0
        async with httpx.AsyncClient() as client:
            while attempt < self.max_retries:
                try:
                    response = await client.post(
                        self.webhook_url,
                        json=payload,
                        timeout=self.timeout,
                    )
                    response.raise_for_status()
                    return

                except (httpx.HTTPStatusError, httpx.RequestError):
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)


class SchedulerNotifier:
    """
    Notifier backed by an in-process AsyncIOScheduler.

    Reminders live in a dedicated job store so cancel_all never touches other
    jobs. Permission is granted once a push webhook is configured.
    """

    def __init__(self, webhook: PushWebhookClient | None = None, timezone: str | None = None):
        self.webhook = webhook or PushWebhookClient()
        self.timezone = timezone or settings.timezone
        self.scheduler = AsyncIOScheduler(
            jobstores={REMINDER_JOBSTORE: MemoryJobStore()},
            timezone=self.timezone,
        )

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Reminder scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Reminder scheduler stopped")

    async def request_permission(self) -> bool:
        return bool(self.webhook.webhook_url)

    async def cancel_all(self) -> None:
        try:
            self.scheduler.remove_all_jobs(jobstore=REMINDER_JOBSTORE)
        except (KeyError, JobLookupError) as e:
            raise NotifierError(f"Could not clear reminder job store: {e}") from e

    async def schedule_at(self, when: datetime, title: str, body: str) -> str:
        try:
            job = self.scheduler.add_job(
                self._deliver,
                DateTrigger(run_date=when, timezone=self.timezone),
                kwargs={"title": title, "body": body, "trigger_at": when.isoformat()},
                jobstore=REMINDER_JOBSTORE,
                misfire_grace_time=3600,
            )
        except (KeyError, ValueError) as e:
            raise NotifierError(f"Could not schedule reminder for {when}: {e}") from e
        return job.id

    def pending(self) -> List[Dict[str, Any]]:
        """Scheduled reminders, earliest first"""
        jobs = self.scheduler.get_jobs(jobstore=REMINDER_JOBSTORE)
        return sorted(
            (
                {
                    "id": job.id,
                    "title": job.kwargs["title"],
                    "body": job.kwargs["body"],
                    "trigger_at": job.kwargs["trigger_at"],
                }
                for job in jobs
            ),
            key=lambda item: item["trigger_at"],
        )

    async def _deliver(self, title: str, body: str, trigger_at: str) -> None:
        try:
            await self.webhook.send_reminder(
                {"event": "REMINDER_DUE", "title": title, "body": body, "trigger_at": trigger_at}
            )
        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(f"Reminder delivery failed: {e}", extra={"trigger_at": trigger_at})
