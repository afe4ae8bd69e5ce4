"""Prometheus metrics for reminder rebuilds, forecasts, and collaborator calls"""

from prometheus_client import Counter, Histogram

# Reminder metrics
rebuild_counter = Counter(
    "cashwise_reminder_rebuild_total",
    "Reminder rebuilds by outcome",
    ["status"],  # disabled | permission_denied | scheduled
)

reminders_scheduled_counter = Counter(
    "cashwise_reminders_scheduled_total",
    "Reminders handed to the notifier",
    ["source"],  # installment | subscription
)

rebuild_failure_counter = Counter(
    "cashwise_reminder_rebuild_failures_total",
    "Rebuilds aborted by a collaborator failure",
    ["step"],  # cancel_all | request_permission | schedule_at
)

# Collaborator metrics
external_call_histogram = Histogram(
    "cashwise_external_call_seconds",
    "Latency of awaited collaborator calls",
    ["step"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

data_source_failures_counter = Counter(
    "cashwise_data_source_failures_total",
    "Failed finance API calls",
)

fx_failures_counter = Counter(
    "cashwise_fx_failures_total",
    "Failed currency conversions",
)

webhook_failure_counter = Counter(
    "cashwise_push_webhook_failures_total",
    "Failed reminder deliveries to the push webhook",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_rebuild(status: str, scheduled_by_source: dict[str, int]) -> None:
    """Record the outcome of one reminder rebuild"""
    rebuild_counter.labels(status=status).inc()
    for source, count in scheduled_by_source.items():
        if count:
            reminders_scheduled_counter.labels(source=source).inc(count)
