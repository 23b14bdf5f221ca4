"""Prometheus metrics for reminder throughput and request latency"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from academy_billing.domain.models import ReminderEvent

# Reminder metrics
reminder_events_counter = Counter(
    "academy_reminder_events_total",
    "Reminder events emitted for dispatch",
    ["kind"],  # PRE_DUE | GRACE_PERIOD | OVERDUE | CONTRACT_END
)

reminder_plans_counter = Counter(
    "academy_reminder_plans_total",
    "Plans processed by scheduler runs",
    ["status"],  # evaluated | skipped | error
)

reminder_run_duration_histogram = Histogram(
    "academy_reminder_run_duration_seconds",
    "Duration of a scheduler reminder run",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_reminder_events(events: Iterable[ReminderEvent]) -> None:
    """Count emitted events by kind"""
    for event in events:
        reminder_events_counter.labels(kind=event.kind.value).inc()


def record_plan_outcome(status: str) -> None:
    reminder_plans_counter.labels(status=status).inc()
