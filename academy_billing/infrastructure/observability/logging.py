"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable

from pythonjsonlogger import jsonlogger

from academy_billing.config import settings
from academy_billing.domain.models import ReminderEvent


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping every record with UTC time and the service name"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Route the root logger to stdout as one JSON object per line"""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())


def log_reminder_events(request_id: str, plan_id: str, events: Iterable[ReminderEvent]) -> None:
    """One record per emitted reminder so the dispatcher can be audited"""
    for event in events:
        logging.info(
            "Reminder emitted",
            extra={
                "request_id": request_id,
                "plan_id": plan_id,
                "obligation_ref": event.obligation_ref,
                "kind": event.kind.value,
                "attempt_number": event.attempt_number,
                "due_date": event.due_date.isoformat(),
            },
        )


def log_reminder_run(
    request_id: str,
    plans_evaluated: int,
    events_emitted: int,
    errors: int,
    duration_ms: float,
) -> None:
    """Summary of one scheduler tick"""
    logging.info(
        "Reminder run completed",
        extra={
            "request_id": request_id,
            "step": "reminder_run_complete",
            "plans_evaluated": plans_evaluated,
            "events_emitted": events_emitted,
            "errors": errors,
            "duration_ms": round(duration_ms, 2),
        },
    )
