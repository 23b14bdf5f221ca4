"""POST /v1/reminders/run - Scheduler tick over a batch of plans"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from academy_billing.api.dependencies import get_request_id, verify_cron_secret
from academy_billing.api.v1.schemas import (
    PlanRunResult,
    ReminderEventSchema,
    ReminderRunRequest,
    ReminderRunResponse,
)
from academy_billing.config import default_policy
from academy_billing.domain.due_dates import require_next_due_date
from academy_billing.domain.exceptions import DomainException, NoUpcomingObligation
from academy_billing.domain.policy import validate_policy
from academy_billing.domain.reminders import evaluate_plan
from academy_billing.infrastructure.observability.logging import log_reminder_events, log_reminder_run
from academy_billing.infrastructure.observability.metrics import (
    record_plan_outcome,
    record_reminder_events,
    reminder_run_duration_histogram,
)

router = APIRouter()


@router.post(
    "/reminders/run",
    response_model=ReminderRunResponse,
    dependencies=[Depends(verify_cron_secret)],
)
def run_reminders(
    request_body: ReminderRunRequest,
    request_id: str = Depends(get_request_id),
):
    """
    Evaluate reminders for every plan in the batch.

    Intended to be called once per scheduling tick (daily). A misconfigured
    plan is reported with status "error" and does not stop the batch; plans
    with nothing left to collect are "skipped". Delivery and recording of
    reminders_sent stay with the caller.
    """
    start_time = time.time()
    now = request_body.now or datetime.now(timezone.utc)

    results = []
    evaluated = skipped = errors = events_emitted = 0

    try:
        policy = request_body.policy.to_domain() if request_body.policy else default_policy()
        validate_policy(policy)
    except DomainException as e:
        logging.warning(f"Invalid reminder policy: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    with reminder_run_duration_histogram.time():
        for plan_body in request_body.plans:
            try:
                plan = plan_body.to_domain()
                events = evaluate_plan(plan, now, policy)
                if not events:
                    require_next_due_date(plan, now)

            except NoUpcomingObligation as e:
                results.append(PlanRunResult(plan_id=plan_body.plan_id, status="skipped", reason=str(e)))
                skipped += 1
                record_plan_outcome("skipped")

            except DomainException as e:
                logging.warning(
                    f"Misconfigured payment plan {plan_body.plan_id}: {e}",
                    extra={"request_id": request_id, "plan_id": plan_body.plan_id},
                )
                results.append(PlanRunResult(plan_id=plan_body.plan_id, status="error", reason=str(e)))
                errors += 1
                record_plan_outcome("error")

            else:
                results.append(
                    PlanRunResult(
                        plan_id=plan.plan_id,
                        status="evaluated",
                        events=[ReminderEventSchema.from_domain(event) for event in events],
                    )
                )
                evaluated += 1
                events_emitted += len(events)
                record_plan_outcome("evaluated")
                record_reminder_events(events)
                log_reminder_events(request_id, plan.plan_id, events)

    duration_ms = (time.time() - start_time) * 1000
    log_reminder_run(request_id, evaluated, events_emitted, errors, duration_ms)

    return ReminderRunResponse(
        evaluated=evaluated,
        skipped=skipped,
        errors=errors,
        events_emitted=events_emitted,
        results=results,
    )
