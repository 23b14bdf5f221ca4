"""POST /v1/plans/* - Due date and reminder state of a single plan"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from academy_billing.api.dependencies import get_request_id
from academy_billing.api.v1.schemas import (
    DueDateRequest,
    DueDateResponse,
    ObligationStateSchema,
    PaymentRecordSchema,
    PeriodFeeSchema,
    ReminderEventSchema,
    RemindersRequest,
    RemindersResponse,
)
from academy_billing.config import default_policy
from academy_billing.domain.due_dates import calculate_next_due_date, classify_plan_payments, get_obligations
from academy_billing.domain.exceptions import DomainException
from academy_billing.domain.fees import calculate_period_fee
from academy_billing.domain.installments import calculate_remaining_balance, calculate_total_paid
from academy_billing.domain.models import InstallmentPlan, MonthlySubscriptionPlan
from academy_billing.domain.policy import days_overdue, days_until_due
from academy_billing.domain.reminders import evaluate_plan, get_reminder_state, next_reminder_date

router = APIRouter()


@router.post("/plans/due-date", response_model=DueDateResponse)
def get_due_date(
    request_body: DueDateRequest,
    request_id: str = Depends(get_request_id),
):
    """
    Compute the next due date of a plan.

    Returns:
        next_due_date (null when nothing is left to collect), plus ledger
        balances for installment plans, the next period fee for
        subscriptions and contract end for committed plans
    """
    now = request_body.now or datetime.now(timezone.utc)

    try:
        plan = request_body.plan.to_domain()
        next_due = calculate_next_due_date(plan, now)
        days_left = days_until_due(next_due, now, plan.timezone) if next_due else None
        period_fee = None
        if isinstance(plan, MonthlySubscriptionPlan) and next_due is not None:
            period_fee = PeriodFeeSchema.from_domain(calculate_period_fee(plan))
    except DomainException as e:
        logging.warning(f"Misconfigured payment plan: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    response = DueDateResponse(
        plan_id=plan.plan_id,
        category=plan.category.value,
        next_due_date=next_due,
        days_until_due=days_left,
        contract_end_date=getattr(plan, "contract_end_date", None),
        period_fee=period_fee,
    )
    if isinstance(plan, InstallmentPlan):
        response.total_paid_cents = calculate_total_paid(plan)
        response.remaining_balance_cents = calculate_remaining_balance(plan)

    return response


@router.post("/plans/reminders", response_model=RemindersResponse)
def get_plan_reminders(
    request_body: RemindersRequest,
    request_id: str = Depends(get_request_id),
):
    """
    Evaluate the reminder ladder of a plan at `now`.

    Events are returned for the caller to dispatch; nothing is recorded.
    Completed payments are listed with their ON_TIME / GRACE / LATE timing.
    """
    now = request_body.now or datetime.now(timezone.utc)

    try:
        plan = request_body.plan.to_domain()
        policy = request_body.policy.to_domain() if request_body.policy else default_policy()
        events = evaluate_plan(plan, now, policy)

        obligations = []
        for obligation in get_obligations(plan, now):
            state, attempt = get_reminder_state(obligation, now, policy)
            obligations.append(
                ObligationStateSchema(
                    obligation_ref=obligation.ref,
                    due_date=obligation.due_date,
                    state=state.value,
                    attempt_number=attempt,
                    days_overdue=days_overdue(obligation.due_date, now, policy, obligation.timezone),
                    next_reminder_date=next_reminder_date(obligation, now, policy),
                )
            )
        payments = classify_plan_payments(plan, policy)
    except DomainException as e:
        logging.warning(f"Misconfigured payment plan: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    return RemindersResponse(
        plan_id=plan.plan_id,
        obligations=obligations,
        events=[ReminderEventSchema.from_domain(event) for event in events],
        payments=[PaymentRecordSchema.from_domain(record) for record in payments],
    )
