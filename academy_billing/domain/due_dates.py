"""Due-date calculation for every payment plan category"""

from datetime import date, datetime
from typing import List, Optional

from academy_billing.domain.exceptions import InvalidPlanConfiguration, NoUpcomingObligation
from academy_billing.domain.installments import get_next_unpaid_installment
from academy_billing.domain.policy import classify_payment
from academy_billing.domain.models import (
    CommittedSubscriptionPlan,
    InstallmentPlan,
    MonthlySubscriptionPlan,
    Obligation,
    OneTimePlan,
    PaymentPlan,
    PaymentRecord,
    ReminderPolicy,
)
from academy_billing.utils.date_utils import add_days, add_months, clamp_day, get_zone, local_date


def installment_ref(plan_id: str, sequence_number: int) -> str:
    """Obligation reference for a single installment of a plan"""
    return f"{plan_id}#{sequence_number}"


def calculate_contract_end_date(start_date: date, committed_months: int) -> date:
    if committed_months <= 0:
        raise InvalidPlanConfiguration(f"committed_months must be positive, got {committed_months}")
    return add_months(start_date, committed_months)


def calculate_contract_end_reminder_date(contract_end_date: date, reminder_days: int) -> date:
    if reminder_days < 0:
        raise InvalidPlanConfiguration(f"Contract end reminder days cannot be negative, got {reminder_days}")
    return add_days(contract_end_date, -reminder_days)


def validate_plan(plan: PaymentPlan) -> None:
    """Raise InvalidPlanConfiguration for plans no due date can be derived from"""
    if not isinstance(plan, (OneTimePlan, InstallmentPlan, MonthlySubscriptionPlan)):
        raise InvalidPlanConfiguration(f"Unsupported payment plan type: {type(plan).__name__}")

    get_zone(plan.timezone)

    if isinstance(plan, InstallmentPlan):
        if not plan.installments:
            raise InvalidPlanConfiguration(f"Installment plan {plan.plan_id} has no installments")
        sequence_numbers = [inst.sequence_number for inst in plan.installments]
        if len(set(sequence_numbers)) != len(sequence_numbers):
            raise InvalidPlanConfiguration(f"Installment plan {plan.plan_id} has duplicate sequence numbers")

    elif isinstance(plan, MonthlySubscriptionPlan):
        if not 1 <= plan.billing_day <= 31:
            raise InvalidPlanConfiguration(f"billing_day must be between 1 and 31, got {plan.billing_day}")
        if plan.course_registration_fee_cents < 0 or plan.student_registration_fee_cents < 0:
            raise InvalidPlanConfiguration(f"Registration fees of plan {plan.plan_id} cannot be negative")
        if isinstance(plan, CommittedSubscriptionPlan) and plan.committed_months <= 0:
            raise InvalidPlanConfiguration(
                f"committed_months must be positive, got {plan.committed_months}"
            )
        if isinstance(plan, CommittedSubscriptionPlan) and plan.discounted_amount_cents is not None:
            if not 0 <= plan.discounted_amount_cents <= plan.amount_total_cents:
                raise InvalidPlanConfiguration(
                    f"discounted_amount_cents must be between 0 and {plan.amount_total_cents}, "
                    f"got {plan.discounted_amount_cents}"
                )


def first_billing_date(start_date: date, billing_day: int) -> date:
    """First billing day on or after the start date"""
    candidate = clamp_day(start_date.year, start_date.month, billing_day)
    if candidate < start_date:
        candidate = add_months(start_date, 1, day=billing_day)
    return candidate


def _next_subscription_due_date(plan: MonthlySubscriptionPlan) -> date:
    # Always re-clamp from billing_day so a 31st plan returns to the 31st after February
    if plan.last_paid_period is None:
        return first_billing_date(plan.start_date, plan.billing_day)
    return add_months(plan.last_paid_period, 1, day=plan.billing_day)


def calculate_next_due_date(plan: PaymentPlan, now: Optional[datetime] = None) -> Optional[date]:
    """
    Next date the student owes money on this plan.

    Returns None when nothing is left to collect: one-time plan paid, every
    installment paid, or a committed subscription past its contract end
    (by the next candidate date, or by `now` when given).

    Raises:
        InvalidPlanConfiguration: plan cannot yield a due date
    """
    validate_plan(plan)

    if isinstance(plan, OneTimePlan):
        return None if plan.paid_at is not None else plan.start_date

    if isinstance(plan, InstallmentPlan):
        installment = get_next_unpaid_installment(plan)
        return installment.due_date if installment else None

    # Committed is a subclass of monthly, so it must be matched first
    if isinstance(plan, CommittedSubscriptionPlan):
        contract_end = plan.contract_end_date
        if now is not None and local_date(now, plan.timezone) >= contract_end:
            return None
        candidate = _next_subscription_due_date(plan)
        return candidate if candidate < contract_end else None

    if isinstance(plan, MonthlySubscriptionPlan):
        return _next_subscription_due_date(plan)

    raise InvalidPlanConfiguration(f"Unsupported payment plan type: {type(plan).__name__}")


def require_next_due_date(plan: PaymentPlan, now: Optional[datetime] = None) -> date:
    """Same as calculate_next_due_date but raises NoUpcomingObligation instead of returning None"""
    due_date = calculate_next_due_date(plan, now)
    if due_date is None:
        raise NoUpcomingObligation(plan.plan_id)
    return due_date


def get_obligations(plan: PaymentPlan, now: Optional[datetime] = None) -> List[Obligation]:
    """
    Open obligations of a plan.

    Installment plans yield one obligation per unpaid installment (ordered by
    sequence number); every other category yields at most one plan-level
    obligation for its next due date.
    """
    if isinstance(plan, InstallmentPlan):
        validate_plan(plan)
        unpaid = sorted(
            (inst for inst in plan.installments if not inst.is_paid),
            key=lambda inst: inst.sequence_number,
        )
        return [
            Obligation(
                ref=installment_ref(plan.plan_id, inst.sequence_number),
                due_date=inst.due_date,
                timezone=plan.timezone,
                reminders_sent=inst.reminders_sent,
            )
            for inst in unpaid
        ]

    due_date = calculate_next_due_date(plan, now)
    if due_date is None:
        return []

    return [
        Obligation(
            ref=plan.plan_id,
            due_date=due_date,
            timezone=plan.timezone,
            reminders_sent=plan.reminders_sent,
            contract_end_date=getattr(plan, "contract_end_date", None),
        )
    ]


def classify_plan_payments(plan: PaymentPlan, policy: ReminderPolicy) -> List[PaymentRecord]:
    """
    Completed payments of a plan with their ON_TIME / GRACE / LATE timing.

    Subscriptions only record the last paid period, not when it was paid, so
    they yield no records.
    """
    validate_plan(plan)

    if isinstance(plan, OneTimePlan):
        if plan.paid_at is None:
            return []
        timing = classify_payment(plan.start_date, plan.paid_at, policy, plan.timezone)
        return [PaymentRecord(plan.plan_id, plan.start_date, plan.paid_at, timing)]

    if isinstance(plan, InstallmentPlan):
        return [
            PaymentRecord(
                obligation_ref=installment_ref(plan.plan_id, inst.sequence_number),
                due_date=inst.due_date,
                paid_at=inst.paid_at,
                timing=classify_payment(inst.due_date, inst.paid_at, policy, plan.timezone),
            )
            for inst in sorted(plan.installments, key=lambda inst: inst.sequence_number)
            if inst.is_paid
        ]

    return []
