"""Installment ledger for one-time payments split into installments"""

from datetime import date, datetime
from typing import List, Optional

from academy_billing.domain.exceptions import InvalidInstallmentConfig
from academy_billing.domain.models import (
    Installment,
    InstallmentPlan,
    InstallmentRule,
    InstallmentStage,
    ReminderPolicy,
)
from academy_billing.domain.policy import is_overdue, validate_policy
from academy_billing.utils.date_utils import add_days


# Reminder lead time and invoicing per stage; only the first payment skips its invoice
INSTALLMENT_RULES = {
    InstallmentStage.FIRST: InstallmentRule(
        reminder_days_before=2,
        invoice_on_payment=False,
        final_invoice=False,
        stop_reminder_toggle=False,
        stop_access_toggle=False,
    ),
    InstallmentStage.MIDDLE: InstallmentRule(
        reminder_days_before=2,
        invoice_on_payment=True,
        final_invoice=False,
        stop_reminder_toggle=True,
        stop_access_toggle=True,
    ),
    InstallmentStage.LAST: InstallmentRule(
        reminder_days_before=2,
        invoice_on_payment=True,
        final_invoice=True,
        stop_reminder_toggle=True,
        stop_access_toggle=True,
    ),
}


def validate_installment_config(count: int, cadence_days: int, total_cents: int) -> None:
    """Reject configurations that cannot produce a valid ledger"""
    if count < 1:
        raise InvalidInstallmentConfig(f"Installment count must be at least 1, got {count}")
    if cadence_days < 1:
        raise InvalidInstallmentConfig(f"Cadence must be at least 1 day, got {cadence_days}")
    if total_cents <= 0:
        raise InvalidInstallmentConfig(f"Total amount must be positive, got {total_cents}")


def generate_one_time_installments(
    total_cents: int,
    count: int,
    start_date: date,
    cadence_days: int,
) -> List[Installment]:
    """
    Split a one-time total into equal installments.

    Requirements:
    - Installments are numbered 1..count
    - First installment is due on start_date, the rest every cadence_days
    - Last installment absorbs rounding remainder so the sum is exact

    Example:
        1000 over 3 → [333, 333, 334]
        1000 // 3 = 333 base, remainder 1
        Last installment: 333 + 1 = 334
    """
    validate_installment_config(count, cadence_days, total_cents)

    base_amount = total_cents // count
    remainder = total_cents % count

    installments = []
    for i in range(count):
        due_date = add_days(start_date, i * cadence_days)

        # Last installment absorbs remainder to ensure exact total
        amount = base_amount + (remainder if i == count - 1 else 0)

        installments.append(Installment(sequence_number=i + 1, due_date=due_date, amount_cents=amount))

    return installments


def create_installment_plan(
    plan_id: str,
    total_cents: int,
    count: int,
    start_date: date,
    cadence_days: int,
    timezone: str = "UTC",
) -> InstallmentPlan:
    """Build a plan with its whole installment schedule generated up front"""
    installments = generate_one_time_installments(total_cents, count, start_date, cadence_days)
    return InstallmentPlan(
        plan_id=plan_id,
        start_date=start_date,
        amount_total_cents=total_cents,
        installments=installments,
        timezone=timezone,
    )


def mark_installment_as_paid(installment: Installment, paid_at: datetime) -> bool:
    """
    Record payment of a single installment.

    Returns True when the installment moved from unpaid to paid. Marking an
    already-paid installment keeps the original paid_at and returns False.
    """
    if installment.paid_at is not None:
        return False
    installment.paid_at = paid_at
    return True


def get_next_unpaid_installment(plan: InstallmentPlan) -> Optional[Installment]:
    unpaid = [inst for inst in plan.installments if inst.paid_at is None]
    if not unpaid:
        return None
    return min(unpaid, key=lambda inst: inst.sequence_number)


def calculate_total_paid(plan: InstallmentPlan) -> int:
    return sum(inst.amount_cents for inst in plan.installments if inst.paid_at is not None)


def calculate_remaining_balance(plan: InstallmentPlan) -> int:
    """Sum of unpaid installment amounts"""
    return sum(inst.amount_cents for inst in plan.installments if inst.paid_at is None)


def are_all_installments_paid(plan: InstallmentPlan) -> bool:
    return all(inst.paid_at is not None for inst in plan.installments)


def get_installments_needing_reminders(
    plan: InstallmentPlan,
    now: datetime,
    policy: ReminderPolicy,
) -> List[Installment]:
    """
    Unpaid installments past their grace period with reminders left to send.

    An installment qualifies once the plan-local day reaches
    due_date + grace_days and while reminders_sent < max_overdue_attempts.
    Ordered by sequence number.
    """
    validate_policy(policy)
    needing = [
        inst
        for inst in plan.installments
        if not inst.is_paid
        and is_overdue(inst.due_date, now, policy, plan.timezone)
        and inst.reminders_sent < policy.max_overdue_attempts
    ]
    return sorted(needing, key=lambda inst: inst.sequence_number)


def get_installment_stage(sequence_number: int, total_installments: int) -> InstallmentStage:
    """
    Stage of an installment within a plan of `total_installments`.

    The first installment is always FIRST, so a single-installment plan never
    reaches LAST.
    """
    if sequence_number < 1 or sequence_number > total_installments:
        raise InvalidInstallmentConfig(
            f"Installment {sequence_number} is outside a plan of {total_installments}"
        )
    if sequence_number == 1:
        return InstallmentStage.FIRST
    if sequence_number == total_installments:
        return InstallmentStage.LAST
    return InstallmentStage.MIDDLE


def get_installment_rule(installment: Installment, total_installments: int) -> InstallmentRule:
    return INSTALLMENT_RULES[get_installment_stage(installment.sequence_number, total_installments)]


def calculate_installment_reminder_date(installment: Installment, total_installments: int) -> date:
    """Day the stage-specific reminder for this installment goes out"""
    rule = get_installment_rule(installment, total_installments)
    return add_days(installment.due_date, -rule.reminder_days_before)
