"""Reminder policy rules: validation and due/overdue day arithmetic"""

from datetime import date, datetime

from academy_billing.domain.exceptions import InvalidPlanConfiguration
from academy_billing.domain.models import PaymentTiming, ReminderPolicy
from academy_billing.utils.date_utils import add_days, local_date


def validate_policy(policy: ReminderPolicy) -> None:
    """Raise InvalidPlanConfiguration when ladder settings are inconsistent"""
    if policy.grace_days < 0:
        raise InvalidPlanConfiguration(f"grace_days cannot be negative, got {policy.grace_days}")
    if policy.overdue_interval_days <= 0:
        raise InvalidPlanConfiguration(
            f"overdue_interval_days must be positive, got {policy.overdue_interval_days}"
        )
    if policy.max_overdue_attempts < 0:
        raise InvalidPlanConfiguration(
            f"max_overdue_attempts cannot be negative, got {policy.max_overdue_attempts}"
        )
    if policy.pre_due_days < 0:
        raise InvalidPlanConfiguration(f"pre_due_days cannot be negative, got {policy.pre_due_days}")
    if policy.contract_end_reminder_days < 0:
        raise InvalidPlanConfiguration(
            f"contract_end_reminder_days cannot be negative, got {policy.contract_end_reminder_days}"
        )


def days_until_due(due_date: date, now: datetime, timezone: str = "UTC") -> int:
    """Whole days from today to the due date (negative once it has passed)"""
    return (due_date - local_date(now, timezone)).days


def is_overdue(due_date: date, now: datetime, policy: ReminderPolicy, timezone: str = "UTC") -> bool:
    """True once the grace period after due_date has run out"""
    return local_date(now, timezone) >= add_days(due_date, policy.grace_days)


def days_overdue(due_date: date, now: datetime, policy: ReminderPolicy, timezone: str = "UTC") -> int:
    """Days elapsed since the grace period ended, 0 while not overdue"""
    grace_end = add_days(due_date, policy.grace_days)
    return max((local_date(now, timezone) - grace_end).days, 0)


def classify_payment(
    due_date: date,
    paid_at: datetime,
    policy: ReminderPolicy,
    timezone: str = "UTC",
) -> PaymentTiming:
    """
    Classify a completed payment for reporting.

    Payments on or before the due date are ON_TIME, payments after the
    grace period are LATE. Payments inside the grace period are GRACE,
    or ON_TIME when policy.grace_payments_on_time is set.
    """
    paid_day = local_date(paid_at, timezone)
    if paid_day <= due_date:
        return PaymentTiming.ON_TIME
    if paid_day < add_days(due_date, policy.grace_days):
        return PaymentTiming.ON_TIME if policy.grace_payments_on_time else PaymentTiming.GRACE
    return PaymentTiming.LATE
