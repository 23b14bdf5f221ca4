"""
Reminder policy evaluator.

The reminder ladder of an obligation is never stored. Every call derives
the state from the plan-local calendar day of `now` against the due date:

    UPCOMING -> PRE_DUE_WINDOW -> GRACE_WINDOW -> OVERDUE(n) -> EXHAUSTED

and SETTLED as soon as the obligation is paid. The overdue attempt number is
computed from elapsed days, so repeated calls inside one boundary window
produce identical events. Committed subscriptions additionally get a
CONTRACT_END reminder in the last days before the contract ends, independent
of the ladder.
"""

from datetime import date, datetime
from typing import List, Optional, Tuple

from academy_billing.domain.due_dates import calculate_contract_end_reminder_date, get_obligations
from academy_billing.domain.models import (
    CommittedSubscriptionPlan,
    Obligation,
    PaymentPlan,
    ReminderEvent,
    ReminderKind,
    ReminderPolicy,
    ReminderState,
)
from academy_billing.domain.policy import validate_policy
from academy_billing.utils.date_utils import add_days, local_date, start_of_day


def get_reminder_state(
    obligation: Obligation,
    now: datetime,
    policy: ReminderPolicy,
) -> Tuple[ReminderState, int]:
    """
    Ladder position of an obligation at `now`.

    Returns (state, attempt_number); attempt_number is only meaningful for
    OVERDUE (1-based) and EXHAUSTED (the cap), 0 otherwise.
    """
    validate_policy(policy)

    if obligation.paid_at is not None:
        return ReminderState.SETTLED, 0

    today = local_date(now, obligation.timezone)
    offset = (today - obligation.due_date).days

    if offset < -policy.pre_due_days:
        return ReminderState.UPCOMING, 0
    if offset < 0:
        return ReminderState.PRE_DUE_WINDOW, 0
    if offset < policy.grace_days:
        return ReminderState.GRACE_WINDOW, 0

    attempt = (offset - policy.grace_days) // policy.overdue_interval_days + 1
    if attempt > policy.max_overdue_attempts or obligation.reminders_sent >= policy.max_overdue_attempts:
        return ReminderState.EXHAUSTED, policy.max_overdue_attempts
    return ReminderState.OVERDUE, attempt


def _overdue_boundary(obligation: Obligation, policy: ReminderPolicy, attempt: int) -> date:
    return add_days(obligation.due_date, policy.grace_days + (attempt - 1) * policy.overdue_interval_days)


def _event(kind: ReminderKind, ref: str, due_date: date, boundary: date, attempt: int, timezone: str) -> ReminderEvent:
    return ReminderEvent(
        kind=kind,
        obligation_ref=ref,
        due_date=due_date,
        fired_at=start_of_day(boundary, timezone),
        attempt_number=attempt,
    )


def _grace_start(due_date: date, policy: ReminderPolicy) -> date:
    # The due date itself belongs to DUE_DATE when that reminder is on
    return add_days(due_date, 1) if policy.due_date_enabled else due_date


def _grace_window_event(obligation: Obligation, now: datetime, policy: ReminderPolicy) -> Optional[ReminderEvent]:
    ref, due, tz = obligation.ref, obligation.due_date, obligation.timezone
    if policy.due_date_enabled and local_date(now, tz) == due:
        return _event(ReminderKind.DUE_DATE, ref, due, due, 1, tz)
    if policy.grace_enabled:
        return _event(ReminderKind.GRACE_PERIOD, ref, due, _grace_start(due, policy), 1, tz)
    return None


def _contract_end_event(
    ref: str,
    contract_end_date: Optional[date],
    now: datetime,
    policy: ReminderPolicy,
    timezone: str,
) -> Optional[ReminderEvent]:
    if contract_end_date is None or policy.contract_end_reminder_days == 0:
        return None
    window_start = calculate_contract_end_reminder_date(contract_end_date, policy.contract_end_reminder_days)
    today = local_date(now, timezone)
    if window_start <= today < contract_end_date:
        return _event(ReminderKind.CONTRACT_END, ref, contract_end_date, window_start, 1, timezone)
    return None


def evaluate(obligation: Obligation, now: datetime, policy: ReminderPolicy) -> List[ReminderEvent]:
    """
    Reminders due for one obligation at `now`.

    At most one ladder event (PRE_DUE, DUE_DATE, GRACE_PERIOD or OVERDUE) plus
    at most one CONTRACT_END event. Disabled reminder kinds are never emitted.
    DUE_DATE is opt-in and only fires when the due date falls inside the grace
    window; with grace_days == 0 the due date is already OVERDUE(1).

    Raises:
        InvalidPlanConfiguration: policy is inconsistent
    """
    state, attempt = get_reminder_state(obligation, now, policy)
    events = []

    if state == ReminderState.PRE_DUE_WINDOW and policy.pre_due_enabled:
        boundary = add_days(obligation.due_date, -policy.pre_due_days)
        events.append(_event(ReminderKind.PRE_DUE, obligation.ref, obligation.due_date, boundary, 1, obligation.timezone))

    elif state == ReminderState.GRACE_WINDOW:
        event = _grace_window_event(obligation, now, policy)
        if event:
            events.append(event)

    elif state == ReminderState.OVERDUE and policy.overdue_enabled:
        boundary = _overdue_boundary(obligation, policy, attempt)
        events.append(
            _event(ReminderKind.OVERDUE, obligation.ref, obligation.due_date, boundary, attempt, obligation.timezone)
        )

    contract_event = _contract_end_event(
        obligation.ref, obligation.contract_end_date, now, policy, obligation.timezone
    )
    if contract_event:
        events.append(contract_event)

    return events


def evaluate_plan(plan: PaymentPlan, now: datetime, policy: ReminderPolicy) -> List[ReminderEvent]:
    """Evaluate every open obligation of a plan"""
    validate_policy(policy)
    obligations = get_obligations(plan, now)

    events = []
    for obligation in obligations:
        events.extend(evaluate(obligation, now, policy))

    # A committed plan paid up to its contract end still gets its end-of-contract reminder
    if not obligations and isinstance(plan, CommittedSubscriptionPlan):
        contract_event = _contract_end_event(plan.plan_id, plan.contract_end_date, now, policy, plan.timezone)
        if contract_event:
            events.append(contract_event)

    return events


def build_reminder_schedule(obligation: Obligation, policy: ReminderPolicy) -> List[ReminderEvent]:
    """Every reminder the ladder can produce for this due date, in firing order"""
    validate_policy(policy)
    if obligation.paid_at is not None:
        return []

    ref, due, tz = obligation.ref, obligation.due_date, obligation.timezone
    schedule = []

    if policy.pre_due_enabled and policy.pre_due_days > 0:
        schedule.append(_event(ReminderKind.PRE_DUE, ref, due, add_days(due, -policy.pre_due_days), 1, tz))

    if policy.due_date_enabled and policy.grace_days > 0:
        schedule.append(_event(ReminderKind.DUE_DATE, ref, due, due, 1, tz))

    grace_start = _grace_start(due, policy)
    if policy.grace_enabled and grace_start < add_days(due, policy.grace_days):
        schedule.append(_event(ReminderKind.GRACE_PERIOD, ref, due, grace_start, 1, tz))

    if policy.overdue_enabled:
        for attempt in range(1, policy.max_overdue_attempts + 1):
            boundary = _overdue_boundary(obligation, policy, attempt)
            schedule.append(_event(ReminderKind.OVERDUE, ref, due, boundary, attempt, tz))

    if obligation.contract_end_date is not None and policy.contract_end_reminder_days > 0:
        window_start = calculate_contract_end_reminder_date(
            obligation.contract_end_date, policy.contract_end_reminder_days
        )
        schedule.append(_event(ReminderKind.CONTRACT_END, ref, obligation.contract_end_date, window_start, 1, tz))

    return sorted(schedule, key=lambda event: event.fired_at)


def next_reminder_date(obligation: Obligation, now: datetime, policy: ReminderPolicy) -> Optional[date]:
    """Day the next not-yet-reached reminder boundary falls on, if any"""
    today = local_date(now, obligation.timezone)
    exhausted = obligation.reminders_sent >= policy.max_overdue_attempts
    for event in build_reminder_schedule(obligation, policy):
        if exhausted and event.kind == ReminderKind.OVERDUE:
            continue
        if event.fired_at.date() > today:
            return event.fired_at.date()
    return None
