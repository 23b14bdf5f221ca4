"""Unit tests for the reminder policy evaluator"""

import pytest
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo
from academy_billing.domain.due_dates import calculate_contract_end_reminder_date
from academy_billing.domain.exceptions import InvalidPlanConfiguration
from academy_billing.domain.installments import mark_installment_as_paid
from academy_billing.domain.models import (
    CommittedSubscriptionPlan,
    Obligation,
    ReminderKind,
    ReminderPolicy,
    ReminderState,
)
from academy_billing.domain.reminders import (
    build_reminder_schedule,
    evaluate,
    evaluate_plan,
    get_reminder_state,
    next_reminder_date,
)


DUE = date(2025, 3, 10)


def day(offset: int, hour: int = 9) -> datetime:
    """Instant `offset` days from the due date"""
    moment = datetime(DUE.year, DUE.month, DUE.day, hour, tzinfo=timezone.utc)
    return moment + timedelta(days=offset)


@pytest.fixture
def obligation() -> Obligation:
    return Obligation(ref="plan_once", due_date=DUE)


@pytest.mark.parametrize(
    "offset,state,attempt",
    [
        (-10, ReminderState.UPCOMING, 0),
        (-4, ReminderState.UPCOMING, 0),
        (-3, ReminderState.PRE_DUE_WINDOW, 0),
        (-1, ReminderState.PRE_DUE_WINDOW, 0),
        (0, ReminderState.GRACE_WINDOW, 0),
        (1, ReminderState.GRACE_WINDOW, 0),
        (2, ReminderState.OVERDUE, 1),
        (6, ReminderState.OVERDUE, 1),
        (7, ReminderState.OVERDUE, 2),
        (11, ReminderState.OVERDUE, 2),
        (12, ReminderState.EXHAUSTED, 2),
        (90, ReminderState.EXHAUSTED, 2),
    ],
)
def test_reminder_ladder_states(obligation, ladder_policy, offset, state, attempt):
    assert get_reminder_state(obligation, day(offset), ladder_policy) == (state, attempt)


def test_reminder_ladder_boundaries(obligation, ladder_policy):
    """Test events at day -3, 0, 2, 7 and 12 for a 3/2/5/2 policy"""
    [pre_due] = evaluate(obligation, day(-3), ladder_policy)
    assert pre_due.kind == ReminderKind.PRE_DUE
    assert pre_due.due_date == DUE

    [grace] = evaluate(obligation, day(0), ladder_policy)
    assert grace.kind == ReminderKind.GRACE_PERIOD

    [first_overdue] = evaluate(obligation, day(2), ladder_policy)
    assert first_overdue.kind == ReminderKind.OVERDUE
    assert first_overdue.attempt_number == 1

    [second_overdue] = evaluate(obligation, day(7), ladder_policy)
    assert second_overdue.attempt_number == 2

    assert evaluate(obligation, day(12), ladder_policy) == []


def test_upcoming_emits_nothing(obligation, ladder_policy):
    assert evaluate(obligation, day(-4), ladder_policy) == []


def test_no_double_fire_within_boundary_window(obligation, ladder_policy):
    """Test two instants inside one overdue interval yield the same event"""
    early = evaluate(obligation, day(7, hour=0), ladder_policy)
    late = evaluate(obligation, day(11, hour=23), ladder_policy)

    assert early == late
    assert early[0].attempt_number == 2
    assert early[0].fired_at == datetime(2025, 3, 17, tzinfo=ZoneInfo("UTC"))


def test_settled_obligation_emits_nothing(obligation, ladder_policy):
    obligation.paid_at = day(5)

    assert get_reminder_state(obligation, day(7), ladder_policy) == (ReminderState.SETTLED, 0)
    assert evaluate(obligation, day(7), ladder_policy) == []


def test_reminders_sent_cap_exhausts(obligation, ladder_policy):
    obligation.reminders_sent = ladder_policy.max_overdue_attempts

    state, _ = get_reminder_state(obligation, day(3), ladder_policy)
    assert state == ReminderState.EXHAUSTED
    assert evaluate(obligation, day(3), ladder_policy) == []


def test_zero_max_attempts_goes_straight_to_exhausted(obligation):
    policy = ReminderPolicy(grace_days=2, overdue_interval_days=5, max_overdue_attempts=0)

    assert get_reminder_state(obligation, day(2), policy)[0] == ReminderState.EXHAUSTED


def test_zero_grace_days_overdue_on_due_date(obligation):
    policy = ReminderPolicy(pre_due_days=0, grace_days=0, overdue_interval_days=5, max_overdue_attempts=3)

    assert get_reminder_state(obligation, day(-1), policy)[0] == ReminderState.UPCOMING
    assert get_reminder_state(obligation, day(0), policy) == (ReminderState.OVERDUE, 1)


def test_disabled_kinds_are_suppressed(obligation):
    policy = ReminderPolicy(
        pre_due_days=3,
        grace_days=2,
        overdue_interval_days=5,
        max_overdue_attempts=2,
        pre_due_enabled=False,
        grace_enabled=False,
    )

    assert evaluate(obligation, day(-2), policy) == []
    assert evaluate(obligation, day(1), policy) == []
    assert len(evaluate(obligation, day(3), policy)) == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"grace_days": -1},
        {"overdue_interval_days": 0},
        {"max_overdue_attempts": -1},
        {"pre_due_days": -2},
        {"contract_end_reminder_days": -1},
    ],
)
def test_inconsistent_policy_rejected(obligation, overrides):
    with pytest.raises(InvalidPlanConfiguration):
        evaluate(obligation, day(0), ReminderPolicy(**overrides))


def test_day_boundaries_follow_obligation_timezone(ladder_policy):
    """Test the pre-due window opens at local midnight in the plan's zone"""
    obligation = Obligation(ref="ny", due_date=DUE, timezone="America/New_York")

    # 02:00 UTC on Mar 7 is still Mar 6 in New York
    assert evaluate(obligation, datetime(2025, 3, 7, 2, tzinfo=timezone.utc), ladder_policy) == []

    [event] = evaluate(obligation, datetime(2025, 3, 7, 6, tzinfo=timezone.utc), ladder_policy)
    assert event.kind == ReminderKind.PRE_DUE
    assert event.fired_at == datetime(2025, 3, 7, tzinfo=ZoneInfo("America/New_York"))


def test_naive_now_is_treated_as_utc(obligation, ladder_policy):
    naive = datetime(2025, 3, 7, 9)
    assert evaluate(obligation, naive, ladder_policy) == evaluate(obligation, day(-3), ladder_policy)


def test_contract_end_window_co_occurs_with_ladder(committed_plan):
    # Contract ends Jul 1; period due Jun 1 unpaid, on Jun 25 both reminders are active
    committed_plan.last_paid_period = date(2025, 5, 1)
    now = datetime(2025, 6, 25, 9, tzinfo=timezone.utc)

    policy = ReminderPolicy(grace_days=2, overdue_interval_days=5, max_overdue_attempts=5, contract_end_reminder_days=10)

    events = evaluate_plan(committed_plan, now, policy)
    kinds = sorted(event.kind.value for event in events)

    assert kinds == ["CONTRACT_END", "OVERDUE"]
    contract_event = next(e for e in events if e.kind == ReminderKind.CONTRACT_END)
    assert contract_event.due_date == date(2025, 7, 1)
    assert contract_event.fired_at.date() == date(2025, 6, 21)


def test_contract_end_reminder_without_open_obligation(committed_plan, ladder_policy):
    committed_plan.last_paid_period = date(2025, 6, 1)
    now = datetime(2025, 6, 28, 9, tzinfo=timezone.utc)

    [event] = evaluate_plan(committed_plan, now, ladder_policy)
    assert event.kind == ReminderKind.CONTRACT_END


def test_no_reminders_after_contract_end(committed_plan, ladder_policy):
    committed_plan.last_paid_period = date(2025, 3, 1)
    assert evaluate_plan(committed_plan, datetime(2025, 7, 5, tzinfo=timezone.utc), ladder_policy) == []


def test_evaluate_installment_plan(installment_plan):
    """Test each unpaid installment runs its own ladder"""
    # Due dates Jan 1, Jan 31, Mar 2
    mark_installment_as_paid(installment_plan.installments[0], datetime(2025, 1, 1, tzinfo=timezone.utc))
    now = datetime(2025, 2, 27, 9, tzinfo=timezone.utc)

    policy = ReminderPolicy(pre_due_days=3, grace_days=2, overdue_interval_days=5, max_overdue_attempts=10)

    events = evaluate_plan(installment_plan, now, policy)

    assert [(e.obligation_ref, e.kind, e.attempt_number) for e in events] == [
        ("plan_inst#2", ReminderKind.OVERDUE, 6),
        ("plan_inst#3", ReminderKind.PRE_DUE, 1),
    ]


def test_build_reminder_schedule(obligation, ladder_policy):
    schedule = build_reminder_schedule(obligation, ladder_policy)

    assert [(e.kind, e.fired_at.date()) for e in schedule] == [
        (ReminderKind.PRE_DUE, date(2025, 3, 7)),
        (ReminderKind.GRACE_PERIOD, date(2025, 3, 10)),
        (ReminderKind.OVERDUE, date(2025, 3, 12)),
        (ReminderKind.OVERDUE, date(2025, 3, 17)),
    ]


def test_schedule_matches_evaluation(obligation, ladder_policy):
    """Test every scheduled event is exactly what evaluate emits on its day"""
    for scheduled in build_reminder_schedule(obligation, ladder_policy):
        offset = (scheduled.fired_at.date() - DUE).days
        assert scheduled in evaluate(obligation, day(offset), ladder_policy)


def test_next_reminder_date(obligation, ladder_policy):
    assert next_reminder_date(obligation, day(-10), ladder_policy) == date(2025, 3, 7)
    assert next_reminder_date(obligation, day(0), ladder_policy) == date(2025, 3, 12)
    assert next_reminder_date(obligation, day(7), ladder_policy) is None

    obligation.reminders_sent = 2
    assert next_reminder_date(obligation, day(0), ladder_policy) is None


def test_out_of_range_policy_is_a_plan_error(obligation):
    policy = ReminderPolicy(pre_due_days=10**7)

    with pytest.raises(InvalidPlanConfiguration):
        evaluate(obligation, day(-1), policy)


def test_committed_plan_beyond_calendar_is_a_plan_error():
    with pytest.raises(InvalidPlanConfiguration):
        CommittedSubscriptionPlan(
            plan_id="forever",
            start_date=date(2025, 1, 1),
            amount_total_cents=100,
            committed_months=100000,
        )


@pytest.fixture
def due_date_policy() -> ReminderPolicy:
    return ReminderPolicy(
        pre_due_days=3,
        grace_days=2,
        overdue_interval_days=5,
        max_overdue_attempts=2,
        due_date_enabled=True,
    )


def test_due_date_reminder_on_due_day(obligation, due_date_policy):
    [on_due] = evaluate(obligation, day(0), due_date_policy)
    assert on_due.kind == ReminderKind.DUE_DATE
    assert on_due.fired_at.date() == DUE

    [grace] = evaluate(obligation, day(1), due_date_policy)
    assert grace.kind == ReminderKind.GRACE_PERIOD
    assert grace.fired_at.date() == date(2025, 3, 11)


def test_due_date_reminder_is_off_by_default(obligation, ladder_policy):
    kinds = [event.kind for event in build_reminder_schedule(obligation, ladder_policy)]
    assert ReminderKind.DUE_DATE not in kinds


def test_due_date_reminder_yields_to_overdue_without_grace(obligation):
    policy = ReminderPolicy(grace_days=0, overdue_interval_days=5, max_overdue_attempts=2, due_date_enabled=True)

    [event] = evaluate(obligation, day(0), policy)
    assert event.kind == ReminderKind.OVERDUE
    assert ReminderKind.DUE_DATE not in [e.kind for e in build_reminder_schedule(obligation, policy)]


def test_schedule_with_due_date_reminder(obligation, due_date_policy):
    schedule = build_reminder_schedule(obligation, due_date_policy)

    assert [(e.kind, e.fired_at.date()) for e in schedule] == [
        (ReminderKind.PRE_DUE, date(2025, 3, 7)),
        (ReminderKind.DUE_DATE, date(2025, 3, 10)),
        (ReminderKind.GRACE_PERIOD, date(2025, 3, 11)),
        (ReminderKind.OVERDUE, date(2025, 3, 12)),
        (ReminderKind.OVERDUE, date(2025, 3, 17)),
    ]
    for scheduled in schedule:
        offset = (scheduled.fired_at.date() - DUE).days
        assert scheduled in evaluate(obligation, day(offset), due_date_policy)


def test_contract_end_window_matches_reminder_date_helper(committed_plan, ladder_policy):
    committed_plan.last_paid_period = date(2025, 6, 1)
    expected_start = calculate_contract_end_reminder_date(date(2025, 7, 1), ladder_policy.contract_end_reminder_days)

    assert evaluate_plan(committed_plan, datetime(2025, 6, 20, 23, tzinfo=timezone.utc), ladder_policy) == []
    [event] = evaluate_plan(committed_plan, datetime(2025, 6, 21, tzinfo=timezone.utc), ladder_policy)
    assert event.fired_at.date() == expected_start
