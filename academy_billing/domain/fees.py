"""Fee of the next billing period for monthly subscriptions"""

from academy_billing.domain.due_dates import first_billing_date, validate_plan
from academy_billing.domain.exceptions import InvalidPlanConfiguration
from academy_billing.domain.models import CommittedSubscriptionPlan, MonthlySubscriptionPlan, PeriodFee


def count_paid_periods(plan: MonthlySubscriptionPlan) -> int:
    """Billing periods paid so far, from the first billing date to last_paid_period"""
    if plan.last_paid_period is None:
        return 0
    first = first_billing_date(plan.start_date, plan.billing_day)
    months = (plan.last_paid_period.year - first.year) * 12 + plan.last_paid_period.month - first.month
    return max(months + 1, 0)


def calculate_period_fee(plan: MonthlySubscriptionPlan) -> PeriodFee:
    """
    Amount owed for the next period of a subscription.

    Committed plans with a discounted_amount_cents pay the discounted fee
    until committed_months periods are paid, then the full amount.
    Registration fees are only charged with the first period.

    Raises:
        InvalidPlanConfiguration: plan is not a subscription or is malformed
    """
    if not isinstance(plan, MonthlySubscriptionPlan):
        raise InvalidPlanConfiguration(f"Period fees only apply to subscriptions, got {type(plan).__name__}")
    validate_plan(plan)

    paid_periods = count_paid_periods(plan)
    monthly_fee = plan.amount_total_cents
    discount_applied = False

    if (
        isinstance(plan, CommittedSubscriptionPlan)
        and plan.discounted_amount_cents is not None
        and paid_periods < plan.committed_months
    ):
        monthly_fee = plan.discounted_amount_cents
        discount_applied = True

    first_period = paid_periods == 0
    return PeriodFee(
        monthly_fee_cents=monthly_fee,
        discount_applied=discount_applied,
        course_registration_fee_cents=plan.course_registration_fee_cents if first_period else 0,
        student_registration_fee_cents=plan.student_registration_fee_cents if first_period else 0,
    )
