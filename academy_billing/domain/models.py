"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Union

from academy_billing.domain.exceptions import InvalidInstallmentConfig
from academy_billing.utils.date_utils import add_months


class PaymentCategory(str, Enum):
    """Payment structure of a plan; fixed for the lifetime of the plan"""

    ONE_TIME = "ONE_TIME"
    ONE_TIME_WITH_INSTALLMENTS = "ONE_TIME_WITH_INSTALLMENTS"
    MONTHLY_SUBSCRIPTION = "MONTHLY_SUBSCRIPTION"
    MONTHLY_SUBSCRIPTION_COMMITTED = "MONTHLY_SUBSCRIPTION_COMMITTED"


class ReminderKind(str, Enum):
    PRE_DUE = "PRE_DUE"
    DUE_DATE = "DUE_DATE"
    GRACE_PERIOD = "GRACE_PERIOD"
    OVERDUE = "OVERDUE"
    CONTRACT_END = "CONTRACT_END"


class ReminderState(str, Enum):
    """Position of an obligation on the reminder ladder, derived from time"""

    UPCOMING = "UPCOMING"
    PRE_DUE_WINDOW = "PRE_DUE_WINDOW"
    GRACE_WINDOW = "GRACE_WINDOW"
    OVERDUE = "OVERDUE"
    EXHAUSTED = "EXHAUSTED"
    SETTLED = "SETTLED"


class PaymentTiming(str, Enum):
    """Reporting classification of a completed payment"""

    ON_TIME = "ON_TIME"
    GRACE = "GRACE"
    LATE = "LATE"


class InstallmentStage(str, Enum):
    """Position of an installment within its plan"""

    FIRST = "FIRST"
    MIDDLE = "MIDDLE"
    LAST = "LAST"


@dataclass(frozen=True)
class InstallmentRule:
    """Reminder and invoicing behaviour of an installment stage"""

    reminder_days_before: int
    invoice_on_payment: bool
    final_invoice: bool
    stop_reminder_toggle: bool
    stop_access_toggle: bool


@dataclass
class Installment:
    """Single payment in a one-time-with-installments plan"""

    sequence_number: int
    due_date: date
    amount_cents: int
    paid_at: datetime | None = None
    reminders_sent: int = 0

    @property
    def is_paid(self) -> bool:
        return self.paid_at is not None


@dataclass
class OneTimePlan:
    """Single payment due on the start date"""

    plan_id: str
    start_date: date
    amount_total_cents: int
    timezone: str = "UTC"
    paid_at: datetime | None = None
    reminders_sent: int = 0

    @property
    def category(self) -> PaymentCategory:
        return PaymentCategory.ONE_TIME


@dataclass
class InstallmentPlan:
    """One-time total split into a fixed schedule of installments"""

    plan_id: str
    start_date: date
    amount_total_cents: int
    installments: List[Installment] = field(default_factory=list)
    timezone: str = "UTC"
    reminders_sent: int = 0

    @property
    def category(self) -> PaymentCategory:
        return PaymentCategory.ONE_TIME_WITH_INSTALLMENTS

    def __post_init__(self) -> None:
        # Checked once at construction; later edits are the ledger's business
        if self.installments:
            installment_sum = sum(inst.amount_cents for inst in self.installments)
            if installment_sum != self.amount_total_cents:
                raise InvalidInstallmentConfig(
                    f"Installments sum to {installment_sum}, expected {self.amount_total_cents}"
                )


@dataclass
class MonthlySubscriptionPlan:
    """Open-ended monthly billing on a fixed day of the month"""

    plan_id: str
    start_date: date
    amount_total_cents: int
    billing_day: int | None = None
    last_paid_period: date | None = None  # due date of the latest paid period
    timezone: str = "UTC"
    reminders_sent: int = 0
    # Charged once, with the first period
    course_registration_fee_cents: int = 0
    student_registration_fee_cents: int = 0

    @property
    def category(self) -> PaymentCategory:
        return PaymentCategory.MONTHLY_SUBSCRIPTION

    def __post_init__(self) -> None:
        if self.billing_day is None:
            self.billing_day = self.start_date.day


@dataclass
class CommittedSubscriptionPlan(MonthlySubscriptionPlan):
    """
    Monthly subscription with a fixed contract length.

    While fewer than `committed_months` periods are paid, each period costs
    `discounted_amount_cents` when set; afterwards the full amount applies.
    """

    committed_months: int = 12
    discounted_amount_cents: int | None = None
    contract_end_date: date | None = field(default=None, init=False)

    @property
    def category(self) -> PaymentCategory:
        return PaymentCategory.MONTHLY_SUBSCRIPTION_COMMITTED

    def __post_init__(self) -> None:
        super().__post_init__()
        # Non-positive lengths are left for the calculator to reject; an end past
        # the calendar raises InvalidPlanConfiguration from add_months
        if self.committed_months > 0:
            self.contract_end_date = add_months(self.start_date, self.committed_months)


PaymentPlan = Union[OneTimePlan, InstallmentPlan, MonthlySubscriptionPlan, CommittedSubscriptionPlan]


@dataclass
class ReminderPolicy:
    """Admin-configurable reminder ladder"""

    pre_due_days: int = 3
    grace_days: int = 2
    overdue_interval_days: int = 7
    max_overdue_attempts: int = 5
    contract_end_reminder_days: int = 10
    pre_due_enabled: bool = True
    due_date_enabled: bool = False  # DUE_DATE on the due date itself, ahead of the grace reminder
    grace_enabled: bool = True
    overdue_enabled: bool = True
    grace_payments_on_time: bool = True


@dataclass
class Obligation:
    """A single due-date instance owed by a student"""

    ref: str
    due_date: date
    timezone: str = "UTC"
    paid_at: datetime | None = None
    reminders_sent: int = 0
    contract_end_date: date | None = None


@dataclass(frozen=True)
class ReminderEvent:
    """Reminder the dispatcher should deliver"""

    kind: ReminderKind
    obligation_ref: str
    due_date: date
    fired_at: datetime
    attempt_number: int


@dataclass(frozen=True)
class PaymentRecord:
    """Completed payment of one obligation, classified for reporting"""

    obligation_ref: str
    due_date: date
    paid_at: datetime
    timing: PaymentTiming


@dataclass(frozen=True)
class PeriodFee:
    """Amount owed for the next subscription period"""

    monthly_fee_cents: int
    discount_applied: bool
    course_registration_fee_cents: int = 0
    student_registration_fee_cents: int = 0

    @property
    def total_cents(self) -> int:
        return self.monthly_fee_cents + self.course_registration_fee_cents + self.student_registration_fee_cents
