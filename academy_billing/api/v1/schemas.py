"""Pydantic schemas for API request/response validation"""

from dataclasses import replace
from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from academy_billing.config import default_policy, settings
from academy_billing.domain.models import (
    CommittedSubscriptionPlan,
    Installment,
    InstallmentPlan,
    MonthlySubscriptionPlan,
    OneTimePlan,
    PaymentRecord,
    PeriodFee,
    ReminderEvent,
    ReminderPolicy,
)


class InstallmentSchema(BaseModel):
    """Single installment in a one-time-with-installments plan"""

    sequence_number: int = Field(..., ge=1)
    due_date: date
    amount_cents: int
    paid_at: Optional[datetime] = None
    reminders_sent: int = Field(0, ge=0)

    def to_domain(self) -> Installment:
        return Installment(
            sequence_number=self.sequence_number,
            due_date=self.due_date,
            amount_cents=self.amount_cents,
            paid_at=self.paid_at,
            reminders_sent=self.reminders_sent,
        )

    @classmethod
    def from_domain(cls, installment: Installment) -> "InstallmentSchema":
        return cls(
            sequence_number=installment.sequence_number,
            due_date=installment.due_date,
            amount_cents=installment.amount_cents,
            paid_at=installment.paid_at,
            reminders_sent=installment.reminders_sent,
        )


class PlanBase(BaseModel):
    """Fields shared by every plan category"""

    plan_id: str = Field(..., min_length=1, description="Payment plan identifier")
    start_date: date
    amount_total_cents: int = Field(..., gt=0)
    timezone: str = Field(default_factory=lambda: settings.default_timezone, description="IANA zone")
    reminders_sent: int = Field(0, ge=0)


class OneTimePlanSchema(PlanBase):
    category: Literal["ONE_TIME"]
    paid_at: Optional[datetime] = None

    def to_domain(self) -> OneTimePlan:
        return OneTimePlan(
            plan_id=self.plan_id,
            start_date=self.start_date,
            amount_total_cents=self.amount_total_cents,
            timezone=self.timezone,
            paid_at=self.paid_at,
            reminders_sent=self.reminders_sent,
        )


class InstallmentPlanSchema(PlanBase):
    category: Literal["ONE_TIME_WITH_INSTALLMENTS"]
    installments: List[InstallmentSchema] = Field(default_factory=list)

    def to_domain(self) -> InstallmentPlan:
        return InstallmentPlan(
            plan_id=self.plan_id,
            start_date=self.start_date,
            amount_total_cents=self.amount_total_cents,
            installments=[inst.to_domain() for inst in self.installments],
            timezone=self.timezone,
            reminders_sent=self.reminders_sent,
        )


class MonthlySubscriptionPlanSchema(PlanBase):
    category: Literal["MONTHLY_SUBSCRIPTION"]
    billing_day: Optional[int] = Field(None, description="Day of month billed (defaults to start day)")
    last_paid_period: Optional[date] = Field(None, description="Due date of the latest paid period")
    course_registration_fee_cents: int = Field(0, ge=0, description="Charged with the first period only")
    student_registration_fee_cents: int = Field(0, ge=0, description="Charged with the first period only")

    def to_domain(self) -> MonthlySubscriptionPlan:
        return MonthlySubscriptionPlan(
            plan_id=self.plan_id,
            start_date=self.start_date,
            amount_total_cents=self.amount_total_cents,
            billing_day=self.billing_day,
            last_paid_period=self.last_paid_period,
            timezone=self.timezone,
            reminders_sent=self.reminders_sent,
            course_registration_fee_cents=self.course_registration_fee_cents,
            student_registration_fee_cents=self.student_registration_fee_cents,
        )


class CommittedSubscriptionPlanSchema(PlanBase):
    category: Literal["MONTHLY_SUBSCRIPTION_COMMITTED"]
    billing_day: Optional[int] = None
    last_paid_period: Optional[date] = None
    course_registration_fee_cents: int = Field(0, ge=0)
    student_registration_fee_cents: int = Field(0, ge=0)
    committed_months: int = Field(..., description="Contract length in months")
    discounted_amount_cents: Optional[int] = Field(None, description="Period fee while inside the commitment")

    def to_domain(self) -> CommittedSubscriptionPlan:
        return CommittedSubscriptionPlan(
            plan_id=self.plan_id,
            start_date=self.start_date,
            amount_total_cents=self.amount_total_cents,
            billing_day=self.billing_day,
            last_paid_period=self.last_paid_period,
            timezone=self.timezone,
            reminders_sent=self.reminders_sent,
            course_registration_fee_cents=self.course_registration_fee_cents,
            student_registration_fee_cents=self.student_registration_fee_cents,
            committed_months=self.committed_months,
            discounted_amount_cents=self.discounted_amount_cents,
        )


PlanSchema = Annotated[
    Union[OneTimePlanSchema, InstallmentPlanSchema, MonthlySubscriptionPlanSchema, CommittedSubscriptionPlanSchema],
    Field(discriminator="category"),
]


class ReminderPolicySchema(BaseModel):
    """Per-request overrides of the configured reminder policy"""

    pre_due_days: Optional[int] = None
    grace_days: Optional[int] = None
    overdue_interval_days: Optional[int] = None
    max_overdue_attempts: Optional[int] = None
    contract_end_reminder_days: Optional[int] = None
    pre_due_enabled: Optional[bool] = None
    due_date_enabled: Optional[bool] = None
    grace_enabled: Optional[bool] = None
    overdue_enabled: Optional[bool] = None
    grace_payments_on_time: Optional[bool] = None

    def to_domain(self) -> ReminderPolicy:
        return replace(default_policy(), **self.model_dump(exclude_none=True))


class ReminderEventSchema(BaseModel):
    """Reminder to be delivered by the notification dispatcher"""

    kind: str
    obligation_ref: str
    due_date: date
    fired_at: datetime
    attempt_number: int

    @classmethod
    def from_domain(cls, event: ReminderEvent) -> "ReminderEventSchema":
        return cls(
            kind=event.kind.value,
            obligation_ref=event.obligation_ref,
            due_date=event.due_date,
            fired_at=event.fired_at,
            attempt_number=event.attempt_number,
        )


class InstallmentsRequest(BaseModel):
    """Request body for POST /v1/installments"""

    total_cents: int
    count: int = 3
    start_date: date
    cadence_days: int = 30


class InstallmentDetailSchema(InstallmentSchema):
    """Generated installment with its stage rules"""

    stage: str
    reminder_date: date
    invoice_on_payment: bool
    final_invoice: bool


class InstallmentsResponse(BaseModel):
    """Response for POST /v1/installments"""

    total_cents: int
    installments: List[InstallmentDetailSchema]


class DueDateRequest(BaseModel):
    """Request body for POST /v1/plans/due-date"""

    plan: PlanSchema
    now: Optional[datetime] = None


class PeriodFeeSchema(BaseModel):
    """Amount owed for the next subscription period"""

    monthly_fee_cents: int
    discount_applied: bool
    course_registration_fee_cents: int
    student_registration_fee_cents: int
    total_cents: int

    @classmethod
    def from_domain(cls, fee: PeriodFee) -> "PeriodFeeSchema":
        return cls(
            monthly_fee_cents=fee.monthly_fee_cents,
            discount_applied=fee.discount_applied,
            course_registration_fee_cents=fee.course_registration_fee_cents,
            student_registration_fee_cents=fee.student_registration_fee_cents,
            total_cents=fee.total_cents,
        )


class DueDateResponse(BaseModel):
    """Response for POST /v1/plans/due-date"""

    plan_id: str
    category: str
    next_due_date: Optional[date] = None
    days_until_due: Optional[int] = None
    contract_end_date: Optional[date] = None
    total_paid_cents: Optional[int] = None
    remaining_balance_cents: Optional[int] = None
    period_fee: Optional[PeriodFeeSchema] = None


class RemindersRequest(BaseModel):
    """Request body for POST /v1/plans/reminders"""

    plan: PlanSchema
    now: Optional[datetime] = None
    policy: Optional[ReminderPolicySchema] = None


class ObligationStateSchema(BaseModel):
    """Ladder position of a single obligation"""

    obligation_ref: str
    due_date: date
    state: str
    attempt_number: int
    days_overdue: int
    next_reminder_date: Optional[date] = None


class PaymentRecordSchema(BaseModel):
    """Completed payment with its ON_TIME / GRACE / LATE timing"""

    obligation_ref: str
    due_date: date
    paid_at: datetime
    timing: str

    @classmethod
    def from_domain(cls, record: PaymentRecord) -> "PaymentRecordSchema":
        return cls(
            obligation_ref=record.obligation_ref,
            due_date=record.due_date,
            paid_at=record.paid_at,
            timing=record.timing.value,
        )


class RemindersResponse(BaseModel):
    """Response for POST /v1/plans/reminders"""

    plan_id: str
    obligations: List[ObligationStateSchema]
    events: List[ReminderEventSchema]
    payments: List[PaymentRecordSchema] = Field(default_factory=list)


class ReminderRunRequest(BaseModel):
    """Request body for POST /v1/reminders/run"""

    plans: List[PlanSchema]
    now: Optional[datetime] = None
    policy: Optional[ReminderPolicySchema] = None


class PlanRunResult(BaseModel):
    """Outcome of one plan in a scheduler run"""

    plan_id: str
    status: Literal["evaluated", "skipped", "error"]
    reason: Optional[str] = None
    events: List[ReminderEventSchema] = Field(default_factory=list)


class ReminderRunResponse(BaseModel):
    """Response for POST /v1/reminders/run"""

    evaluated: int
    skipped: int
    errors: int
    events_emitted: int
    results: List[PlanRunResult]
