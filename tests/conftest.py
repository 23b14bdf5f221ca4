"""Pytest fixtures for testing"""

import pytest
from datetime import date
from fastapi.testclient import TestClient
from academy_billing.api.main import create_app
from academy_billing.domain.installments import create_installment_plan
from academy_billing.domain.models import (
    CommittedSubscriptionPlan,
    InstallmentPlan,
    MonthlySubscriptionPlan,
    OneTimePlan,
    ReminderPolicy,
)


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client"""
    return TestClient(create_app())


@pytest.fixture
def ladder_policy() -> ReminderPolicy:
    """Short ladder: 3 days pre-due, 2 days grace, overdue every 5 days, 2 attempts"""
    return ReminderPolicy(
        pre_due_days=3,
        grace_days=2,
        overdue_interval_days=5,
        max_overdue_attempts=2,
        contract_end_reminder_days=10,
    )


@pytest.fixture
def installment_plan() -> InstallmentPlan:
    """1000 split into 3 installments, 30 days apart from Jan 1 2025"""
    return create_installment_plan("plan_inst", 1000, 3, date(2025, 1, 1), 30)


@pytest.fixture
def one_time_plan() -> OneTimePlan:
    return OneTimePlan(plan_id="plan_once", start_date=date(2025, 3, 10), amount_total_cents=50000)


@pytest.fixture
def monthly_plan() -> MonthlySubscriptionPlan:
    """Billed on the 31st, starting Jan 31 2025"""
    return MonthlySubscriptionPlan(plan_id="plan_monthly", start_date=date(2025, 1, 31), amount_total_cents=20000)


@pytest.fixture
def committed_plan() -> CommittedSubscriptionPlan:
    """Six-month contract from Jan 1 2025 (ends Jul 1 2025)"""
    return CommittedSubscriptionPlan(
        plan_id="plan_committed",
        start_date=date(2025, 1, 1),
        amount_total_cents=15000,
        committed_months=6,
    )
