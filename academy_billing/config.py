"""Configuration management using Pydantic Settings"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from academy_billing.domain.models import ReminderPolicy


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "academy-billing"
    log_level: str = "INFO"
    default_timezone: str = "UTC"

    # Shared secret expected from the scheduler on /v1/reminders/run (disabled when unset)
    cron_secret: Optional[str] = None

    # Default reminder ladder
    reminder_pre_due_days: int = 3
    reminder_grace_days: int = 2
    reminder_overdue_interval_days: int = 7
    reminder_max_overdue_attempts: int = 5
    reminder_contract_end_days: int = 10
    reminder_due_date_enabled: bool = False
    grace_payments_on_time: bool = True


settings = Settings()


def default_policy(config: Settings = settings) -> ReminderPolicy:
    """Reminder policy used when a request does not override it"""
    return ReminderPolicy(
        pre_due_days=config.reminder_pre_due_days,
        grace_days=config.reminder_grace_days,
        overdue_interval_days=config.reminder_overdue_interval_days,
        max_overdue_attempts=config.reminder_max_overdue_attempts,
        contract_end_reminder_days=config.reminder_contract_end_days,
        due_date_enabled=config.reminder_due_date_enabled,
        grace_payments_on_time=config.grace_payments_on_time,
    )
