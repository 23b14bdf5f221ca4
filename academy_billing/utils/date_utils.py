"""Date manipulation utilities"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta

from academy_billing.domain.exceptions import InvalidPlanConfiguration


def get_zone(tz_name: str) -> ZoneInfo:
    """Resolve an IANA zone name, failing as a plan misconfiguration"""
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidPlanConfiguration(f"Unknown timezone: {tz_name!r}") from e


def local_date(moment: datetime, tz_name: str) -> date:
    """Calendar day of `moment` in the given zone (naive datetimes are UTC)"""
    zone = get_zone(tz_name)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    try:
        return moment.astimezone(zone).date()
    except (OverflowError, ValueError) as e:
        raise InvalidPlanConfiguration(f"{moment.isoformat()} is out of range in {tz_name}") from e


def start_of_day(day: date, tz_name: str) -> datetime:
    """Local midnight of `day` in the given zone"""
    return datetime.combine(day, time.min, tzinfo=get_zone(tz_name))


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, pulling `day` back to the last day of short months"""
    try:
        return date(year, month, 1) + relativedelta(day=day)
    except (OverflowError, ValueError) as e:
        raise InvalidPlanConfiguration(f"No calendar day {day} in {year}-{month:02d}") from e


def add_months(from_date: date, months: int, day: int | None = None) -> date:
    """
    Move `from_date` by whole calendar months.

    The resulting day is `day` (or the original day) clamped to the target
    month's length, so Jan 31 + 1 month is Feb 28/29.

    Raises:
        InvalidPlanConfiguration: result falls outside the supported calendar
    """
    try:
        return from_date + relativedelta(months=months, day=day)
    except (OverflowError, ValueError) as e:
        raise InvalidPlanConfiguration(f"{from_date} + {months} months is out of range") from e


def add_days(from_date: date, days: int) -> date:
    try:
        return from_date + timedelta(days=days)
    except OverflowError as e:
        raise InvalidPlanConfiguration(f"{from_date} + {days} days is out of range") from e
