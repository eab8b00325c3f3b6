"""
Date Range Generation
=====================
Ordered period dates for one configuration.
"""

from datetime import date, timedelta
from typing import List

from dateutil.relativedelta import relativedelta

from .config import ConfigurationError, Frequency, TimeSettings


PERIOD_STEPS = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.YEARLY: relativedelta(years=1),
}


def sunday_based_weekday(day: date) -> int:
    """0=Sunday ... 6=Saturday"""
    return (day.weekday() + 1) % 7


def align_start_date(time: TimeSettings) -> date:
    """
    Move the configured start date onto the requested weekday / day-of-month.

    Weekly: forward 0-6 days to the next ``weekly_day``.
    Monthly: ``monthly_day`` of the start month (clamped to the month length);
    if that is before the start date, the same day of the following month.
    Other frequencies are not aligned.
    """
    start = time.start_date
    if time.frequency == Frequency.WEEKLY and time.weekly_day is not None:
        diff = (time.weekly_day - sunday_based_weekday(start)) % 7
        return start + timedelta(days=diff)
    if time.frequency == Frequency.MONTHLY and time.monthly_day is not None:
        target = start + relativedelta(day=time.monthly_day)
        if target < start:
            target = start + relativedelta(months=1, day=time.monthly_day)
        return target
    return start


def generate_date_range(time: TimeSettings) -> List[date]:
    """
    Return ``period_count`` strictly increasing dates from the aligned start.

    Each period is offset from the aligned start rather than from the previous
    period, so month/quarter/year steps keep the original day-of-month
    wherever the target month has it (Jan 31 -> Feb 29 -> Mar 31).
    """
    if time.period_count < 1:
        raise ConfigurationError(f"period_count must be >= 1, got {time.period_count}")

    start = align_start_date(time)
    if time.frequency == Frequency.MONTHLY and time.monthly_day is not None:
        # Re-pin the day each period so a short month doesn't drag later ones
        return [start + relativedelta(months=i, day=time.monthly_day)
                for i in range(time.period_count)]

    step = PERIOD_STEPS[time.frequency]
    return [start + step * i for i in range(time.period_count)]
