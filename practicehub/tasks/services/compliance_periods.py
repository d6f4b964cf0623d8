"""Compliance period arithmetic for recurring tasks.

All functions work on `datetime.date` and are pure.

    >>> next_period('quarterly', 'current', date(2025, 11, 3))
    CompliancePeriod(start=datetime.date(2026, 1, 1), end=datetime.date(2026, 3, 31))
"""

import calendar
import re
from datetime import date, timedelta
from typing import NamedTuple, Optional

DUE_DAYS_BEFORE_END = 5
FISCAL_YEAR_START_MONTH = 7


class CompliancePeriod(NamedTuple):
    start: date
    end: date


def month_end(year, month):
    return date(year, month, calendar.monthrange(year, month)[1])


def add_months(d, months):
    """Shift by whole months, clamping the day to the target month's length."""
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(d.day, calendar.monthrange(year, month)[1]))


def next_period(frequency, duration, reference) -> Optional[CompliancePeriod]:
    """The compliance period that follows `reference` for a frequency, or None if unknown."""
    if not frequency:
        return None
    frequency = frequency.strip().lower()
    duration = (duration or '').strip().lower()
    year, month = reference.year, reference.month
    tomorrow = reference + timedelta(days=1)

    if frequency == 'daily':
        return CompliancePeriod(tomorrow, tomorrow)

    if frequency == 'weekly':
        return CompliancePeriod(tomorrow, tomorrow + timedelta(days=6))

    if frequency == 'biweekly':
        return CompliancePeriod(tomorrow, tomorrow + timedelta(days=13))

    if frequency == 'monthly':
        if duration == 'previous':
            start = add_months(date(year, month, 1), -1)
        else:
            start = add_months(date(year, month, 1), 1)
        return CompliancePeriod(start, month_end(start.year, start.month))

    if frequency == 'quarterly':
        quarter = (month - 1) // 3
        if quarter == 3:
            start = date(year + 1, 1, 1)
        else:
            start = date(year, (quarter + 1) * 3 + 1, 1)
        end = add_months(start, 2)
        return CompliancePeriod(start, month_end(end.year, end.month))

    if frequency in ('semi-annual', 'biannual'):
        if month <= 6:
            return CompliancePeriod(date(year, 7, 1), date(year, 12, 31))
        return CompliancePeriod(date(year + 1, 1, 1), date(year + 1, 6, 30))

    if frequency in ('yearly', 'annual'):
        if _is_fiscal(duration):
            current_fy = year if month >= FISCAL_YEAR_START_MONTH else year - 1
            next_fy = current_fy + 1
            return CompliancePeriod(
                date(next_fy, FISCAL_YEAR_START_MONTH, 1),
                date(next_fy + 1, FISCAL_YEAR_START_MONTH - 1, 30))
        return CompliancePeriod(date(year + 1, 1, 1), date(year + 1, 12, 31))

    return None


def due_date_for(period_end):
    return period_end - timedelta(days=DUE_DAYS_BEFORE_END)


def _year_span(frequency):
    match = re.search(r'([2-5])', frequency)
    return int(match.group(1)) if match else 1


def _is_half_year(frequency):
    return 'semi' in frequency or 'biannual' in frequency or 'bi-annual' in frequency


def _is_fiscal(duration):
    return (duration or '').strip().lower() in ('fy', 'fiscal year')


def _fiscal_start_year(start):
    return start.year if start.month >= FISCAL_YEAR_START_MONTH else start.year - 1


def period_end_for(start, frequency, duration=None):
    """End date of the period that starts at `start`, used when approving a generated task.

    Gives the same end as next_period() for every frequency it produces, so an
    approved instance keeps the bounds it was generated with.
    """
    frequency = (frequency or '').strip().lower()
    if frequency == 'daily':
        return start
    if 'week' in frequency:
        return start + timedelta(days=13 if 'bi' in frequency else 6)
    if 'quarter' in frequency:
        quarter_last_month = ((start.month - 1) // 3) * 3 + 3
        return month_end(start.year, quarter_last_month)
    if _is_half_year(frequency):
        end = add_months(start, 5)
        return month_end(end.year, end.month)
    if 'annual' in frequency or 'year' in frequency:
        span = _year_span(frequency)
        if _is_fiscal(duration):
            return date(_fiscal_start_year(start) + span, FISCAL_YEAR_START_MONTH - 1, 30)
        # a 2-year period starting in 2025 ends 2026-12-31
        return date(start.year + span - 1, 12, 31)
    if 'one time' in frequency or 'once' in frequency:
        return start
    return month_end(start.year, start.month)


def period_label(start, frequency, duration=None):
    """Human label for a period: 'Q2 2025', 'H1 2025', 'FY 2025-26', '2025-2027', 'May 2025'."""
    frequency = (frequency or '').strip().lower()
    if frequency == 'daily' or 'week' in frequency:
        return start.isoformat()
    if 'quarter' in frequency:
        return f'Q{(start.month - 1) // 3 + 1} {start.year}'
    if _is_half_year(frequency):
        return f"H{1 if start.month <= 6 else 2} {start.year}"
    if 'annual' in frequency or 'year' in frequency:
        span = _year_span(frequency)
        if _is_fiscal(duration):
            fy = _fiscal_start_year(start)
            return f'FY {fy}-{str(fy + span)[-2:]}'
        if span > 1:
            return f'{start.year}-{start.year + span - 1}'
        return str(start.year)
    label = start.strftime('%B %Y')
    if 'one time' in frequency or 'once' in frequency:
        label += ' (One-time)'
    return label
