"""
Natural-Language Date Range Resolution

DESIGN DECISION: The resolver NEVER reads the clock.
The caller passes reference_now, so the same text always maps to the
same bounds for the same day. This makes every phrase testable.

Phrases are tested top-to-bottom and the first match wins. A message
containing two phrases ("today vs last week") resolves to the first
rule in the table, not to a combination.
"""

import calendar
import re
from datetime import date, timedelta
from typing import Callable, Optional

from clearspend.models.receipt import DateRange


MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

_LAST_N_DAYS = re.compile(r"\blast\s+(\d+)\s+days?\b")
_NAMED_MONTH = re.compile(
    r"\b(" + "|".join(MONTH_NAMES) + r")\b(?:\s+(\d{4})\b)?"
)


def _phrase(*phrases: str) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(re.escape(p) for p in phrases) + r")\b")


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _week_start(today: date) -> date:
    """Sunday on or before today."""
    # weekday(): Monday=0 .. Sunday=6
    return today - timedelta(days=(today.weekday() + 1) % 7)


# =============================================================================
# FIXED PHRASES
# =============================================================================

def _today(now: date) -> DateRange:
    return DateRange(start=now, end=now, description="today")


def _yesterday(now: date) -> DateRange:
    day = now - timedelta(days=1)
    return DateRange(start=day, end=day, description="yesterday")


def _this_week(now: date) -> DateRange:
    return DateRange(start=_week_start(now), end=now, description="this week")


def _last_week(now: date) -> DateRange:
    end = _week_start(now) - timedelta(days=1)
    return DateRange(start=end - timedelta(days=6), end=end, description="last week")


def _this_month(now: date) -> DateRange:
    # Ends today: receipts from later this month cannot exist yet
    return DateRange(start=now.replace(day=1), end=now, description="this month")


def _last_month(now: date) -> DateRange:
    end = now.replace(day=1) - timedelta(days=1)
    return DateRange(start=end.replace(day=1), end=end, description="last month")


def _this_year(now: date) -> DateRange:
    return DateRange(start=date(now.year, 1, 1), end=now, description="this year")


def _last_year(now: date) -> DateRange:
    year = now.year - 1
    return DateRange(
        start=date(year, 1, 1),
        end=date(year, 12, 31),
        description="last year",
    )


def _past_week(now: date) -> DateRange:
    return DateRange(start=now - timedelta(days=7), end=now, description="past week")


# Order matters: first match wins
FIXED_PHRASES: list[tuple[re.Pattern, Callable[[date], DateRange]]] = [
    (_phrase("today"), _today),
    (_phrase("yesterday"), _yesterday),
    (_phrase("this week"), _this_week),
    (_phrase("last week"), _last_week),
    (_phrase("this month", "current month"), _this_month),
    (_phrase("last month"), _last_month),
    (_phrase("this year"), _this_year),
    (_phrase("last year"), _last_year),
]


class DateRangeResolver:
    """
    Maps temporal phrases to inclusive calendar bounds.

    Returns None when nothing matches. Callers treat None as
    "no temporal constraint", never as an error.
    """

    def resolve(self, text: str, reference_now: date) -> Optional[DateRange]:
        """
        Resolve the first temporal phrase in text.

        Args:
            text: Free-text message (case is ignored)
            reference_now: The day "today" refers to

        Returns:
            DateRange with inclusive start/end, or None
        """
        if not text:
            return None
        lowered = text.lower()

        for pattern, build in FIXED_PHRASES:
            if pattern.search(lowered):
                return build(reference_now)

        days_match = _LAST_N_DAYS.search(lowered)
        if days_match:
            days = int(days_match.group(1))
            # Spans reaching past year 1 are clamped to the earliest date
            days_available = (reference_now - date.min).days
            start = date.min if days > days_available else reference_now - timedelta(days=days)
            return DateRange(
                start=start,
                end=reference_now,
                description=f"last {days} days",
            )

        if _phrase("past week").search(lowered):
            return _past_week(reference_now)

        return self._resolve_named_month(lowered, reference_now)

    def _resolve_named_month(self, lowered: str, reference_now: date) -> Optional[DateRange]:
        """'march', 'march 2024': the full calendar month."""
        match = _NAMED_MONTH.search(lowered)
        if not match:
            return None

        month_name = match.group(1)
        month = MONTH_NAMES.index(month_name) + 1
        year = int(match.group(2)) if match.group(2) else reference_now.year
        if year < 1:
            year = reference_now.year
        return DateRange(
            start=date(year, month, 1),
            end=_month_end(year, month),
            description=f"{month_name.capitalize()} {year}",
        )
