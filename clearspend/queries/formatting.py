"""Currency and date formatting shared by every reply template."""

from datetime import date
from typing import Iterable, Optional


def format_currency(amount: float) -> str:
    """1234.5 -> '$1,234.50'"""
    return f"${amount:,.2f}"


def format_date(value: Optional[date]) -> str:
    """date(2024, 3, 5) -> '3/5/2024'"""
    if value is None:
        return "unknown date"
    return f"{value.month}/{value.day}/{value.year}"


def plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def describe_span(dates: Iterable[Optional[date]]) -> Optional[str]:
    """Earliest to latest of the given dates, or None when there are none."""
    known = [d for d in dates if d is not None]
    if not known:
        return None
    earliest, latest = min(known), max(known)
    if earliest == latest:
        return format_date(earliest)
    return f"{format_date(earliest)} to {format_date(latest)}"
