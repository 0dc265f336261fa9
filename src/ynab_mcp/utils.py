"""Rendering and period helpers for YNAB MCP tools."""

import calendar
from datetime import date, timedelta
from typing import Any

from .models import Budget, DateRange
from .money import Money


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def shift_month(day: date, months: int) -> date:
    """First day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def get_period_dates(period: str, today: date | None = None) -> DateRange:
    """Convert a period name to a date range.

    Args:
        period: One of "this_month", "last_month", "last_30_days", or "YYYY-MM".
        today: Reference date, defaults to today.

    Returns:
        Bounded DateRange.

    Raises:
        ValueError: If the period is not recognized.
    """
    today = today or date.today()

    if period == "this_month":
        start, end = month_bounds(today.year, today.month)
    elif period == "last_month":
        previous = shift_month(today, -1)
        start, end = month_bounds(previous.year, previous.month)
    elif period == "last_30_days":
        start, end = today - timedelta(days=30), today
    else:
        try:
            year_text, month_text = period.split("-")
            if len(year_text) != 4 or len(month_text) != 2:
                raise ValueError(period)
            start, end = month_bounds(int(year_text), int(month_text))
        except (ValueError, AttributeError) as e:
            raise ValueError(
                f"Unknown period {period!r}: expected 'this_month', 'last_month', "
                "'last_30_days' or 'YYYY-MM'"
            ) from e

    return DateRange(start, end)


def format_money(amount: Money, budget: Budget) -> str:
    return amount.format(budget.currency.decimal_digits)


def format_date(day: date | None) -> str | None:
    return day.isoformat() if day is not None else None


def format_date_range(date_range: DateRange | None) -> dict[str, Any]:
    if date_range is None:
        return {"start": None, "end": None}
    return {"start": format_date(date_range.start), "end": format_date(date_range.end)}
