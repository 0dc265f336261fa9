"""Validation of untyped tool payloads into typed argument records.

Each tool has one frozen argument dataclass; ``parse_arguments`` is the only
way to build them from a request payload and rejects anything malformed
before the engine runs.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Union

from .analytics import Granularity
from .errors import InvalidArguments, UnknownOperation
from .models import ClearedStatus, DateRange
from .money import Money
from .query import SortOrder, TransactionCriteria
from .utils import get_period_dates


MAX_SEARCH_LIMIT = 500
MAX_TREND_MONTHS = 120


@dataclass(frozen=True)
class CategorySpendingArgs:
    budget_id: str | None
    category_id: str | None
    category_name: str | None
    date_range: DateRange | None


@dataclass(frozen=True)
class BudgetOverviewArgs:
    budget_id: str | None
    date_range: DateRange | None


@dataclass(frozen=True)
class SearchTransactionsArgs:
    budget_id: str | None
    criteria: TransactionCriteria
    limit: int = 50
    sort: SortOrder = SortOrder.DATE


@dataclass(frozen=True)
class SpendingTrendArgs:
    budget_id: str | None
    category_id: str | None
    granularity: Granularity
    date_range: DateRange | None
    months: int = 6


@dataclass(frozen=True)
class HealthCheckArgs:
    budget_id: str | None
    date_range: DateRange | None


ToolArguments = Union[
    CategorySpendingArgs,
    BudgetOverviewArgs,
    SearchTransactionsArgs,
    SpendingTrendArgs,
    HealthCheckArgs,
]


# ============================================================================
# Field readers
# ============================================================================

DATE_FIELDS = ("start_date", "end_date", "period")


def _check_keys(payload: Mapping[str, Any], allowed: tuple[str, ...]) -> None:
    for key in payload:
        if key not in allowed:
            raise InvalidArguments(key, "unexpected argument")


def _optional_str(payload: Mapping[str, Any], field: str) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidArguments(field, f"expected a string, got {type(value).__name__}")
    value = value.strip()
    if not value:
        raise InvalidArguments(field, "must not be empty")
    return value


def _optional_date(payload: Mapping[str, Any], field: str) -> date | None:
    value = _optional_str(payload, field)
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidArguments(field, f"expected an ISO date (YYYY-MM-DD), got {value!r}") from None


def _optional_money(payload: Mapping[str, Any], field: str) -> Money | None:
    value = payload.get(field)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise InvalidArguments(field, "expected a decimal amount")
    try:
        return Money.parse(value)
    except (ValueError, ArithmeticError) as e:
        raise InvalidArguments(field, str(e)) from None


def _optional_id_set(payload: Mapping[str, Any], field: str) -> frozenset[str] | None:
    value = payload.get(field)
    if value is None:
        return None
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise InvalidArguments(field, "expected a list of strings")
    if not value:
        raise InvalidArguments(field, "must not be empty")
    ids = set()
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise InvalidArguments(field, "expected a list of non-empty strings")
        ids.add(item.strip())
    return frozenset(ids)


def _optional_int(
    payload: Mapping[str, Any],
    field: str,
    default: int,
    minimum: int,
    maximum: int,
) -> int:
    value = payload.get(field)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArguments(field, "expected an integer")
    if not minimum <= value <= maximum:
        raise InvalidArguments(field, f"must be between {minimum} and {maximum}")
    return value


def _optional_bool(payload: Mapping[str, Any], field: str, default: bool = False) -> bool:
    value = payload.get(field)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise InvalidArguments(field, "expected a boolean")
    return value


def _enum_value(payload: Mapping[str, Any], field: str, enum_type: type, default: Any = None) -> Any:
    value = _optional_str(payload, field)
    if value is None:
        return default
    try:
        return enum_type(value.lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        raise InvalidArguments(field, f"expected one of: {choices}") from None


def _date_range(payload: Mapping[str, Any], today: date | None) -> DateRange | None:
    """Read ``start_date``/``end_date`` or a named ``period``.

    An inverted range raises InvalidDateRange rather than InvalidArguments.
    """
    period = _optional_str(payload, "period")
    start = _optional_date(payload, "start_date")
    end = _optional_date(payload, "end_date")

    if period is not None:
        if start is not None or end is not None:
            raise InvalidArguments("period", "cannot be combined with start_date or end_date")
        try:
            return get_period_dates(period, today)
        except ValueError as e:
            raise InvalidArguments("period", str(e)) from None

    if start is None and end is None:
        return None
    return DateRange(start, end)


# ============================================================================
# Per-tool parsers
# ============================================================================

def _category_spending(payload: Mapping[str, Any], today: date | None) -> CategorySpendingArgs:
    _check_keys(payload, ("budget_id", "category_id", "category_name") + DATE_FIELDS)
    category_id = _optional_str(payload, "category_id")
    category_name = _optional_str(payload, "category_name")
    if category_id is None and category_name is None:
        raise InvalidArguments("category_id", "category_id or category_name is required")
    return CategorySpendingArgs(
        budget_id=_optional_str(payload, "budget_id"),
        category_id=category_id,
        category_name=category_name,
        date_range=_date_range(payload, today),
    )


def _budget_overview(payload: Mapping[str, Any], today: date | None) -> BudgetOverviewArgs:
    _check_keys(payload, ("budget_id",) + DATE_FIELDS)
    return BudgetOverviewArgs(
        budget_id=_optional_str(payload, "budget_id"),
        date_range=_date_range(payload, today),
    )


def _search_transactions(payload: Mapping[str, Any], today: date | None) -> SearchTransactionsArgs:
    _check_keys(
        payload,
        (
            "budget_id", "category_id", "account_id", "payee_id", "payee_text",
            "amount_min", "amount_max", "text_search", "cleared",
            "exclude_transfers", "limit", "category_ids", "sort",
        ) + DATE_FIELDS,
    )
    criteria = TransactionCriteria(
        category_id=_optional_str(payload, "category_id"),
        category_ids=_optional_id_set(payload, "category_ids"),
        account_id=_optional_str(payload, "account_id"),
        payee_id=_optional_str(payload, "payee_id"),
        payee_text=_optional_str(payload, "payee_text"),
        date_range=_date_range(payload, today),
        amount_min=_optional_money(payload, "amount_min"),
        amount_max=_optional_money(payload, "amount_max"),
        text_search=_optional_str(payload, "text_search"),
        cleared=_enum_value(payload, "cleared", ClearedStatus),
        exclude_transfers=_optional_bool(payload, "exclude_transfers"),
    )
    return SearchTransactionsArgs(
        budget_id=_optional_str(payload, "budget_id"),
        criteria=criteria,
        limit=_optional_int(payload, "limit", 50, 1, MAX_SEARCH_LIMIT),
        sort=_enum_value(payload, "sort", SortOrder, SortOrder.DATE),
    )


def _spending_trends(payload: Mapping[str, Any], today: date | None) -> SpendingTrendArgs:
    _check_keys(payload, ("budget_id", "category_id", "granularity", "months") + DATE_FIELDS)
    date_range = _date_range(payload, today)
    if date_range is not None and payload.get("months") is not None:
        raise InvalidArguments("months", "cannot be combined with a date range")
    return SpendingTrendArgs(
        budget_id=_optional_str(payload, "budget_id"),
        category_id=_optional_str(payload, "category_id"),
        granularity=_enum_value(payload, "granularity", Granularity, Granularity.MONTH),
        date_range=date_range,
        months=_optional_int(payload, "months", 6, 1, MAX_TREND_MONTHS),
    )


def _health_check(payload: Mapping[str, Any], today: date | None) -> HealthCheckArgs:
    _check_keys(payload, ("budget_id",) + DATE_FIELDS)
    return HealthCheckArgs(
        budget_id=_optional_str(payload, "budget_id"),
        date_range=_date_range(payload, today),
    )


PARSERS: dict[str, Callable[[Mapping[str, Any], date | None], ToolArguments]] = {
    "analyze_category_spending": _category_spending,
    "get_budget_overview": _budget_overview,
    "search_transactions": _search_transactions,
    "analyze_spending_trends": _spending_trends,
    "budget_health_check": _health_check,
}


def parse_arguments(
    name: str,
    payload: Any,
    today: date | None = None,
) -> ToolArguments:
    """Validate a tool payload.

    Args:
        name: Tool name.
        payload: Untyped arguments from the request; None means no arguments.
        today: Reference date for relative periods.

    Returns:
        The tool's argument record.

    Raises:
        UnknownOperation: If the tool name is not supported.
        InvalidArguments: If a field is missing, malformed or unexpected.
        InvalidDateRange: If start_date is after end_date.
    """
    parser = PARSERS.get(name)
    if parser is None:
        raise UnknownOperation(name)
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise InvalidArguments("arguments", "expected an object")
    return parser(payload, today)
