"""Aggregation engine: category spending, trend series and budget health."""

from bisect import bisect_right
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum

from .errors import InvalidArguments
from .models import BudgetSnapshot, Category, DateRange, Transaction
from .money import Money
from .query import TransactionCriteria, filter_transactions
from .utils import month_bounds


# Largest series a single trend request may produce
MAX_TREND_PERIODS = 5000


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class HealthStatus(str, Enum):
    OVERSPENT = "overspent"
    UNDERUSED = "underused"
    ON_TRACK = "on_track"


@dataclass(frozen=True)
class Period:
    """One bucket of a trend series, truncated to the requested range."""

    start: date
    end: date
    granularity: Granularity
    partial: bool = False

    @property
    def label(self) -> str:
        if self.partial:
            return f"{self.start.isoformat()}/{self.end.isoformat()}"
        if self.granularity is Granularity.MONTH:
            return self.start.strftime("%Y-%m")
        if self.granularity is Granularity.WEEK:
            year, week, _ = self.start.isocalendar()
            return f"{year}-W{week:02d}"
        return self.start.isoformat()


@dataclass(frozen=True)
class TrendPoint:
    period: Period
    spending: Money
    transaction_count: int


@dataclass(frozen=True)
class TrendSummary:
    average: Money
    minimum: TrendPoint
    maximum: TrendPoint
    direction: str
    pct_change_per_period: float


@dataclass(frozen=True)
class CategoryHealth:
    category: Category
    activity: Money
    status: HealthStatus

    @property
    def budgeted(self) -> Money:
        return self.category.budgeted

    @property
    def available(self) -> Money:
        return self.category.budgeted + self.activity


@dataclass(frozen=True)
class HealthReport:
    categories: tuple[CategoryHealth, ...]
    total_budgeted: Money
    total_activity: Money
    spending_ratio: Decimal | None
    score: int

    def with_status(self, status: HealthStatus) -> list[CategoryHealth]:
        return [c for c in self.categories if c.status is status]


# ============================================================================
# Spending
# ============================================================================

def outflow_total(transactions: Iterable[Transaction]) -> Money:
    """Total outflow as a non-negative amount; inflows are not netted."""
    return Money.sum(tx.amount.negate() for tx in transactions if tx.is_outflow)


def inflow_total(transactions: Iterable[Transaction]) -> Money:
    return Money.sum(tx.amount for tx in transactions if tx.amount.is_positive())


def spending_for_category(
    snapshot: BudgetSnapshot,
    category_id: str,
    date_range: DateRange | None = None,
) -> Money:
    """Total outflow for one category.

    Args:
        snapshot: Budget snapshot holding the transactions.
        category_id: Category to sum. Uncategorized transactions never match.
        date_range: Optional inclusive range.

    Returns:
        Non-negative Money; zero when nothing matches.

    Raises:
        UnknownCategory: If the category is not in the snapshot.
    """
    snapshot.category(category_id)
    criteria = TransactionCriteria(category_id=category_id, date_range=date_range)
    return outflow_total(filter_transactions(snapshot.transactions, criteria))


# ============================================================================
# Trends
# ============================================================================

def period_start(day: date, granularity: Granularity) -> date:
    if granularity is Granularity.MONTH:
        return day.replace(day=1)
    if granularity is Granularity.WEEK:
        return day - timedelta(days=day.weekday())
    return day


def period_end(start: date, granularity: Granularity) -> date:
    """Last day of the period starting at ``start``, capped at ``date.max``."""
    if granularity is Granularity.MONTH:
        return month_bounds(start.year, start.month)[1]
    if granularity is Granularity.WEEK:
        if date.max - start < timedelta(days=6):
            return date.max
        return start + timedelta(days=6)
    return start


def count_periods(start: date, end: date, granularity: Granularity) -> int:
    """Number of periods ``split_periods`` would produce, without building them."""
    if start > end:
        return 0
    if granularity is Granularity.MONTH:
        return (end.year - start.year) * 12 + end.month - start.month + 1
    if granularity is Granularity.WEEK:
        first = period_start(start, granularity)
        last = period_start(end, granularity)
        return (last - first).days // 7 + 1
    return (end - start).days + 1


def split_periods(start: date, end: date, granularity: Granularity) -> list[Period]:
    """Partition [start, end] into consecutive periods.

    Boundary periods that do not align with the calendar are truncated to
    the range and flagged partial. The ISO week cut short by ``date.max``
    is partial as well.
    """
    periods = []
    cursor = start
    while cursor <= end:
        full_start = period_start(cursor, granularity)
        full_end = period_end(full_start, granularity)
        bucket_end = min(full_end, end)
        partial = cursor != full_start or bucket_end != full_end
        if granularity is Granularity.WEEK and full_end.weekday() != 6:
            partial = True
        periods.append(
            Period(start=cursor, end=bucket_end, granularity=granularity, partial=partial)
        )
        if bucket_end == end:
            break
        cursor = bucket_end + timedelta(days=1)
    return periods


def spending_trend(
    snapshot: BudgetSnapshot,
    granularity: Granularity,
    date_range: DateRange,
    category_id: str | None = None,
) -> list[TrendPoint]:
    """Outflow per period across a date range.

    Every period in the range is emitted in chronological order, including
    periods with no activity. Without a category, transfers between
    accounts are left out.

    Raises:
        UnknownCategory: If ``category_id`` is not in the snapshot.
        InvalidArguments: If the range has no start date or spans more than
            MAX_TREND_PERIODS periods.
    """
    if category_id is not None:
        snapshot.category(category_id)
    if date_range.start is None:
        raise InvalidArguments("start_date", "trend analysis requires a start date")

    start = date_range.start
    end = date_range.end
    if end is None:
        # Open end runs through the latest available transaction
        latest = max((tx.date for tx in snapshot.transactions), default=start)
        end = max(latest, start)

    count = count_periods(start, end, granularity)
    if count > MAX_TREND_PERIODS:
        raise InvalidArguments(
            "start_date",
            f"range spans {count} {granularity.value} periods, at most {MAX_TREND_PERIODS} "
            "are allowed; use a shorter range or a coarser granularity",
        )

    periods = split_periods(start, end, granularity)
    starts = [period.start for period in periods]
    buckets: list[list[Transaction]] = [[] for _ in periods]
    criteria = TransactionCriteria(
        category_id=category_id,
        date_range=DateRange(start, end),
        exclude_transfers=category_id is None,
    )
    for tx in filter_transactions(snapshot.transactions, criteria):
        if tx.is_outflow:
            buckets[bisect_right(starts, tx.date) - 1].append(tx)

    return [
        TrendPoint(period, outflow_total(outflows), len(outflows))
        for period, outflows in zip(periods, buckets)
    ]


def trend_summary(points: Sequence[TrendPoint]) -> TrendSummary | None:
    """Summarize complete periods of a trend series.

    Partial periods are ignored. Direction comes from the least-squares
    slope relative to the mean: within 2% per period is "stable".

    Returns:
        None when there are no complete periods.
    """
    complete = [p for p in points if not p.period.partial]
    if not complete:
        return None

    average = Money.average([p.spending for p in complete])
    minimum = min(complete, key=lambda p: p.spending)
    maximum = max(complete, key=lambda p: p.spending)

    pct_change = 0.0
    n = len(complete)
    if n >= 2:
        values = [p.spending.milliunits for p in complete]
        x_mean = (n - 1) / 2
        y_mean = sum(values) / n
        numerator = sum((x - x_mean) * (y - y_mean) for x, y in enumerate(values))
        denominator = sum((x - x_mean) ** 2 for x in range(n))
        slope = numerator / denominator
        pct_change = (slope / y_mean * 100) if y_mean else 0.0

    if abs(pct_change) < 2:
        direction = "stable"
    elif pct_change > 0:
        direction = "rising"
    else:
        direction = "falling"

    return TrendSummary(
        average=average,
        minimum=minimum,
        maximum=maximum,
        direction=direction,
        pct_change_per_period=round(pct_change, 1),
    )


# ============================================================================
# Budget health
# ============================================================================

def classify_category(budgeted: Money, activity: Money) -> HealthStatus:
    """Classify one category.

    Overspent when available is negative; underused when money is budgeted
    but nothing was spent. A category with nothing budgeted and no activity
    is on track.
    """
    if (budgeted + activity).is_negative():
        return HealthStatus.OVERSPENT
    if activity.is_zero() and budgeted.is_positive():
        return HealthStatus.UNDERUSED
    return HealthStatus.ON_TRACK


def _health_categories(snapshot: BudgetSnapshot) -> list[Category]:
    result = []
    for category in snapshot.categories:
        group = snapshot.group(category.group_id)
        if category.hidden or (group is not None and (group.hidden or group.is_internal)):
            continue
        result.append(category)
    return result


def budget_health(
    snapshot: BudgetSnapshot,
    date_range: DateRange | None = None,
) -> HealthReport:
    """Classify every visible category and compute overall budget usage.

    Args:
        snapshot: Budget snapshot.
        date_range: When given, each category's activity is recomputed as the
            signed sum of its transactions in the range.

    Returns:
        HealthReport with per-category statuses, totals, the ratio of spent
        (negated activity) to budgeted, and a 0-100 score equal to the share
        of categories that are not overspent.
    """
    entries = []
    for category in _health_categories(snapshot):
        activity = category.activity
        if date_range is not None:
            criteria = TransactionCriteria(category_id=category.id, date_range=date_range)
            activity = Money.sum(tx.amount for tx in filter_transactions(snapshot.transactions, criteria))
        entries.append(
            CategoryHealth(category, activity, classify_category(category.budgeted, activity))
        )

    total_budgeted = Money.sum(e.budgeted for e in entries)
    total_activity = Money.sum(e.activity for e in entries)

    ratio = None
    if not total_budgeted.is_zero():
        ratio = (total_activity.negate().to_decimal() / total_budgeted.to_decimal()).quantize(
            Decimal("0.0001"), rounding=ROUND_HALF_EVEN
        )

    healthy = sum(1 for e in entries if e.status is not HealthStatus.OVERSPENT)
    score = round(100 * healthy / len(entries)) if entries else 100

    return HealthReport(
        categories=tuple(entries),
        total_budgeted=total_budgeted,
        total_activity=total_activity,
        spending_ratio=ratio,
        score=score,
    )
