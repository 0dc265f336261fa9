"""Analysis tools exposed over MCP.

Each tool takes a budget snapshot plus validated arguments and returns a
JSON-ready dict: money as decimal strings at the budget's precision, dates
as ISO-8601 strings.
"""

from datetime import date
from typing import Any

from .analytics import (
    CategoryHealth,
    HealthStatus,
    TrendPoint,
    budget_health,
    inflow_total,
    outflow_total,
    spending_for_category,
    spending_trend,
    trend_summary,
)
from .arguments import (
    BudgetOverviewArgs,
    CategorySpendingArgs,
    HealthCheckArgs,
    SearchTransactionsArgs,
    SpendingTrendArgs,
)
from .models import BudgetSnapshot, Category, DateRange, Transaction
from .money import Money
from .query import TransactionCriteria, filter_transactions, sort_transactions
from .utils import format_date, format_date_range, format_money, shift_month


def _category_info(snapshot: BudgetSnapshot, category: Category) -> dict[str, Any]:
    group = snapshot.group(category.group_id)
    return {
        "id": category.id,
        "name": category.name,
        "group": group.name if group else None,
    }


def render_transaction(
    snapshot: BudgetSnapshot,
    tx: Transaction,
    names: dict[str, dict[str, str]],
) -> dict[str, Any]:
    """Render a transaction with account, category and payee names resolved."""
    return {
        "id": tx.id,
        "date": tx.date.isoformat(),
        "amount": format_money(tx.amount, snapshot.budget),
        "account": names["accounts"].get(tx.account_id),
        "account_id": tx.account_id,
        "category": names["categories"].get(tx.category_id) if tx.category_id else None,
        "category_id": tx.category_id,
        "payee": names["payees"].get(tx.payee_id) if tx.payee_id else None,
        "payee_id": tx.payee_id,
        "memo": tx.memo or None,
        "cleared": tx.cleared.value,
        "transfer": tx.is_transfer,
    }


def _names(snapshot: BudgetSnapshot) -> dict[str, dict[str, str]]:
    return {
        "accounts": {a.id: a.name for a in snapshot.accounts},
        "categories": {c.id: c.name for c in snapshot.categories},
        "payees": snapshot.payee_names(),
    }


# ============================================================================
# analyze_category_spending
# ============================================================================

def analyze_category_spending(
    snapshot: BudgetSnapshot,
    args: CategorySpendingArgs,
    today: date | None = None,
) -> dict[str, Any]:
    """Analyze spending in one category.

    Answers: "How much did I spend on groceries?", "What was my biggest
    dining expense last month?"

    Args:
        snapshot: Budget snapshot.
        args: Category (by id or name) and optional date range.
        today: Unused; accepted for a uniform tool signature.

    Returns:
        Dictionary with total outflow, inflows, counts, average and largest
        outflow, plus the category's budgeted/activity/available figures for
        the active month.

    Raises:
        UnknownCategory: If the category id or name is not in the budget.
    """
    if args.category_id is not None:
        category = snapshot.category(args.category_id)
    else:
        category = snapshot.find_category_by_name(args.category_name)

    budget = snapshot.budget
    criteria = TransactionCriteria(category_id=category.id, date_range=args.date_range)
    transactions = filter_transactions(snapshot.transactions, criteria)
    outflows = [tx for tx in transactions if tx.is_outflow]

    total_spent = spending_for_category(snapshot, category.id, args.date_range)

    largest = None
    if outflows:
        # Canonical order makes the most recent one win a tie
        biggest = min(outflows, key=lambda tx: tx.amount)
        largest = render_transaction(snapshot, biggest, _names(snapshot))

    return {
        "budget": budget.name,
        "currency": budget.currency.iso_code,
        "category": _category_info(snapshot, category),
        "date_range": format_date_range(args.date_range),
        "total_spent": format_money(total_spent, budget),
        "total_inflow": format_money(inflow_total(transactions), budget),
        "net_activity": format_money(Money.sum(tx.amount for tx in transactions), budget),
        "transaction_count": len(transactions),
        "outflow_count": len(outflows),
        "average_outflow": format_money(
            Money.average([tx.amount.negate() for tx in outflows]), budget
        ),
        "largest_outflow": largest,
        "current_month": {
            "budgeted": format_money(category.budgeted, budget),
            "activity": format_money(category.activity, budget),
            "available": format_money(category.available, budget),
        },
    }


# ============================================================================
# get_budget_overview
# ============================================================================

def get_budget_overview(
    snapshot: BudgetSnapshot,
    args: BudgetOverviewArgs,
    today: date | None = None,
) -> dict[str, Any]:
    """Summarize accounts, categories and cash flow for a budget.

    Answers: "How does my budget look?", "How much did I earn and spend?"

    Returns:
        Dictionary with budget metadata, open accounts and balances, visible
        category groups with their categories, budget totals, and income and
        outflow on on-budget accounts for the date range (all time if none).
    """
    budget = snapshot.budget

    accounts = []
    on_budget_balance = Money.zero()
    tracking_balance = Money.zero()
    for account in snapshot.accounts:
        if account.closed:
            continue
        accounts.append({
            "id": account.id,
            "name": account.name,
            "kind": account.kind.value,
            "on_budget": account.on_budget,
            "balance": format_money(account.balance, budget),
        })
        if account.on_budget:
            on_budget_balance += account.balance
        else:
            tracking_balance += account.balance

    groups = []
    total_budgeted = Money.zero()
    total_activity = Money.zero()
    for group in snapshot.category_groups:
        if group.hidden or group.is_internal:
            continue
        categories = [
            snapshot.category(category_id) for category_id in group.category_ids
        ]
        categories = [c for c in categories if not c.hidden]
        group_budgeted = Money.sum(c.budgeted for c in categories)
        group_activity = Money.sum(c.activity for c in categories)
        total_budgeted += group_budgeted
        total_activity += group_activity
        groups.append({
            "id": group.id,
            "name": group.name,
            "budgeted": format_money(group_budgeted, budget),
            "activity": format_money(group_activity, budget),
            "available": format_money(group_budgeted + group_activity, budget),
            "categories": [
                {
                    "id": c.id,
                    "name": c.name,
                    "budgeted": format_money(c.budgeted, budget),
                    "activity": format_money(c.activity, budget),
                    "available": format_money(c.available, budget),
                }
                for c in categories
            ],
        })

    on_budget_ids = {a.id for a in snapshot.accounts if a.on_budget}
    criteria = TransactionCriteria(date_range=args.date_range, exclude_transfers=True)
    flow = [
        tx for tx in filter_transactions(snapshot.transactions, criteria)
        if tx.account_id in on_budget_ids
    ]
    income = inflow_total(flow)
    outflow = outflow_total(flow)

    return {
        "budget": {
            "id": budget.id,
            "name": budget.name,
            "currency": budget.currency.iso_code,
            "currency_symbol": budget.currency.symbol,
            "decimal_digits": budget.currency.decimal_digits,
            "last_modified": budget.last_modified.isoformat() if budget.last_modified else None,
        },
        "accounts": accounts,
        "balances": {
            "on_budget": format_money(on_budget_balance, budget),
            "tracking": format_money(tracking_balance, budget),
            "net_worth": format_money(on_budget_balance + tracking_balance, budget),
        },
        "category_groups": groups,
        "totals": {
            "budgeted": format_money(total_budgeted, budget),
            "activity": format_money(total_activity, budget),
            "available": format_money(total_budgeted + total_activity, budget),
        },
        "cash_flow": {
            "date_range": format_date_range(args.date_range),
            "income": format_money(income, budget),
            "outflow": format_money(outflow, budget),
            "net": format_money(income - outflow, budget),
            "transaction_count": len(flow),
        },
    }


# ============================================================================
# search_transactions
# ============================================================================

def search_transactions(
    snapshot: BudgetSnapshot,
    args: SearchTransactionsArgs,
    today: date | None = None,
) -> dict[str, Any]:
    """Search transactions with filters.

    Answers: "Show transactions over $100", "Find my Amazon purchases".

    Amount bounds are signed: outflows are negative, so purchases over 100
    are ``amount_max=-100``. Results come newest first unless ``sort``
    asks for amount order, where ``amount_asc`` lists the largest outflows
    first.

    Raises:
        UnknownCategory, UnknownAccount, UnknownPayee: If a filter id is not
            in the budget.
    """
    criteria = args.criteria
    if criteria.category_id is not None:
        snapshot.category(criteria.category_id)
    for category_id in sorted(criteria.category_ids or ()):
        snapshot.category(category_id)
    if criteria.account_id is not None:
        snapshot.account(criteria.account_id)
    if criteria.payee_id is not None:
        snapshot.payee(criteria.payee_id)

    budget = snapshot.budget
    matching = filter_transactions(snapshot.transactions, criteria, snapshot.payee_names())
    matching = sort_transactions(matching, args.sort)
    names = _names(snapshot)

    return {
        "currency": budget.currency.iso_code,
        "transactions": [render_transaction(snapshot, tx, names) for tx in matching[: args.limit]],
        "returned_count": min(len(matching), args.limit),
        "total_matching": len(matching),
        "total_amount": format_money(Money.sum(tx.amount for tx in matching), budget),
    }


# ============================================================================
# analyze_spending_trends
# ============================================================================

def _render_point(point: TrendPoint, snapshot: BudgetSnapshot) -> dict[str, Any]:
    return {
        "period": point.period.label,
        "start": point.period.start.isoformat(),
        "end": point.period.end.isoformat(),
        "spending": format_money(point.spending, snapshot.budget),
        "transaction_count": point.transaction_count,
        "partial": point.period.partial,
    }


def analyze_spending_trends(
    snapshot: BudgetSnapshot,
    args: SpendingTrendArgs,
    today: date | None = None,
) -> dict[str, Any]:
    """Analyze spending over consecutive periods.

    Answers: "How did my spending change?", "Am I spending more on dining?"

    Without an explicit date range the series covers the last ``months``
    calendar months, the current (partial) month included.

    Returns:
        Dictionary with one entry per period, zero-activity periods included,
        and a summary over complete periods.

    Raises:
        UnknownCategory: If the category is not in the budget.
    """
    budget = snapshot.budget
    date_range = args.date_range
    if date_range is None:
        today = today or date.today()
        date_range = DateRange(shift_month(today, -(args.months - 1)), today)

    category = snapshot.category(args.category_id) if args.category_id else None
    points = spending_trend(snapshot, args.granularity, date_range, args.category_id)
    summary = trend_summary(points)

    if summary is None:
        summary_data: dict[str, Any] = {"message": "Insufficient data for analysis"}
    else:
        summary_data = {
            "average": format_money(summary.average, budget),
            "min": {
                "period": summary.minimum.period.label,
                "spending": format_money(summary.minimum.spending, budget),
            },
            "max": {
                "period": summary.maximum.period.label,
                "spending": format_money(summary.maximum.spending, budget),
            },
            "trend_direction": summary.direction,
            "trend_pct_change_per_period": summary.pct_change_per_period,
        }

    return {
        "granularity": args.granularity.value,
        "category": _category_info(snapshot, category) if category else None,
        "currency": budget.currency.iso_code,
        "date_range": {
            "start": format_date(date_range.start),
            "end": format_date(points[-1].period.end if points else date_range.end),
        },
        "total_spent": format_money(Money.sum(p.spending for p in points), budget),
        "data": [_render_point(p, snapshot) for p in points],
        "summary": summary_data,
    }


# ============================================================================
# budget_health_check
# ============================================================================

_STATUS_ORDER = {
    HealthStatus.OVERSPENT: 0,
    HealthStatus.UNDERUSED: 1,
    HealthStatus.ON_TRACK: 2,
}


def _render_health(entry: CategoryHealth, snapshot: BudgetSnapshot) -> dict[str, Any]:
    budget = snapshot.budget
    spent = entry.activity.negate()
    data = _category_info(snapshot, entry.category)
    data.update({
        "budgeted": format_money(entry.budgeted, budget),
        "activity": format_money(entry.activity, budget),
        "available": format_money(entry.available, budget),
        "status": entry.status.value,
    })
    if entry.budgeted.is_positive():
        data["pct_used"] = round(float(spent.to_decimal() / entry.budgeted.to_decimal() * 100), 1)
    if entry.status is HealthStatus.OVERSPENT:
        overspend = entry.available.negate()
        data["insight"] = f"Overspent by {format_money(overspend, budget)} {budget.currency.iso_code}"
    return data


def budget_health_check(
    snapshot: BudgetSnapshot,
    args: HealthCheckArgs,
    today: date | None = None,
) -> dict[str, Any]:
    """Check budget health per category.

    Answers: "Am I within budget?", "Where am I overspending?"

    Returns:
        Dictionary with every visible category classified as overspent,
        underused or on_track (most critical first), status counts, totals,
        the spent-to-budgeted ratio and a 0-100 health score.
    """
    budget = snapshot.budget
    report = budget_health(snapshot, args.date_range)

    entries = sorted(
        report.categories,
        key=lambda e: (_STATUS_ORDER[e.status], e.available, e.category.name),
    )

    return {
        "budget": budget.name,
        "currency": budget.currency.iso_code,
        "date_range": format_date_range(args.date_range),
        "score": report.score,
        "summary": {
            "overspent": len(report.with_status(HealthStatus.OVERSPENT)),
            "underused": len(report.with_status(HealthStatus.UNDERUSED)),
            "on_track": len(report.with_status(HealthStatus.ON_TRACK)),
            "total_budgeted": format_money(report.total_budgeted, budget),
            "total_activity": format_money(report.total_activity, budget),
            "total_spent": format_money(report.total_activity.negate(), budget),
            "spending_ratio": str(report.spending_ratio) if report.spending_ratio is not None else None,
        },
        "categories": [_render_health(e, snapshot) for e in entries],
    }
