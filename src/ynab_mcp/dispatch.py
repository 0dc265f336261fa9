"""Routing of named tool requests to the analysis engine."""

import logging
from collections.abc import Callable
from datetime import date
from typing import Any, Protocol

from .arguments import (
    BudgetOverviewArgs,
    CategorySpendingArgs,
    HealthCheckArgs,
    SearchTransactionsArgs,
    SpendingTrendArgs,
    ToolArguments,
    parse_arguments,
)
from .config import DEFAULT_BUDGET_ID
from .errors import YnabMcpError
from .models import BudgetSnapshot
from .tools import (
    analyze_category_spending,
    analyze_spending_trends,
    budget_health_check,
    get_budget_overview,
    search_transactions,
)


logger = logging.getLogger(__name__)


class DataSource(Protocol):
    """Anything that can produce a budget snapshot."""

    async def fetch_budget_snapshot(self, budget_id: str) -> BudgetSnapshot:
        ...


HANDLERS: dict[type, Callable[[BudgetSnapshot, Any, date | None], dict[str, Any]]] = {
    CategorySpendingArgs: analyze_category_spending,
    BudgetOverviewArgs: get_budget_overview,
    SearchTransactionsArgs: search_transactions,
    SpendingTrendArgs: analyze_spending_trends,
    HealthCheckArgs: budget_health_check,
}


async def run_tool(
    name: str,
    arguments: Any,
    source: DataSource,
    default_budget_id: str = DEFAULT_BUDGET_ID,
    today: date | None = None,
) -> dict[str, Any]:
    """Validate, fetch and run one tool request.

    Raises:
        YnabMcpError: Any validation, lookup or fetch failure.
    """
    args: ToolArguments = parse_arguments(name, arguments, today)
    budget_id = args.budget_id or default_budget_id
    snapshot = await source.fetch_budget_snapshot(budget_id)
    return HANDLERS[type(args)](snapshot, args, today)


async def dispatch(
    name: str,
    arguments: Any,
    source: DataSource,
    default_budget_id: str = DEFAULT_BUDGET_ID,
    today: date | None = None,
) -> dict[str, Any]:
    """Handle one tool request and always return a renderable result.

    Each request is independent: a failure is rendered as
    ``{"error": {"kind": ..., "message": ...}}`` and nothing carries over
    to the next request.

    Args:
        name: Tool name.
        arguments: Untyped argument payload.
        source: Snapshot provider.
        default_budget_id: Budget used when the request names none.
        today: Reference date for relative periods, defaults to today.

    Returns:
        The tool result, or an error object.
    """
    logger.debug("Tool call %s with %s", name, arguments)
    try:
        return await run_tool(name, arguments, source, default_budget_id, today)
    except YnabMcpError as e:
        logger.info("Tool %s failed: %s %s", name, e.kind, e.message)
        return {"error": e.to_dict()}
    except Exception as e:
        logger.exception("Unexpected error in tool %s", name)
        return {"error": {"kind": "InternalError", "message": f"{type(e).__name__}: {e}"}}
