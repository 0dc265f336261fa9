"""MCP Server for YNAB budget analytics."""

import json
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.types import TextContent, Tool

from .config import Settings
from .dispatch import DataSource, dispatch
from .errors import DataFetchError
from .ynab_client import YnabClient


logger = logging.getLogger(__name__)

# Initialize MCP server
server = Server("ynab-mcp")

# Global state
_settings: Settings | None = None
_source: DataSource | None = None


def get_settings() -> Settings:
    """Get or load settings from the environment."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def get_data_source() -> DataSource:
    """Get or create the YNAB API client."""
    global _source
    if _source is None:
        settings = get_settings()
        _source = YnabClient(
            settings.require_token(),
            base_url=settings.api_url,
            timeout=settings.timeout,
        )
    return _source


def init_for_testing(source: DataSource, budget_id: str = "last-used") -> None:
    """Initialize server with a test data source.

    Args:
        source: Snapshot provider to use instead of the YNAB API.
        budget_id: Default budget id for requests that name none.
    """
    global _settings, _source
    _settings = Settings({"YNAB_API_TOKEN": "test_token", "YNAB_BUDGET_ID": budget_id})
    _source = source


# ============================================================================
# Tools
# ============================================================================

_BUDGET_ID = {
    "type": "string",
    "description": "Budget UUID. Defaults to the configured budget or 'last-used'.",
}

_DATE_PROPERTIES = {
    "start_date": {
        "type": "string",
        "description": "Start date (YYYY-MM-DD), inclusive",
    },
    "end_date": {
        "type": "string",
        "description": "End date (YYYY-MM-DD), inclusive",
    },
    "period": {
        "type": "string",
        "description": "Period: 'this_month', 'last_month', 'last_30_days' or 'YYYY-MM'. Cannot be combined with start_date/end_date.",
    },
}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="analyze_category_spending",
            description="Analyze spending in one category. Answers: 'How much did I spend on groceries?', 'What was my biggest dining expense?'",
            inputSchema={
                "type": "object",
                "properties": {
                    "budget_id": _BUDGET_ID,
                    "category_id": {
                        "type": "string",
                        "description": "Category UUID",
                    },
                    "category_name": {
                        "type": "string",
                        "description": "Category name (case-insensitive), used when category_id is not given",
                    },
                    **_DATE_PROPERTIES,
                },
            },
        ),
        Tool(
            name="get_budget_overview",
            description="Get budget overview: accounts and balances, categories with budgeted/activity/available, and income vs outflow. Answers: 'How does my budget look?'",
            inputSchema={
                "type": "object",
                "properties": {
                    "budget_id": _BUDGET_ID,
                    **_DATE_PROPERTIES,
                },
            },
        ),
        Tool(
            name="search_transactions",
            description="Search transactions with filters. Amounts are signed: outflows are negative, so 'purchases over $100' is amount_max=-100. Answers: 'Find my Amazon purchases'",
            inputSchema={
                "type": "object",
                "properties": {
                    "budget_id": _BUDGET_ID,
                    **_DATE_PROPERTIES,
                    "category_id": {
                        "type": "string",
                        "description": "Category UUID to filter",
                    },
                    "category_ids": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Category UUIDs; matches transactions in any of them",
                    },
                    "account_id": {
                        "type": "string",
                        "description": "Account UUID to filter",
                    },
                    "payee_id": {
                        "type": "string",
                        "description": "Payee UUID to filter",
                    },
                    "payee_text": {
                        "type": "string",
                        "description": "Case-insensitive substring of the payee name",
                    },
                    "text_search": {
                        "type": "string",
                        "description": "Case-insensitive substring of the memo or payee name",
                    },
                    "amount_min": {
                        "type": ["number", "string"],
                        "description": "Minimum signed amount, inclusive",
                    },
                    "amount_max": {
                        "type": ["number", "string"],
                        "description": "Maximum signed amount, inclusive",
                    },
                    "cleared": {
                        "type": "string",
                        "enum": ["uncleared", "cleared", "reconciled"],
                        "description": "Cleared status",
                    },
                    "exclude_transfers": {
                        "type": "boolean",
                        "description": "Leave out transfers between accounts",
                        "default": False,
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Max results (1-500)",
                        "default": 50,
                    },
                    "sort": {
                        "type": "string",
                        "enum": ["date", "amount_asc", "amount_desc"],
                        "description": "Result order: newest first, or by signed amount ('amount_asc' lists the largest outflows first)",
                        "default": "date",
                    },
                },
            },
        ),
        Tool(
            name="analyze_spending_trends",
            description="Analyze spending over consecutive days, weeks or months. Answers: 'How did my spending change?', 'Am I spending more on dining?'",
            inputSchema={
                "type": "object",
                "properties": {
                    "budget_id": _BUDGET_ID,
                    "category_id": {
                        "type": "string",
                        "description": "Category UUID to filter. Without it transfers are excluded.",
                    },
                    "granularity": {
                        "type": "string",
                        "enum": ["day", "week", "month"],
                        "description": "Period size",
                        "default": "month",
                    },
                    "months": {
                        "type": "integer",
                        "description": "Number of months back from the current month, used when no date range is given",
                        "default": 6,
                    },
                    **_DATE_PROPERTIES,
                },
            },
        ),
        Tool(
            name="budget_health_check",
            description="Check budget health: overspent, underused and on-track categories with an overall score. Answers: 'Am I within budget?', 'Where am I overspending?'",
            inputSchema={
                "type": "object",
                "properties": {
                    "budget_id": _BUDGET_ID,
                    **_DATE_PROPERTIES,
                },
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    try:
        source = get_data_source()
    except ValueError as e:
        # Missing token or bad settings surface as a fetch failure
        logger.warning("YNAB client unavailable: %s", e)
        result = {"error": DataFetchError(str(e)).to_dict()}
    else:
        result = await dispatch(
            name,
            arguments,
            source,
            default_budget_id=get_settings().budget_id,
        )
    return [TextContent(type="text", text=json.dumps(result, ensure_ascii=False, indent=2))]


# ============================================================================
# Main
# ============================================================================

def main() -> None:
    import asyncio

    from mcp.server.stdio import stdio_server

    settings = get_settings()
    # stdout carries the MCP protocol
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    get_data_source()
    logger.info("Starting YNAB MCP server (budget %s)", settings.budget_id)

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    asyncio.run(run())


if __name__ == "__main__":
    main()
