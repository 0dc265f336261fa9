"""Test fixtures for YNAB MCP server tests."""

import copy
from datetime import date

import pytest

from ynab_mcp.errors import DataFetchError
from ynab_mcp.models import (
    Account,
    AccountKind,
    Budget,
    BudgetSnapshot,
    Category,
    CategoryGroup,
    Payee,
    Transaction,
    snapshot_from_api,
)
from ynab_mcp.money import Money


# Shaped like the data.budget object of GET /budgets/{id}
BUDGET_PAYLOAD = {
    "id": "budget-1",
    "name": "Household",
    "last_modified_on": "2024-03-15T10:30:00.000Z",
    "currency_format": {
        "iso_code": "USD",
        "decimal_digits": 2,
        "currency_symbol": "$",
    },
    "accounts": [
        {"id": "acc-checking", "name": "Checking", "type": "checking", "on_budget": True,
         "closed": False, "balance": 2500000, "deleted": False},
        {"id": "acc-card", "name": "Visa", "type": "creditCard", "on_budget": True,
         "closed": False, "balance": -350000, "deleted": False},
        {"id": "acc-savings", "name": "Savings", "type": "savings", "on_budget": True,
         "closed": False, "balance": 10000000, "deleted": False},
        {"id": "acc-mortgage", "name": "Mortgage", "type": "mortgage", "on_budget": False,
         "closed": False, "balance": -200000000, "deleted": False},
        {"id": "acc-old", "name": "Old Checking", "type": "checking", "on_budget": True,
         "closed": True, "balance": 0, "deleted": False},
        {"id": "acc-gone", "name": "Deleted Account", "type": "cash", "on_budget": True,
         "closed": False, "balance": 0, "deleted": True},
    ],
    "payees": [
        {"id": "p-market", "name": "Fresh Market", "deleted": False},
        {"id": "p-bistro", "name": "Corner Bistro", "deleted": False},
        {"id": "p-landlord", "name": "Landlord LLC", "deleted": False},
        {"id": "p-employer", "name": "Acme Corp", "deleted": False},
        {"id": "p-amazon", "name": "Amazon", "deleted": False},
        {"id": "p-to-savings", "name": "Transfer : Savings", "deleted": False},
    ],
    "category_groups": [
        {"id": "grp-internal", "name": "Internal Master Category", "hidden": False, "deleted": False},
        {"id": "grp-bills", "name": "Bills", "hidden": False, "deleted": False},
        {"id": "grp-everyday", "name": "Everyday", "hidden": False, "deleted": False},
    ],
    "categories": [
        {"id": "cat-rta", "category_group_id": "grp-internal", "name": "Inflow: Ready to Assign",
         "hidden": False, "budgeted": 0, "activity": 5000000, "balance": 5000000, "deleted": False},
        {"id": "cat-rent", "category_group_id": "grp-bills", "name": "Rent",
         "hidden": False, "budgeted": 1500000, "activity": -1500000, "balance": 0, "deleted": False},
        {"id": "cat-utilities", "category_group_id": "grp-bills", "name": "Utilities",
         "hidden": False, "budgeted": 150000, "activity": 0, "balance": 150000, "deleted": False},
        {"id": "cat-groceries", "category_group_id": "grp-everyday", "name": "Groceries",
         "hidden": False, "budgeted": 400000, "activity": -57500, "balance": 342500, "deleted": False},
        {"id": "cat-dining", "category_group_id": "grp-everyday", "name": "Dining Out",
         "hidden": False, "budgeted": 50000, "activity": -80000, "balance": -30000, "deleted": False},
        {"id": "cat-gifts", "category_group_id": "grp-everyday", "name": "Gifts",
         "hidden": False, "budgeted": 0, "activity": 0, "balance": 0, "deleted": False},
        {"id": "cat-old", "category_group_id": "grp-everyday", "name": "Old Hobby",
         "hidden": True, "budgeted": 0, "activity": -10000, "balance": -10000, "deleted": False},
        {"id": "cat-gone", "category_group_id": "grp-everyday", "name": "Deleted Category",
         "hidden": False, "budgeted": 0, "activity": 0, "balance": 0, "deleted": True},
    ],
    "transactions": [
        {"id": "t01", "date": "2024-01-05", "amount": -45000, "memo": "weekly shop",
         "cleared": "cleared", "approved": True, "account_id": "acc-checking",
         "payee_id": "p-market", "category_id": "cat-groceries",
         "transfer_account_id": None, "deleted": False},
        {"id": "t02", "date": "2024-01-20", "amount": -12500, "memo": None,
         "cleared": "uncleared", "approved": True, "account_id": "acc-card",
         "payee_id": "p-market", "category_id": "cat-groceries",
         "transfer_account_id": None, "deleted": False},
        {"id": "t03", "date": "2024-01-10", "amount": -8000, "memo": "lunch",
         "cleared": "cleared", "approved": True, "account_id": "acc-card",
         "payee_id": "p-bistro", "category_id": "cat-dining",
         "transfer_account_id": None, "deleted": False},
        {"id": "t04", "date": "2024-01-01", "amount": -1500000, "memo": "January rent",
         "cleared": "reconciled", "approved": True, "account_id": "acc-checking",
         "payee_id": "p-landlord", "category_id": "cat-rent",
         "transfer_account_id": None, "deleted": False},
        {"id": "t05", "date": "2024-01-15", "amount": 5000000, "memo": "January salary",
         "cleared": "cleared", "approved": True, "account_id": "acc-checking",
         "payee_id": "p-employer", "category_id": "cat-rta",
         "transfer_account_id": None, "deleted": False},
        {"id": "t06", "date": "2024-01-25", "amount": -500000, "memo": None,
         "cleared": "cleared", "approved": True, "account_id": "acc-checking",
         "payee_id": "p-to-savings", "category_id": None,
         "transfer_account_id": "acc-savings", "deleted": False},
        {"id": "t07", "date": "2024-01-25", "amount": 500000, "memo": None,
         "cleared": "cleared", "approved": True, "account_id": "acc-savings",
         "payee_id": None, "category_id": None,
         "transfer_account_id": "acc-checking", "deleted": False},
        {"id": "t08", "date": "2024-02-03", "amount": -150000, "memo": "split order",
         "cleared": "cleared", "approved": True, "account_id": "acc-card",
         "payee_id": "p-amazon", "category_id": None,
         "transfer_account_id": None, "deleted": False},
        {"id": "t09", "date": "2024-02-14", "amount": -72000, "memo": "dinner",
         "cleared": "uncleared", "approved": True, "account_id": "acc-card",
         "payee_id": "p-bistro", "category_id": "cat-dining",
         "transfer_account_id": None, "deleted": False},
        {"id": "t10", "date": "2024-03-02", "amount": -30000, "memo": None,
         "cleared": "cleared", "approved": True, "account_id": "acc-checking",
         "payee_id": "p-market", "category_id": "cat-groceries",
         "transfer_account_id": None, "deleted": False},
        {"id": "t11", "date": "2024-03-10", "amount": -10000, "memo": "paint",
         "cleared": "cleared", "approved": True, "account_id": "acc-checking",
         "payee_id": None, "category_id": "cat-old",
         "transfer_account_id": None, "deleted": False},
        {"id": "t12", "date": "2024-01-07", "amount": -99999, "memo": "entered twice",
         "cleared": "cleared", "approved": True, "account_id": "acc-checking",
         "payee_id": "p-market", "category_id": "cat-groceries",
         "transfer_account_id": None, "deleted": True},
        {"id": "t13", "date": "2024-02-20", "amount": -200000, "memo": "tv stand",
         "cleared": "uncleared", "approved": False, "account_id": "acc-card",
         "payee_id": "p-amazon", "category_id": None,
         "transfer_account_id": None, "deleted": False},
    ],
    "subtransactions": [
        {"id": "t08-a", "transaction_id": "t08", "amount": -100000, "memo": "birthday present",
         "payee_id": None, "category_id": "cat-gifts", "transfer_account_id": None,
         "deleted": False},
        {"id": "t08-b", "transaction_id": "t08", "amount": -50000, "memo": None,
         "payee_id": None, "category_id": "cat-groceries", "transfer_account_id": None,
         "deleted": False},
    ],
}


class FakeSource:
    """In-memory snapshot provider recording requested budget ids."""

    def __init__(self, snapshot: BudgetSnapshot | None = None, error: Exception | None = None):
        self.snapshot = snapshot
        self.error = error
        self.requested: list[str] = []

    async def fetch_budget_snapshot(self, budget_id: str) -> BudgetSnapshot:
        self.requested.append(budget_id)
        if self.error is not None:
            raise self.error
        return self.snapshot


@pytest.fixture
def budget_payload() -> dict:
    """Fresh copy of the API-shaped budget export."""
    return copy.deepcopy(BUDGET_PAYLOAD)


@pytest.fixture
def snapshot(budget_payload: dict) -> BudgetSnapshot:
    """Snapshot decoded from the budget export fixture."""
    return snapshot_from_api(budget_payload)


@pytest.fixture
def source(snapshot: BudgetSnapshot) -> FakeSource:
    return FakeSource(snapshot)


@pytest.fixture
def failing_source() -> FakeSource:
    return FakeSource(error=DataFetchError("YNAB API returned status 401: Unauthorized"))


@pytest.fixture
def make_snapshot():
    """Factory for small hand-built snapshots.

    Transactions are given as (id, ISO date, amount, category_id) tuples and
    land in a single checking account.
    """

    def _make(transactions, categories=("Groceries", "Dining")):
        group = CategoryGroup(id="grp", name="Everyday", category_ids=tuple(categories))
        return BudgetSnapshot(
            budget=Budget(id="b", name="Test"),
            accounts=(Account(id="acc", name="Checking", kind=AccountKind.CHECKING, on_budget=True),),
            category_groups=(group,),
            categories=tuple(Category(id=name, name=name, group_id="grp") for name in categories),
            payees=(Payee(id="payee", name="Corner Shop"),),
            transactions=tuple(
                Transaction(
                    id=tx_id,
                    date=date.fromisoformat(day),
                    amount=Money.parse(amount),
                    account_id="acc",
                    category_id=category_id,
                    payee_id="payee",
                )
                for tx_id, day, amount, category_id in transactions
            ),
        )

    return _make
