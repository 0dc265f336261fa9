"""Immutable domain entities and decoding from the YNAB budget export."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from .errors import (
    DataFetchError,
    InvalidDateRange,
    UnknownAccount,
    UnknownCategory,
    UnknownPayee,
)
from .money import Money, MoneyOverflowError


INTERNAL_GROUP_NAME = "Internal Master Category"


class AccountKind(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    CASH = "cash"
    TRACKING = "tracking"

    @classmethod
    def from_ynab_type(cls, ynab_type: str) -> "AccountKind":
        """Map a YNAB account type onto the closed set of kinds.

        Loans, mortgages and other asset/liability accounts are all tracking.
        """
        return _YNAB_ACCOUNT_TYPES.get(ynab_type, cls.TRACKING)


_YNAB_ACCOUNT_TYPES = {
    "checking": AccountKind.CHECKING,
    "savings": AccountKind.SAVINGS,
    "cash": AccountKind.CASH,
    "creditCard": AccountKind.CREDIT,
    "lineOfCredit": AccountKind.CREDIT,
}


class ClearedStatus(str, Enum):
    UNCLEARED = "uncleared"
    CLEARED = "cleared"
    RECONCILED = "reconciled"


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range; a missing bound is unbounded."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise InvalidDateRange(
                f"Start date {self.start.isoformat()} is after end date {self.end.isoformat()}"
            )

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None


@dataclass(frozen=True)
class CurrencyFormat:
    iso_code: str = "USD"
    decimal_digits: int = 2
    symbol: str = "$"


@dataclass(frozen=True)
class Budget:
    id: str
    name: str
    currency: CurrencyFormat = field(default_factory=CurrencyFormat)
    last_modified: datetime | None = None


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    kind: AccountKind
    on_budget: bool
    closed: bool = False
    balance: Money = field(default_factory=Money.zero)


@dataclass(frozen=True)
class Payee:
    id: str
    name: str


@dataclass(frozen=True)
class CategoryGroup:
    id: str
    name: str
    category_ids: tuple[str, ...] = ()
    hidden: bool = False

    @property
    def is_internal(self) -> bool:
        """YNAB's hidden group holding the "Inflow: Ready to Assign" category."""
        return self.name == INTERNAL_GROUP_NAME


@dataclass(frozen=True)
class Category:
    """Budget category for the active month.

    ``activity`` is signed like transactions, so spending is negative and
    ``available`` is always ``budgeted + activity``.
    """

    id: str
    name: str
    group_id: str | None
    budgeted: Money = field(default_factory=Money.zero)
    activity: Money = field(default_factory=Money.zero)
    hidden: bool = False

    @property
    def available(self) -> Money:
        return self.budgeted + self.activity


@dataclass(frozen=True)
class Transaction:
    id: str
    date: date
    amount: Money
    account_id: str
    category_id: str | None = None
    payee_id: str | None = None
    memo: str = ""
    cleared: ClearedStatus = ClearedStatus.UNCLEARED
    transfer_account_id: str | None = None
    approved: bool = True

    @property
    def is_outflow(self) -> bool:
        return self.amount.is_negative()

    @property
    def is_transfer(self) -> bool:
        return self.transfer_account_id is not None


@dataclass(frozen=True)
class BudgetSnapshot:
    """Budget entities fetched together at one point in time."""

    budget: Budget
    accounts: tuple[Account, ...] = ()
    category_groups: tuple[CategoryGroup, ...] = ()
    categories: tuple[Category, ...] = ()
    payees: tuple[Payee, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    _categories_by_id: dict[str, Category] = field(init=False, repr=False, compare=False)
    _accounts_by_id: dict[str, Account] = field(init=False, repr=False, compare=False)
    _payees_by_id: dict[str, Payee] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_categories_by_id", {c.id: c for c in self.categories})
        object.__setattr__(self, "_accounts_by_id", {a.id: a for a in self.accounts})
        object.__setattr__(self, "_payees_by_id", {p.id: p for p in self.payees})

    def category(self, category_id: str) -> Category:
        try:
            return self._categories_by_id[category_id]
        except KeyError:
            raise UnknownCategory(category_id) from None

    def account(self, account_id: str) -> Account:
        try:
            return self._accounts_by_id[account_id]
        except KeyError:
            raise UnknownAccount(account_id) from None

    def payee(self, payee_id: str) -> Payee:
        try:
            return self._payees_by_id[payee_id]
        except KeyError:
            raise UnknownPayee(payee_id) from None

    def has_category(self, category_id: str) -> bool:
        return category_id in self._categories_by_id

    def find_category_by_name(self, name: str) -> Category:
        """Case-insensitive lookup of a visible category by name."""
        wanted = name.strip().casefold()
        matches = [c for c in self.categories if c.name.casefold() == wanted]
        if not matches:
            raise UnknownCategory(name)
        visible = [c for c in matches if not c.hidden]
        return (visible or matches)[0]

    def payee_names(self) -> dict[str, str]:
        return {p.id: p.name for p in self.payees}

    def group(self, group_id: str | None) -> CategoryGroup | None:
        return next((g for g in self.category_groups if g.id == group_id), None)


# ============================================================================
# Decoding from the YNAB API
# ============================================================================

def _live(items: Iterable[dict[str, Any]] | None) -> list[dict[str, Any]]:
    return [item for item in items or [] if not item.get("deleted")]


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_currency(data: Mapping[str, Any] | None) -> CurrencyFormat:
    if not data:
        return CurrencyFormat()
    return CurrencyFormat(
        iso_code=data.get("iso_code") or "USD",
        decimal_digits=int(data.get("decimal_digits", 2)),
        symbol=data.get("currency_symbol") or "",
    )


def _transaction_from_api(tx: Mapping[str, Any]) -> Transaction:
    return Transaction(
        id=tx["id"],
        date=date.fromisoformat(tx["date"]),
        amount=Money(tx["amount"]),
        account_id=tx["account_id"],
        category_id=tx.get("category_id"),
        payee_id=tx.get("payee_id"),
        memo=tx.get("memo") or "",
        cleared=ClearedStatus(tx.get("cleared") or "uncleared"),
        transfer_account_id=tx.get("transfer_account_id"),
        approved=bool(tx.get("approved", True)),
    )


def _split_from_api(parent: Transaction, sub: Mapping[str, Any]) -> Transaction:
    # Date, account and cleared state belong to the parent transaction
    return Transaction(
        id=sub["id"],
        date=parent.date,
        amount=Money(sub["amount"]),
        account_id=parent.account_id,
        category_id=sub.get("category_id"),
        payee_id=sub.get("payee_id") or parent.payee_id,
        memo=sub.get("memo") or parent.memo,
        cleared=parent.cleared,
        transfer_account_id=sub.get("transfer_account_id"),
        approved=parent.approved,
    )


def _transactions_from_api(
    transactions: list[dict[str, Any]],
    subtransactions: list[dict[str, Any]],
) -> list[Transaction]:
    splits: dict[str, list[dict[str, Any]]] = {}
    for sub in subtransactions:
        splits.setdefault(sub["transaction_id"], []).append(sub)

    result = []
    for raw in transactions:
        tx = _transaction_from_api(raw)
        # Split transactions are replaced by their parts so each category
        # amount is counted exactly once
        parts = splits.get(tx.id) or _live(raw.get("subtransactions"))
        if parts:
            result.extend(_split_from_api(tx, sub) for sub in parts)
        else:
            result.append(tx)
    return result


def snapshot_from_api(data: Mapping[str, Any]) -> BudgetSnapshot:
    """Build a snapshot from a YNAB ``GET /budgets/{id}`` budget object.

    Deleted entities are dropped and split transactions are expanded into
    their subtransactions.

    Args:
        data: The ``data.budget`` object of the budget export response.

    Returns:
        Decoded BudgetSnapshot.

    Raises:
        DataFetchError: If required fields are missing or malformed.
    """
    try:
        budget = Budget(
            id=data["id"],
            name=data["name"],
            currency=_parse_currency(data.get("currency_format")),
            last_modified=_parse_timestamp(data.get("last_modified_on")),
        )

        accounts = tuple(
            Account(
                id=acc["id"],
                name=acc["name"],
                kind=AccountKind.from_ynab_type(acc.get("type", "")),
                on_budget=bool(acc.get("on_budget", False)),
                closed=bool(acc.get("closed", False)),
                balance=Money(acc.get("balance", 0)),
            )
            for acc in _live(data.get("accounts"))
        )

        categories = tuple(
            Category(
                id=cat["id"],
                name=cat["name"],
                group_id=cat.get("category_group_id"),
                budgeted=Money(cat.get("budgeted", 0)),
                activity=Money(cat.get("activity", 0)),
                hidden=bool(cat.get("hidden", False)),
            )
            for cat in _live(data.get("categories"))
        )

        category_groups = tuple(
            CategoryGroup(
                id=group["id"],
                name=group["name"],
                category_ids=tuple(c.id for c in categories if c.group_id == group["id"]),
                hidden=bool(group.get("hidden", False)),
            )
            for group in _live(data.get("category_groups"))
        )

        payees = tuple(
            Payee(id=payee["id"], name=payee["name"])
            for payee in _live(data.get("payees"))
        )

        transactions = tuple(
            _transactions_from_api(
                _live(data.get("transactions")),
                _live(data.get("subtransactions")),
            )
        )
    except (KeyError, TypeError, ValueError, MoneyOverflowError) as e:
        raise DataFetchError(f"Malformed budget payload: {e!r}") from e

    return BudgetSnapshot(
        budget=budget,
        accounts=accounts,
        category_groups=category_groups,
        categories=categories,
        payees=payees,
        transactions=transactions,
    )
