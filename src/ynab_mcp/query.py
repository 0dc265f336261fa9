"""Multi-criteria transaction filtering."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from .models import ClearedStatus, DateRange, Transaction
from .money import Money


class SortOrder(str, Enum):
    """Result order for transaction searches.

    Amount orders compare signed amounts, so ``amount_asc`` puts the largest
    outflows first. Equal amounts keep the canonical date order.
    """

    DATE = "date"
    AMOUNT_ASC = "amount_asc"
    AMOUNT_DESC = "amount_desc"


@dataclass(frozen=True)
class TransactionCriteria:
    """Independent, optional filters combined with AND.

    Amount bounds apply to the signed amount (outflows are negative), so
    "spending over 100" is ``amount_max=Money.parse("-100")``.
    ``category_ids`` matches a transaction in any of the listed categories.
    """

    category_id: str | None = None
    category_ids: frozenset[str] | None = None
    account_id: str | None = None
    payee_id: str | None = None
    payee_text: str | None = None
    date_range: DateRange | None = None
    amount_min: Money | None = None
    amount_max: Money | None = None
    text_search: str | None = None
    cleared: ClearedStatus | None = None
    exclude_transfers: bool = False


def sort_key(tx: Transaction) -> tuple[int, str]:
    """Canonical order: date descending, then id ascending."""
    return (-tx.date.toordinal(), tx.id)


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle in haystack.casefold()


def matches(
    tx: Transaction,
    criteria: TransactionCriteria,
    payee_names: Mapping[str, str] | None = None,
) -> bool:
    """Check whether a single transaction satisfies every criterion."""
    if criteria.category_id is not None and tx.category_id != criteria.category_id:
        return False
    if criteria.category_ids is not None and tx.category_id not in criteria.category_ids:
        return False
    if criteria.account_id is not None and tx.account_id != criteria.account_id:
        return False
    if criteria.payee_id is not None and tx.payee_id != criteria.payee_id:
        return False
    if criteria.date_range is not None and not criteria.date_range.contains(tx.date):
        return False
    if criteria.amount_min is not None and tx.amount < criteria.amount_min:
        return False
    if criteria.amount_max is not None and tx.amount > criteria.amount_max:
        return False
    if criteria.cleared is not None and tx.cleared != criteria.cleared:
        return False
    if criteria.exclude_transfers and tx.is_transfer:
        return False

    payee_name = None
    if tx.payee_id is not None and payee_names:
        payee_name = payee_names.get(tx.payee_id)

    if criteria.payee_text:
        if not _contains(payee_name, criteria.payee_text.casefold()):
            return False
    if criteria.text_search:
        needle = criteria.text_search.casefold()
        if not (_contains(tx.memo, needle) or _contains(payee_name, needle)):
            return False

    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    criteria: TransactionCriteria | None = None,
    payee_names: Mapping[str, str] | None = None,
) -> list[Transaction]:
    """Filter transactions and return them in canonical order.

    Args:
        transactions: Transactions to filter; never modified.
        criteria: Filters to apply. None or an empty criteria returns all.
        payee_names: Payee id to name mapping used by ``payee_text`` and
            ``text_search``. Without it only memos are searched.

    Returns:
        New list sorted by date descending, ties by id ascending. An empty
        list is a valid result.
    """
    if criteria is None:
        criteria = TransactionCriteria()
    selected = [tx for tx in transactions if matches(tx, criteria, payee_names)]
    selected.sort(key=sort_key)
    return selected


def sort_transactions(
    transactions: Iterable[Transaction],
    order: SortOrder = SortOrder.DATE,
) -> list[Transaction]:
    """Return a new list in the requested order.

    Canonical order comes first so that it breaks ties between equal amounts.
    """
    result = sorted(transactions, key=sort_key)
    if order is SortOrder.AMOUNT_ASC:
        result.sort(key=lambda tx: tx.amount)
    elif order is SortOrder.AMOUNT_DESC:
        result.sort(key=lambda tx: tx.amount, reverse=True)
    return result
