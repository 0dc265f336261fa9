"""Tests for transaction filtering."""

from datetime import date

from ynab_mcp.models import BudgetSnapshot, ClearedStatus, DateRange
from ynab_mcp.money import Money
from ynab_mcp.query import (
    SortOrder,
    TransactionCriteria,
    filter_transactions,
    sort_key,
    sort_transactions,
)


class TestFilterTransactions:
    """Test filter_transactions ordering and laws."""

    def test_no_criteria_returns_all_sorted(self, snapshot: BudgetSnapshot):
        result = filter_transactions(snapshot.transactions)
        assert len(result) == len(snapshot.transactions)
        assert result == sorted(snapshot.transactions, key=sort_key)

    def test_order_date_desc_then_id(self, snapshot: BudgetSnapshot):
        result = filter_transactions(snapshot.transactions)
        for earlier, later in zip(result, result[1:]):
            assert (earlier.date > later.date) or (earlier.date == later.date and earlier.id < later.id)
        # Same-day transfer pair is ordered by id
        same_day = [tx.id for tx in result if tx.date == date(2024, 1, 25)]
        assert same_day == ["t06", "t07"]

    def test_subset_and_idempotent(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(account_id="acc-card")
        once = filter_transactions(snapshot.transactions, criteria)
        twice = filter_transactions(once, criteria)
        assert once == twice
        assert set(once) <= set(snapshot.transactions)

    def test_input_not_modified(self, snapshot: BudgetSnapshot):
        transactions = list(snapshot.transactions)
        before = list(transactions)
        filter_transactions(transactions, TransactionCriteria(category_id="cat-groceries"))
        assert transactions == before

    def test_empty_result(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(date_range=DateRange(date(2030, 1, 1), date(2030, 12, 31)))
        assert filter_transactions(snapshot.transactions, criteria) == []


class TestCriteria:
    """Test individual criteria."""

    def test_category(self, snapshot: BudgetSnapshot):
        result = filter_transactions(snapshot.transactions, TransactionCriteria(category_id="cat-groceries"))
        assert [tx.id for tx in result] == ["t10", "t08-b", "t02", "t01"]

    def test_uncategorized_never_matches_category(self, snapshot: BudgetSnapshot):
        result = filter_transactions(snapshot.transactions, TransactionCriteria(category_id="cat-dining"))
        assert all(tx.category_id == "cat-dining" for tx in result)
        assert "t13" not in {tx.id for tx in result}

    def test_date_range_inclusive(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(date_range=DateRange(date(2024, 1, 1), date(2024, 1, 5)))
        assert {tx.id for tx in filter_transactions(snapshot.transactions, criteria)} == {"t01", "t04"}

    def test_amount_bounds_are_signed(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(amount_min=Money.parse("-100"), amount_max=Money.parse("-50"))
        result = filter_transactions(snapshot.transactions, criteria)
        assert {tx.id for tx in result} == {"t08-a", "t08-b", "t09"}

    def test_cleared(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(cleared=ClearedStatus.RECONCILED)
        assert [tx.id for tx in filter_transactions(snapshot.transactions, criteria)] == ["t04"]

    def test_exclude_transfers(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(exclude_transfers=True)
        result = filter_transactions(snapshot.transactions, criteria)
        assert not any(tx.is_transfer for tx in result)
        assert len(result) == len(snapshot.transactions) - 2

    def test_text_search_memo_and_payee(self, snapshot: BudgetSnapshot):
        names = snapshot.payee_names()
        by_memo = filter_transactions(snapshot.transactions, TransactionCriteria(text_search="DINNER"), names)
        assert [tx.id for tx in by_memo] == ["t09"]
        by_payee = filter_transactions(snapshot.transactions, TransactionCriteria(text_search="bistro"), names)
        assert {tx.id for tx in by_payee} == {"t03", "t09"}

    def test_text_search_without_payee_names(self, snapshot: BudgetSnapshot):
        result = filter_transactions(snapshot.transactions, TransactionCriteria(text_search="bistro"))
        assert result == []

    def test_payee_text(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(payee_text="amaz")
        result = filter_transactions(snapshot.transactions, criteria, snapshot.payee_names())
        assert [tx.id for tx in result] == ["t13", "t08-a", "t08-b"]

    def test_criteria_combine_with_and(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(account_id="acc-card", category_id="cat-groceries")
        assert [tx.id for tx in filter_transactions(snapshot.transactions, criteria)] == ["t08-b", "t02"]


class TestAmountThresholdScenario:
    """Purchases over 100 expressed with the signed convention."""

    def test_amount_max_minus_100(self, make_snapshot):
        snapshot = make_snapshot([
            ("a", "2024-01-10", "-150.00", "Groceries"),
            ("b", "2024-01-12", "-50.00", "Groceries"),
            ("c", "2024-01-15", "-200.00", "Dining"),
        ])
        criteria = TransactionCriteria(amount_max=Money.parse("-100.00"))
        result = filter_transactions(snapshot.transactions, criteria)
        assert [tx.id for tx in result] == ["c", "a"]


class TestCategorySet:
    """Test matching any of several categories."""

    def test_any_listed_category(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(category_ids=frozenset({"cat-dining", "cat-gifts"}))
        result = filter_transactions(snapshot.transactions, criteria)
        assert [tx.id for tx in result] == ["t09", "t08-a", "t03"]

    def test_uncategorized_never_matches(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(category_ids=frozenset({"cat-groceries"}))
        result = filter_transactions(snapshot.transactions, criteria)
        assert all(tx.category_id == "cat-groceries" for tx in result)

    def test_combines_with_single_category(self, snapshot: BudgetSnapshot):
        criteria = TransactionCriteria(category_id="cat-rent", category_ids=frozenset({"cat-dining"}))
        assert filter_transactions(snapshot.transactions, criteria) == []


class TestSortTransactions:
    """Test result ordering."""

    def test_date_is_canonical(self, snapshot: BudgetSnapshot):
        assert sort_transactions(snapshot.transactions) == filter_transactions(snapshot.transactions)

    def test_amount_ascending_puts_largest_outflows_first(self, snapshot: BudgetSnapshot):
        result = sort_transactions(snapshot.transactions, SortOrder.AMOUNT_ASC)
        assert [tx.id for tx in result[:3]] == ["t04", "t06", "t13"]
        assert [tx.amount for tx in result] == sorted(tx.amount for tx in snapshot.transactions)

    def test_amount_descending(self, snapshot: BudgetSnapshot):
        result = sort_transactions(snapshot.transactions, SortOrder.AMOUNT_DESC)
        assert [tx.id for tx in result[:2]] == ["t05", "t07"]

    def test_equal_amounts_keep_canonical_order(self, make_snapshot):
        snapshot = make_snapshot([
            ("a", "2024-01-01", "-10", "Groceries"),
            ("b", "2024-01-03", "-10", "Groceries"),
            ("c", "2024-01-02", "-5", "Groceries"),
        ])
        ascending = sort_transactions(snapshot.transactions, SortOrder.AMOUNT_ASC)
        descending = sort_transactions(snapshot.transactions, SortOrder.AMOUNT_DESC)
        assert [tx.id for tx in ascending] == ["b", "a", "c"]
        assert [tx.id for tx in descending] == ["c", "b", "a"]

    def test_input_not_modified(self, snapshot: BudgetSnapshot):
        transactions = list(snapshot.transactions)
        before = list(transactions)
        sort_transactions(transactions, SortOrder.AMOUNT_DESC)
        assert transactions == before
