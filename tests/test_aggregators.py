"""Tests for the balance and budget aggregators."""

import pytest
from datetime import date
from decimal import Decimal

from duwit.core import (
    budget_status,
    budgets_by_category,
    compute_balance_snapshot,
    compute_budget_summary,
    month_spending,
)
from duwit.models.finance import (
    EXPENSE_CATEGORIES,
    Account,
    Budget,
    BudgetStatus,
    Category,
    TransactionType,
)

from tests.conftest import make_transaction


TODAY = date(2024, 6, 20)


class TestBalanceSnapshot:
    """Tests for compute_balance_snapshot."""

    def test_empty_inputs(self):
        snapshot = compute_balance_snapshot([], [])
        assert snapshot.account_balances == {}
        assert snapshot.total_income == Decimal("0")
        assert snapshot.total_expense == Decimal("0")
        assert snapshot.total_balance == Decimal("0")

    def test_expense_reduces_account_balance(self):
        """A (100,000) and B (0); expense 20,000 on A."""
        accounts = [
            Account(id="acc-a", name="A", initial_balance=Decimal("100000")),
            Account(id="acc-b", name="B"),
        ]
        transactions = [make_transaction(20000, account_id="acc-a")]

        snapshot = compute_balance_snapshot(accounts, transactions)

        assert snapshot.balance_of("acc-a") == Decimal("80000")
        assert snapshot.balance_of("acc-b") == Decimal("0")
        assert snapshot.total_balance == Decimal("80000")
        assert snapshot.total_expense == Decimal("20000")
        assert snapshot.total_income == Decimal("0")

    def test_income_increases_account_balance(self):
        accounts = [Account(id="acc-a", name="A")]
        transactions = [
            make_transaction(500000, TransactionType.INCOME, account_id="acc-a"),
            make_transaction(25000, account_id="acc-a"),
        ]
        snapshot = compute_balance_snapshot(accounts, transactions)
        assert snapshot.balance_of("acc-a") == Decimal("475000")
        assert snapshot.total_income == Decimal("500000")

    def test_totals_are_not_date_filtered(self):
        accounts = [Account(id="acc-a", name="A")]
        transactions = [
            make_transaction(10, occurred_on=date(2020, 1, 1)),
            make_transaction(20, occurred_on=date(2030, 1, 1)),
        ]
        snapshot = compute_balance_snapshot(accounts, transactions)
        assert snapshot.total_expense == Decimal("30")

    def test_unknown_account_counts_only_in_totals(self):
        """A transaction of a missing account never shows up per account."""
        accounts = [Account(id="acc-a", name="A", initial_balance=Decimal("1000"))]
        transactions = [
            make_transaction(300, account_id="acc-a"),
            make_transaction(200, account_id="acc-gone"),
        ]
        snapshot = compute_balance_snapshot(accounts, transactions)

        assert set(snapshot.account_balances) == {"acc-a"}
        assert snapshot.balance_of("acc-a") == Decimal("700")
        assert snapshot.total_balance == Decimal("700")
        assert snapshot.total_expense == Decimal("500")

    def test_total_balance_is_sum_of_account_balances(self):
        accounts = [
            Account(id="acc-a", name="A", initial_balance=Decimal("50")),
            Account(id="acc-b", name="B", initial_balance=Decimal("-20")),
        ]
        transactions = [
            make_transaction(5, account_id="acc-a"),
            make_transaction(40, TransactionType.INCOME, account_id="acc-b"),
        ]
        snapshot = compute_balance_snapshot(accounts, transactions)
        assert snapshot.total_balance == sum(snapshot.account_balances.values())
        assert snapshot.total_balance == Decimal("65")

    def test_balance_of_unknown_account_is_zero(self):
        assert compute_balance_snapshot([], []).balance_of("nope") == Decimal("0")


class TestBudgetStatus:
    """Tests for the per-category status rules."""

    @pytest.mark.parametrize("spent,limit,expected", [
        (Decimal("50000"), Decimal("0"), BudgetStatus.NO_BUDGET),
        (Decimal("0"), Decimal("100000"), BudgetStatus.ON_TRACK),
        (Decimal("80000"), Decimal("100000"), BudgetStatus.ON_TRACK),
        (Decimal("85000"), Decimal("100000"), BudgetStatus.NEAR_LIMIT),
        (Decimal("100000"), Decimal("100000"), BudgetStatus.NEAR_LIMIT),
        (Decimal("120000"), Decimal("100000"), BudgetStatus.OVER_BUDGET),
    ])
    def test_status(self, spent, limit, expected):
        _, status = budget_status(spent, limit)
        assert status == expected

    def test_percentage(self):
        percentage, _ = budget_status(Decimal("85000"), Decimal("100000"))
        assert percentage == Decimal("85")

    def test_no_budget_percentage_is_zero(self):
        percentage, _ = budget_status(Decimal("50000"), Decimal("0"))
        assert percentage == Decimal("0")

    def test_custom_threshold(self):
        _, status = budget_status(Decimal("60"), Decimal("100"), Decimal("50"))
        assert status == BudgetStatus.NEAR_LIMIT


class TestBudgetSummary:
    """Tests for compute_budget_summary."""

    def test_unbudgeted_spend_is_not_over_budget(self):
        """Food has no budget row; 50,000 spent this month."""
        transactions = [make_transaction(50000, occurred_on=TODAY)]
        summary = compute_budget_summary(transactions, [], today=TODAY)

        line = summary.line_for(Category.FOOD)
        assert line.spent == Decimal("50000")
        assert line.status == BudgetStatus.NO_BUDGET
        assert summary.over_budget == []

    def test_near_limit_then_over(self):
        budgets = [Budget(category=Category.FOOD, limit=Decimal("100000"))]

        near = compute_budget_summary(
            [make_transaction(85000, occurred_on=TODAY)], budgets, today=TODAY,
        )
        assert near.line_for(Category.FOOD).status == BudgetStatus.NEAR_LIMIT
        assert near.line_for(Category.FOOD).percentage == Decimal("85")

        over = compute_budget_summary(
            [make_transaction(120000, occurred_on=TODAY)], budgets, today=TODAY,
        )
        assert over.line_for(Category.FOOD).status == BudgetStatus.OVER_BUDGET
        assert [line.category for line in over.over_budget] == [Category.FOOD]

    def test_one_line_per_expense_category(self):
        summary = compute_budget_summary([], [], today=TODAY)
        assert [line.category for line in summary.lines] == list(EXPENSE_CATEGORIES)
        assert all(line.spent == Decimal("0") for line in summary.lines)

    def test_only_current_month_counts(self):
        transactions = [
            make_transaction(10000, occurred_on=date(2024, 6, 1)),
            make_transaction(20000, occurred_on=date(2024, 5, 31)),
            make_transaction(40000, occurred_on=date(2023, 6, 15)),
        ]
        summary = compute_budget_summary(transactions, [], today=TODAY)
        assert summary.line_for(Category.FOOD).spent == Decimal("10000")
        assert summary.month == date(2024, 6, 1)

    def test_income_is_ignored(self):
        transactions = [make_transaction(10000, TransactionType.INCOME, occurred_on=TODAY)]
        summary = compute_budget_summary(transactions, [], today=TODAY)
        assert summary.total_spent == Decimal("0")

    def test_rollup_covers_only_budgeted_categories(self):
        budgets = {
            Category.FOOD: Budget(category=Category.FOOD, limit=Decimal("100000")),
            Category.TRANSPORT: Budget(category=Category.TRANSPORT, limit=Decimal("0")),
        }
        transactions = [
            make_transaction(50000, category=Category.FOOD, occurred_on=TODAY),
            make_transaction(70000, category=Category.TRANSPORT, occurred_on=TODAY),
            make_transaction(30000, category=Category.HEALTH, occurred_on=TODAY),
        ]
        summary = compute_budget_summary(transactions, budgets, today=TODAY)

        assert summary.total_allocated == Decimal("100000")
        assert summary.total_spent == Decimal("50000")
        assert summary.overall_percentage == Decimal("50")
        assert summary.line_for(Category.TRANSPORT).status == BudgetStatus.NO_BUDGET

    def test_no_budgets_overall_is_zero(self):
        summary = compute_budget_summary([make_transaction(1, occurred_on=TODAY)], [], today=TODAY)
        assert summary.total_allocated == Decimal("0")
        assert summary.overall_percentage == Decimal("0")

    def test_near_limit_percent_is_configurable(self):
        budgets = [Budget(category=Category.FOOD, limit=Decimal("100"))]
        transactions = [make_transaction(60, occurred_on=TODAY)]
        summary = compute_budget_summary(transactions, budgets, today=TODAY, near_limit_percent=50.0)
        assert summary.line_for(Category.FOOD).status == BudgetStatus.NEAR_LIMIT


class TestBudgetHelpers:
    """Tests for the budget helper functions."""

    def test_budgets_by_category_last_row_wins(self):
        budgets = budgets_by_category([
            Budget(category=Category.FOOD, limit=Decimal("1")),
            Budget(category=Category.FOOD, limit=Decimal("2")),
        ])
        assert budgets[Category.FOOD].limit == Decimal("2")

    def test_month_spending(self):
        transactions = [
            make_transaction(5, category=Category.FOOD, occurred_on=TODAY),
            make_transaction(7, category=Category.FOOD, occurred_on=TODAY),
            make_transaction(3, category=Category.HEALTH, occurred_on=TODAY),
        ]
        assert month_spending(transactions, TODAY) == {
            Category.FOOD: Decimal("12"),
            Category.HEALTH: Decimal("3"),
        }
