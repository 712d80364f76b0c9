"""Tests for history queries and dashboard breakdowns."""

from datetime import date, datetime, timezone
from decimal import Decimal

from duwit.core import category_breakdown, daily_flows
from duwit.models.finance import Category, SortOrder, Transaction, TransactionQuery, TransactionType
from duwit.queries import run_query

from tests.conftest import make_transaction


def _history():
    return [
        make_transaction(25000, category=Category.FOOD, occurred_on=date(2024, 6, 1), description="Nasi goreng"),
        make_transaction(15000, category=Category.TRANSPORT, occurred_on=date(2024, 6, 3), account_id="acc-b"),
        make_transaction(5000000, TransactionType.INCOME, occurred_on=date(2024, 6, 2), description="Gaji Juni"),
        make_transaction(90000, category=Category.FOOD, occurred_on=date(2024, 5, 28), description="Bakso"),
    ]


class TestRunQuery:
    """Tests for run_query."""

    def test_default_is_newest_first(self):
        results = run_query(_history(), TransactionQuery())
        assert [t.occurred_on for t in results] == [
            date(2024, 6, 3), date(2024, 6, 2), date(2024, 6, 1), date(2024, 5, 28),
        ]

    def test_same_day_orders_by_creation(self):
        first = Transaction(
            amount=Decimal("1"), type=TransactionType.EXPENSE, account_id="acc-a",
            occurred_on=date(2024, 6, 1), created_at=datetime(2024, 6, 1, 8, tzinfo=timezone.utc),
        )
        second = Transaction(
            amount=Decimal("2"), type=TransactionType.EXPENSE, account_id="acc-a",
            occurred_on=date(2024, 6, 1), created_at=datetime(2024, 6, 1, 9, tzinfo=timezone.utc),
        )
        assert run_query([first, second], TransactionQuery()) == [second, first]
        assert run_query([second, first], TransactionQuery(sort=SortOrder.DATE_ASC)) == [first, second]

    def test_search_is_case_insensitive(self):
        results = run_query(_history(), TransactionQuery(search="GAJI"))
        assert [t.description for t in results] == ["Gaji Juni"]

    def test_blank_description_searches_category(self):
        results = run_query(_history(), TransactionQuery(search="transport"))
        assert len(results) == 1
        assert results[0].category == Category.TRANSPORT

    def test_filter_by_category_and_account(self):
        assert len(run_query(_history(), TransactionQuery(category=Category.FOOD))) == 2
        assert len(run_query(_history(), TransactionQuery(account_id="acc-b"))) == 1

    def test_date_range_is_inclusive(self):
        query = TransactionQuery(date_from=date(2024, 6, 1), date_to=date(2024, 6, 2))
        assert {t.occurred_on for t in run_query(_history(), query)} == {date(2024, 6, 1), date(2024, 6, 2)}

    def test_sort_by_amount(self):
        desc = run_query(_history(), TransactionQuery(sort=SortOrder.AMOUNT_DESC))
        asc = run_query(_history(), TransactionQuery(sort=SortOrder.AMOUNT_ASC))
        assert desc[0].amount == Decimal("5000000")
        assert asc[0].amount == Decimal("15000")

    def test_limit_applies_after_sort(self):
        results = run_query(_history(), TransactionQuery(sort=SortOrder.AMOUNT_DESC, limit=2))
        assert [t.amount for t in results] == [Decimal("5000000"), Decimal("90000")]

    def test_no_match(self):
        assert run_query(_history(), TransactionQuery(search="zzz")) == []


class TestCategoryBreakdown:
    """Tests for category_breakdown."""

    def test_expenses_only_largest_first(self):
        shares = category_breakdown(_history())
        assert [s.category for s in shares] == [Category.FOOD, Category.TRANSPORT]
        assert shares[0].amount == Decimal("115000")

    def test_percentages_sum_to_hundred(self):
        shares = category_breakdown(_history())
        assert abs(sum(s.percentage for s in shares) - Decimal("100")) < Decimal("0.0001")

    def test_no_expenses(self):
        assert category_breakdown([make_transaction(1, TransactionType.INCOME)]) == []


class TestDailyFlows:
    """Tests for daily_flows."""

    def test_groups_by_date(self):
        flows = daily_flows(_history())
        assert [f.day for f in flows] == [
            date(2024, 5, 28), date(2024, 6, 1), date(2024, 6, 2), date(2024, 6, 3),
        ]
        june_2 = flows[2]
        assert june_2.income == Decimal("5000000")
        assert june_2.expense == Decimal("0")

    def test_keeps_last_distinct_dates(self):
        flows = daily_flows(_history(), days=2)
        assert [f.day for f in flows] == [date(2024, 6, 2), date(2024, 6, 3)]

    def test_empty(self):
        assert daily_flows([]) == []
