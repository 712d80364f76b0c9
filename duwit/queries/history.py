"""
Transaction History Queries

Executes a TransactionQuery against the in-memory transaction list:
filter first, then sort, then cut to the limit.

Filtering is deterministic and never touches the backend; the history
view always works on the cached list.
"""

from collections.abc import Iterable

from duwit.models.finance import SortOrder, Transaction, TransactionQuery


def _matches(transaction: Transaction, query: TransactionQuery) -> bool:
    if query.search:
        # Blank descriptions are searchable by their category name
        haystack = transaction.description or transaction.category.value
        if query.search.lower() not in haystack.lower():
            return False
    if query.category is not None and transaction.category != query.category:
        return False
    if query.account_id is not None and transaction.account_id != query.account_id:
        return False
    if query.date_from and transaction.occurred_on < query.date_from:
        return False
    if query.date_to and transaction.occurred_on > query.date_to:
        return False
    return True


def _sort(transactions: list[Transaction], order: SortOrder) -> list[Transaction]:
    if order == SortOrder.AMOUNT_DESC:
        return sorted(transactions, key=lambda t: t.amount, reverse=True)
    if order == SortOrder.AMOUNT_ASC:
        return sorted(transactions, key=lambda t: t.amount)
    if order == SortOrder.DATE_ASC:
        return sorted(transactions, key=lambda t: (t.occurred_on, t.created_at))
    return sorted(transactions, key=lambda t: (t.occurred_on, t.created_at), reverse=True)


def run_query(
    transactions: Iterable[Transaction],
    query: TransactionQuery,
) -> list[Transaction]:
    """
    Filter and sort transactions for the history view.

    Args:
        transactions: Transactions to search
        query: Filters, sort order and optional limit

    Returns:
        Matching transactions in the requested order
    """
    results = _sort([t for t in transactions if _matches(t, query)], query.sort)
    if query.limit is not None:
        results = results[:query.limit]
    return results
