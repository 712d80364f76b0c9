"""
Finance Store

The in-memory cache of one user's remote data plus the mutation layer
that keeps it in step with the backend.

DESIGN DECISION: Writes are pessimistic.
1. Build and validate the entity
2. Persist it through the backend table
3. Only on confirmed success, patch the local cache

Derived views (balances, budgets, breakdowns) are never cached: every
read recomputes them from the current accounts/transactions/budgets.

STALE RESPONSES: every load and mutation captures the current context
token before awaiting the backend. Only reset() advances the token (a
load for another user resets first); a response that comes back under
an older token is logged and discarded instead of being applied.

REFRESHES: a load for the same user keeps the token, so writes in
flight still land. Loads carry a generation number so only the newest
one installs its rows, and writes confirmed while a load was in flight
are replayed on top of the rows it fetched.

DEGRADED MODE: without a backend every mutation is a logged no-op that
returns MutationResult(skipped=True). Nothing raises.
"""

import asyncio
from collections.abc import Callable, Iterable
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from duwit.audit import AuditLogger
from duwit.config import AppSettings, Settings, get_settings
from duwit.core import (
    category_breakdown,
    compute_balance_snapshot,
    compute_budget_summary,
    daily_flows,
)
from duwit.models.finance import (
    Account,
    AccountForm,
    AccountType,
    BalanceSnapshot,
    Budget,
    BudgetSummary,
    Category,
    CategoryShare,
    DailyFlow,
    MutationResult,
    Transaction,
    TransactionForm,
    TransactionQuery,
    TransactionType,
    ValidationResult,
)
from duwit.queries import run_query
from duwit.services.storage import (
    DuplicateError,
    GoogleSheetsClient,
    InMemoryTable,
    NotFoundError,
    Row,
    StorageError,
    TableStorageInterface,
    create_sheets_tables,
)
from duwit.services.storage.mapping import (
    ACCOUNT_FIELD_COLUMNS,
    account_from_row,
    account_to_row,
    budget_from_row,
    budget_to_row,
    partial_account_row,
    transaction_from_row,
    transaction_to_row,
)
from duwit.validation import InputValidator, parse_amount


NO_BACKEND_WARNING = "No storage backend is configured. Changes will not be saved."


def _newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(
        transactions,
        key=lambda t: (t.occurred_on, t.created_at),
        reverse=True,
    )


class FinanceStore:
    """
    Cache + mutation layer for accounts, transactions and budgets.

    Budgets are kept in a dict keyed by category, so there can never
    be two budgets for the same category.
    """

    def __init__(
        self,
        accounts_table: Optional[TableStorageInterface] = None,
        transactions_table: Optional[TableStorageInterface] = None,
        budgets_table: Optional[TableStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        validator: Optional[InputValidator] = None,
        user_id: Optional[str] = None,
        backend_warning: Optional[str] = None,
    ):
        self._settings = settings or get_settings().app
        self._accounts_table = accounts_table
        self._transactions_table = transactions_table
        self._budgets_table = budgets_table
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or InputValidator(self._settings)

        self._user_id = user_id or self._settings.default_user_id
        self._accounts: dict[str, Account] = {}
        self._transactions: list[Transaction] = []
        self._budgets: dict[Category, Budget] = {}

        self._token = 0
        self._pending_loads = 0
        self._load_generation = 0

        # Cache patches confirmed while a load is in flight, by write number
        self._write_count = 0
        self._patches_during_load: list[tuple[int, Callable[[], object]]] = []

        if backend_warning is None and not self.is_persistent:
            backend_warning = NO_BACKEND_WARNING
        self.backend_warning = backend_warning

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def is_persistent(self) -> bool:
        """True when all three backend tables are available."""
        return None not in (
            self._accounts_table,
            self._transactions_table,
            self._budgets_table,
        )

    @property
    def is_loading(self) -> bool:
        """True while a bulk fetch is outstanding."""
        return self._pending_loads > 0

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def token(self) -> int:
        """Current context token."""
        return self._token

    @property
    def audit(self) -> AuditLogger:
        return self._audit

    @property
    def accounts(self) -> list[Account]:
        """Accounts in creation order."""
        return list(self._accounts.values())

    @property
    def transactions(self) -> list[Transaction]:
        """Transactions, most recently added first."""
        return list(self._transactions)

    @property
    def budgets(self) -> dict[Category, Budget]:
        return dict(self._budgets)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    def transactions_for_account(self, account_id: str) -> list[Transaction]:
        return [t for t in self._transactions if t.account_id == account_id]

    def reset(self) -> None:
        """
        Drop all cached data and invalidate outstanding requests.

        Call when the user signs out or navigates away from their data.
        """
        self._token += 1
        self._accounts = {}
        self._transactions = []
        self._budgets = {}

    # =========================================================================
    # DERIVED VIEWS (recomputed on every read)
    # =========================================================================

    @property
    def snapshot(self) -> BalanceSnapshot:
        """Balances per account and in total."""
        return compute_balance_snapshot(self._accounts.values(), self._transactions)

    def budget_summary(self, today: Optional[date] = None) -> BudgetSummary:
        """This month's spend against each expense category's limit."""
        return compute_budget_summary(
            self._transactions,
            self._budgets,
            today=today,
            near_limit_percent=self._settings.near_limit_percent,
        )

    def category_breakdown(self) -> list[CategoryShare]:
        return category_breakdown(self._transactions)

    def daily_flows(self, days: Optional[int] = None) -> list[DailyFlow]:
        return daily_flows(self._transactions, days or self._settings.chart_days)

    def history(self, query: Optional[TransactionQuery] = None) -> list[Transaction]:
        """Transactions filtered and sorted for the history view."""
        return run_query(self._transactions, query or TransactionQuery())

    def recent_transactions(self, count: Optional[int] = None) -> list[Transaction]:
        count = count or self._settings.dashboard_recent_count
        return self.history(TransactionQuery(limit=count))

    # =========================================================================
    # READ PATH
    # =========================================================================

    async def load(self, user_id: Optional[str] = None) -> bool:
        """
        Fetch all accounts, transactions and budgets of a user.

        The three tables are requested concurrently. On failure the
        cache is left as it was (or empty, when switching users).

        Returns:
            True if the cache now reflects the backend
        """
        user_id = user_id or self._user_id
        if user_id != self._user_id:
            self.reset()
            self._user_id = user_id
        token = self._token
        self._load_generation += 1
        generation = self._load_generation

        if not self.is_persistent:
            self._audit.log_skipped("load", self.backend_warning)
            return False

        if self._pending_loads == 0:
            self._patches_during_load = []
        writes_before = self._write_count

        self._pending_loads += 1
        try:
            account_rows, transaction_rows, budget_rows = await asyncio.gather(
                self._accounts_table.list_for_user(user_id),
                self._transactions_table.list_for_user(user_id),
                self._budgets_table.list_for_user(user_id),
            )
        except StorageError as e:
            self._audit.log_load_failed(user_id, str(e))
            return False
        finally:
            self._pending_loads -= 1

        if self._is_stale(token, "load"):
            return False
        if generation != self._load_generation:
            # A newer load is in flight and will install its own rows
            self._audit.log_stale("load", generation, self._load_generation)
            return False

        accounts = self._parse_rows(account_rows, account_from_row, "accounts")
        transactions = self._parse_rows(transaction_rows, transaction_from_row, "transactions")
        budgets = self._parse_rows(budget_rows, budget_from_row, "budgets")

        self._accounts = {account.id: account for account in accounts}
        self._transactions = _newest_first(transactions)
        self._budgets = {budget.category: budget for budget in budgets}

        for seq, patch in self._patches_during_load:
            if seq > writes_before:
                patch()

        self._audit.log_loaded(user_id, len(accounts), len(transactions), len(budgets))
        return True

    def _parse_rows(
        self,
        rows: list[Row],
        parser: Callable[[Row], object],
        table: str,
    ) -> list:
        parsed = []
        for row in rows:
            try:
                parsed.append(parser(row))
            except ValueError as e:
                # Malformed rows are skipped, not fatal
                self._audit.log_error(
                    "malformed_row",
                    str(e),
                    {"table": table, "key": row.get("id") or row.get("category")},
                )
        return parsed

    # =========================================================================
    # WRITE PATH HELPERS
    # =========================================================================

    def _skipped(self, operation: str) -> MutationResult:
        self._audit.log_skipped(operation, self.backend_warning or NO_BACKEND_WARNING)
        return MutationResult(
            success=False,
            skipped=True,
            error_message=self.backend_warning,
        )

    def _failed(
        self,
        operation: str,
        table: str,
        error: Exception,
        removed_count: int = 0,
    ) -> MutationResult:
        self._audit.log_storage_error(operation, table, str(error), self._user_id)
        return MutationResult(
            success=False,
            error_message=str(error),
            removed_count=removed_count,
        )

    def _is_stale(self, token: int, operation: str) -> bool:
        if token != self._token:
            self._audit.log_stale(operation, token, self._token)
            return True
        return False

    def _stale_result(self, entity=None) -> MutationResult:
        return MutationResult(
            success=False,
            entity=entity,
            error_message="Discarded: the active data context changed",
        )

    def _rejected(self, entity_type: str, validation: ValidationResult) -> MutationResult:
        self._audit.log_validation_failed(
            entity_type,
            [issue.model_dump() for issue in validation.issues],
        )
        return MutationResult(success=False, validation=validation)

    def _commit(self, patch: Callable[[], object]):
        """
        Apply a confirmed write to the cache.

        Patches must be idempotent: while a load is in flight they are
        kept and applied again on top of the rows that load fetched.
        """
        self._write_count += 1
        if self._pending_loads:
            self._patches_during_load.append((self._write_count, patch))
        return patch()

    def _put_account(self, account: Account) -> None:
        self._accounts[account.id] = account

    def _put_transaction(self, transaction: Transaction) -> None:
        self._transactions = [t for t in self._transactions if t.id != transaction.id]
        self._transactions.insert(0, transaction)

    def _remove_transaction(self, transaction_id: str) -> None:
        self._transactions = [t for t in self._transactions if t.id != transaction_id]

    def _put_budget(self, budget: Budget) -> None:
        self._budgets[budget.category] = budget

    def _remove_account(self, account_id: str) -> int:
        removed = self._drop_transactions_of(account_id)
        self._accounts.pop(account_id, None)
        return removed

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    async def add_account(
        self,
        name: str,
        account_type: AccountType = AccountType.BANK,
        initial_balance: Union[Decimal, int, str] = Decimal("0"),
    ) -> MutationResult:
        """
        Create a wallet.

        Raises:
            pydantic.ValidationError: If the values don't form a valid Account
        """
        account = Account(name=name, type=account_type, initial_balance=initial_balance)
        if not self.is_persistent:
            return self._skipped("add_account")

        token = self._token
        try:
            stored = await self._accounts_table.insert(account_to_row(account, self._user_id))
            account = account_from_row(stored)
        except (StorageError, ValueError) as e:
            return self._failed("add_account", "accounts", e)

        if self._is_stale(token, "add_account"):
            return self._stale_result(account)

        self._commit(lambda: self._put_account(account))
        self._audit.log_created("account", account.id, self._user_id, name=account.name)
        return MutationResult(success=True, entity=account)

    async def update_account(self, account_id: str, **changes) -> MutationResult:
        """
        Change the name, type and/or initial balance of a wallet.

        Raises:
            ValueError: If `changes` names a field that can't be edited
        """
        unknown = set(changes) - set(ACCOUNT_FIELD_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update account fields: {sorted(unknown)}")

        current = self._accounts.get(account_id)
        if current is None:
            return MutationResult(success=False, error_message=f"Account not found: {account_id}")

        updated = Account.model_validate({**current.model_dump(), **changes})
        changed = [field for field in changes if getattr(updated, field) != getattr(current, field)]
        if not changed:
            return MutationResult(success=True, entity=current)

        if not self.is_persistent:
            return self._skipped("update_account")

        token = self._token
        try:
            await self._accounts_table.update(
                self._user_id,
                account_id,
                partial_account_row(updated, changed),
            )
        except StorageError as e:
            return self._failed("update_account", "accounts", e)

        if self._is_stale(token, "update_account"):
            return self._stale_result(updated)

        self._commit(lambda: self._put_account(updated))
        self._audit.log_account_updated(account_id, self._user_id, changed)
        return MutationResult(success=True, entity=updated)

    async def delete_account(self, account_id: str) -> MutationResult:
        """
        Delete a wallet together with every transaction that references it.

        Transactions are removed on the backend first, then the account,
        so the backend never holds transactions of a missing account.
        """
        current = self._accounts.get(account_id)
        if current is None:
            return MutationResult(success=False, error_message=f"Account not found: {account_id}")

        if not self.is_persistent:
            return self._skipped("delete_account")

        token = self._token
        try:
            await self._transactions_table.delete_where(self._user_id, "account_id", account_id)
        except StorageError as e:
            return self._failed("delete_account", "transactions", e)

        try:
            await self._accounts_table.delete(self._user_id, account_id)
        except StorageError as e:
            # The transactions are already gone remotely; mirror that locally
            removed = 0
            if not self._is_stale(token, "delete_account"):
                removed = self._commit(lambda: self._drop_transactions_of(account_id))
                self._audit.log_cascade(account_id, self._user_id, removed)
            return self._failed("delete_account", "accounts", e, removed_count=removed)

        if self._is_stale(token, "delete_account"):
            return self._stale_result(current)

        removed = self._commit(lambda: self._remove_account(account_id))
        self._audit.log_cascade(account_id, self._user_id, removed)
        self._audit.log_deleted("account", account_id, self._user_id)
        return MutationResult(success=True, entity=current, removed_count=removed)

    def _drop_transactions_of(self, account_id: str) -> int:
        before = len(self._transactions)
        self._transactions = [t for t in self._transactions if t.account_id != account_id]
        return before - len(self._transactions)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(
        self,
        amount: Union[Decimal, int, str],
        transaction_type: TransactionType,
        account_id: str,
        category: Category = Category.OTHERS,
        description: str = "",
        occurred_on: Optional[date] = None,
    ) -> MutationResult:
        """
        Record an income or expense.

        The account must exist in the cache at creation time.

        Raises:
            pydantic.ValidationError: If the values don't form a valid Transaction
        """
        if account_id not in self._accounts:
            return MutationResult(success=False, error_message=f"Account not found: {account_id}")

        transaction = Transaction(
            amount=amount,
            type=transaction_type,
            category=category,
            description=description,
            occurred_on=occurred_on or date.today(),
            account_id=account_id,
        )
        if not self.is_persistent:
            return self._skipped("add_transaction")

        token = self._token
        try:
            stored = await self._transactions_table.insert(
                transaction_to_row(transaction, self._user_id)
            )
            transaction = transaction_from_row(stored)
        except (StorageError, ValueError) as e:
            return self._failed("add_transaction", "transactions", e)

        if self._is_stale(token, "add_transaction"):
            return self._stale_result(transaction)

        self._commit(lambda: self._put_transaction(transaction))
        self._audit.log_created(
            "transaction",
            transaction.id,
            self._user_id,
            amount=str(transaction.amount),
            type=transaction.type.value,
            account_id=account_id,
        )
        return MutationResult(success=True, entity=transaction)

    async def delete_transaction(self, transaction_id: str) -> MutationResult:
        """Delete a single transaction."""
        current = next((t for t in self._transactions if t.id == transaction_id), None)
        if current is None:
            return MutationResult(
                success=False,
                error_message=f"Transaction not found: {transaction_id}",
            )

        if not self.is_persistent:
            return self._skipped("delete_transaction")

        token = self._token
        try:
            await self._transactions_table.delete(self._user_id, transaction_id)
        except StorageError as e:
            return self._failed("delete_transaction", "transactions", e)

        if self._is_stale(token, "delete_transaction"):
            return self._stale_result(current)

        self._commit(lambda: self._remove_transaction(transaction_id))
        self._audit.log_deleted("transaction", transaction_id, self._user_id)
        return MutationResult(success=True, entity=current, removed_count=1)

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def save_budget(
        self,
        category: Category,
        limit: Union[Decimal, int, str],
    ) -> MutationResult:
        """
        Set the monthly limit of a category (upsert by category).

        A limit of 0 clears the budget without deleting the row.

        Raises:
            pydantic.ValidationError: If the category or limit is invalid
        """
        budget = Budget(category=category, limit=limit)
        if not self.is_persistent:
            return self._skipped("save_budget")

        row = budget_to_row(budget, self._user_id)
        key = budget.category.value
        changes = {"limit_amount": row["limit_amount"]}
        token = self._token
        try:
            if budget.category in self._budgets:
                operation = "update"
                try:
                    await self._budgets_table.update(self._user_id, key, changes)
                except NotFoundError:
                    operation = "insert"
                    await self._budgets_table.insert(row)
            else:
                operation = "insert"
                try:
                    await self._budgets_table.insert(row)
                except DuplicateError:
                    operation = "update"
                    await self._budgets_table.update(self._user_id, key, changes)
        except StorageError as e:
            return self._failed("save_budget", "budgets", e)

        if self._is_stale(token, "save_budget"):
            return self._stale_result(budget)

        self._commit(lambda: self._put_budget(budget))
        self._audit.log_created(
            "budget",
            key,
            self._user_id,
            limit=str(budget.limit),
            operation=operation,
        )
        return MutationResult(success=True, entity=budget)

    async def delete_budget(self, category: Category) -> MutationResult:
        """Remove the budget row of a category entirely."""
        current = self._budgets.get(category)
        if current is None:
            return MutationResult(success=False, error_message=f"No budget for {category.value}")

        if not self.is_persistent:
            return self._skipped("delete_budget")

        token = self._token
        try:
            await self._budgets_table.delete(self._user_id, category.value)
        except StorageError as e:
            return self._failed("delete_budget", "budgets", e)

        if self._is_stale(token, "delete_budget"):
            return self._stale_result(current)

        self._commit(lambda: self._budgets.pop(category, None))
        self._audit.log_deleted("budget", category.value, self._user_id)
        return MutationResult(success=True, entity=current, removed_count=1)

    # =========================================================================
    # FORM SUBMISSION (validate, then write)
    # =========================================================================

    async def submit_transaction(self, form: TransactionForm) -> MutationResult:
        """Validate the transaction form and record it if valid."""
        validation = self._validator.validate_transaction(form, self._accounts.keys())
        if not validation.is_valid:
            return self._rejected("transaction", validation)

        result = await self.add_transaction(
            amount=parse_amount(form.amount_text),
            transaction_type=form.type,
            account_id=form.account_id,
            category=form.category,
            description=form.description,
            occurred_on=form.occurred_on,
        )
        return result.model_copy(update={"validation": validation})

    async def submit_account(
        self,
        form: AccountForm,
        account_id: Optional[str] = None,
    ) -> MutationResult:
        """
        Validate the wallet form, then create (or edit, given account_id).
        """
        validation = self._validator.validate_account(form)
        if not validation.is_valid:
            return self._rejected("account", validation)

        initial_balance = (
            parse_amount(form.initial_balance_text, allow_negative=True)
            if form.initial_balance_text
            else Decimal("0")
        )
        if account_id is None:
            result = await self.add_account(form.name, form.type, initial_balance)
        else:
            result = await self.update_account(
                account_id,
                name=form.name,
                type=form.type,
                initial_balance=initial_balance,
            )
        return result.model_copy(update={"validation": validation})

    async def submit_budget(self, category: Category, limit_text: str) -> MutationResult:
        """Validate a typed budget limit and save it. Blank clears the budget."""
        validation = self._validator.validate_budget(category, limit_text)
        if not validation.is_valid:
            return self._rejected("budget", validation)

        limit = parse_amount(limit_text) if limit_text and limit_text.strip() else Decimal("0")
        result = await self.save_budget(category, limit)
        return result.model_copy(update={"validation": validation})


def create_store(
    settings: Optional[Settings] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> FinanceStore:
    """
    Factory function to build the store for the configured backend.

    Backend problems are detected here, once. A store without a backend
    still works for reading; its writes become no-ops and it carries a
    backend_warning for the UI.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    audit_logger = audit_logger or AuditLogger()
    backend = app_settings.storage_backend

    tables = (None, None, None)
    warning = None

    if backend == "memory":
        tables = (
            InMemoryTable("accounts"),
            InMemoryTable("transactions"),
            InMemoryTable("budgets", key_column="category"),
        )
    elif backend == "sheets":
        try:
            tables = create_sheets_tables(GoogleSheetsClient(settings.google_sheets))
        except Exception as e:
            # Storage not configured - continue without it
            warning = f"Storage not configured: {e}"
            audit_logger.log_backend_unavailable(backend, str(e))
    else:
        warning = NO_BACKEND_WARNING
        audit_logger.log_backend_unavailable(backend, "storage_backend is 'none'")

    accounts_table, transactions_table, budgets_table = tables
    return FinanceStore(
        accounts_table=accounts_table,
        transactions_table=transactions_table,
        budgets_table=budgets_table,
        audit_logger=audit_logger,
        settings=app_settings,
        backend_warning=warning,
    )
