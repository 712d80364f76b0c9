"""
Core Data Models for Duwit

These models define the schemas for everything the tracker keeps:
wallets, transactions and budgets, plus the derived (never persisted)
views computed from them.

DESIGN DECISION: Entities are frozen Pydantic v2 models.
Python attributes are snake_case; the serialized in-memory shape is
camelCase (initialBalance, accountId, createdAt) through an alias
generator. Backend column names are handled separately in
services/storage/mapping.py so the entities never depend on them.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate an opaque unique identity."""
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. The amount itself is always positive."""
    INCOME = "income"
    EXPENSE = "expense"


class AccountType(str, Enum):
    """Kind of funding source."""
    BANK = "bank"
    EWALLET = "e-wallet"
    CASH = "cash"


class Category(str, Enum):
    """
    Transaction categories.

    Income and expense use distinct subsets; OTHERS belongs to both.
    """
    FOOD = "Food"
    TRANSPORT = "Transport"
    LEISURE = "Leisure"
    HOUSING = "Housing"
    SHOPPING = "Shopping"
    HEALTH = "Health"
    SALARY = "Salary"
    FREELANCE = "Freelance"
    GIFT = "Gift"
    INVESTMENT = "Investment"
    BONUS = "Bonus"
    OTHERS = "Others"


EXPENSE_CATEGORIES: tuple[Category, ...] = (
    Category.FOOD,
    Category.TRANSPORT,
    Category.LEISURE,
    Category.HOUSING,
    Category.SHOPPING,
    Category.HEALTH,
    Category.OTHERS,
)

INCOME_CATEGORIES: tuple[Category, ...] = (
    Category.SALARY,
    Category.FREELANCE,
    Category.GIFT,
    Category.INVESTMENT,
    Category.BONUS,
    Category.OTHERS,
)


def categories_for(transaction_type: TransactionType) -> tuple[Category, ...]:
    """Categories a transaction of the given direction may use."""
    if transaction_type == TransactionType.INCOME:
        return INCOME_CATEGORIES
    return EXPENSE_CATEGORIES


class BudgetStatus(str, Enum):
    """Where a category stands against its monthly limit."""
    ON_TRACK = "on_track"
    NEAR_LIMIT = "near_limit"
    OVER_BUDGET = "over_budget"
    NO_BUDGET = "no_budget"  # limit is 0 / unset


class SortOrder(str, Enum):
    """Sort orders offered by the history view."""
    DATE_DESC = "date_desc"
    DATE_ASC = "date_asc"
    AMOUNT_DESC = "amount_desc"
    AMOUNT_ASC = "amount_asc"


# =============================================================================
# ENTITIES
# =============================================================================

class FinanceModel(BaseModel):
    """Base for entities and derived views (camelCase when serialized)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )


class Account(FinanceModel):
    """
    A wallet: a named funding source with a baseline balance.

    The current balance is NOT stored here. It is always derived
    from the transaction log (see core/balances.py).
    """

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque unique account ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, e.g. 'BCA' or 'Dompet'"
    )
    type: AccountType = Field(
        default=AccountType.BANK,
        description="Kind of funding source"
    )
    initial_balance: Decimal = Field(
        default=Decimal("0"),
        description="Balance before any tracked transaction (may be negative)"
    )


class Transaction(FinanceModel):
    """
    A single dated income or expense record against one account.

    Transactions are immutable once created: there is no edit flow,
    only create and delete.
    """

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque unique transaction ID"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount; direction is carried by `type`"
    )
    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )
    category: Category = Field(
        default=Category.OTHERS,
        description="Category from the subset allowed for `type`"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Optional free text"
    )
    occurred_on: date = Field(
        default_factory=date.today,
        alias="date",
        description="Effective date, used for all aggregation"
    )
    account_id: str = Field(
        ...,
        min_length=1,
        description="Owning account"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="System-assigned creation time (audit display only)"
    )

    @field_validator('description', mode='before')
    @classmethod
    def none_description_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @model_validator(mode='after')
    def validate_category(self) -> 'Transaction':
        """The category must belong to the subset for the direction."""
        if self.category not in categories_for(self.type):
            raise ValueError(
                f"Category {self.category.value} is not valid for {self.type.value} transactions"
            )
        return self

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by the direction."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class Budget(FinanceModel):
    """
    Monthly spending ceiling for one expense category.

    The category is the natural key: there is never more than one
    budget per category. A limit of 0 means "no budget set".
    """

    category: Category = Field(
        ...,
        description="Expense category this limit applies to"
    )
    limit: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Monthly limit; 0 means unset"
    )

    @field_validator('limit', mode='before')
    @classmethod
    def missing_limit_is_zero(cls, v: Any) -> Any:
        if v is None or v == "":
            return Decimal("0")
        return v

    @field_validator('category')
    @classmethod
    def expense_category_only(cls, v: Category) -> Category:
        if v not in EXPENSE_CATEGORIES:
            raise ValueError(f"Budgets can only be set on expense categories, got {v.value}")
        return v

    @property
    def is_set(self) -> bool:
        return self.limit > 0


# =============================================================================
# DERIVED VIEWS (never persisted)
# =============================================================================

class BalanceSnapshot(FinanceModel):
    """Derived balances per account and in aggregate."""

    account_balances: dict[str, Decimal] = Field(default_factory=dict)
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    total_balance: Decimal = Decimal("0")

    def balance_of(self, account_id: str) -> Decimal:
        """Balance for an account, 0 if the account is unknown."""
        return self.account_balances.get(account_id, Decimal("0"))


class BudgetLine(FinanceModel):
    """Current-month spend against the limit of one category."""

    category: Category
    spent: Decimal = Decimal("0")
    limit: Decimal = Decimal("0")
    percentage: Decimal = Field(
        default=Decimal("0"),
        description="spent / limit * 100, 0 when no budget is set"
    )
    status: BudgetStatus = BudgetStatus.NO_BUDGET

    @property
    def remaining(self) -> Decimal:
        """Room left under the limit (negative when over)."""
        return self.limit - self.spent


class BudgetSummary(FinanceModel):
    """Budget lines for every expense category plus the global rollup."""

    month: date = Field(
        ...,
        description="First day of the month the figures cover"
    )
    lines: list[BudgetLine] = Field(default_factory=list)
    total_allocated: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    overall_percentage: Decimal = Decimal("0")

    def line_for(self, category: Category) -> Optional[BudgetLine]:
        for line in self.lines:
            if line.category == category:
                return line
        return None

    @property
    def over_budget(self) -> list[BudgetLine]:
        return [line for line in self.lines if line.status == BudgetStatus.OVER_BUDGET]


class CategoryShare(FinanceModel):
    """All-time expense total of one category and its share of spending."""

    category: Category
    amount: Decimal
    percentage: Decimal


class DailyFlow(FinanceModel):
    """Income and expense summed over one date."""

    day: date
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


# =============================================================================
# FORM INPUT MODELS (raw, unvalidated user input)
# =============================================================================

class TransactionForm(BaseModel):
    """
    Raw values from the transaction form.

    The amount stays text until InputValidator parses it, since users
    type grouped numbers like "1.500.000".
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount_text: str = ""
    type: TransactionType = TransactionType.EXPENSE
    category: Category = Category.OTHERS
    description: str = ""
    occurred_on: Optional[date] = None
    account_id: Optional[str] = None


class AccountForm(BaseModel):
    """Raw values from the wallet form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    type: AccountType = AccountType.BANK
    initial_balance_text: str = ""


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one form submission.

    Any error-level issue blocks the backend call.
    """

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def messages_for(self, field: str) -> list[str]:
        """Messages to show inline next to one form field."""
        return [issue.message for issue in self.issues if issue.field == field]


# =============================================================================
# QUERY AND RESULT MODELS
# =============================================================================

class TransactionQuery(BaseModel):
    """Filters and ordering for the transaction history view."""

    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive match on description (or category when blank)"
    )
    category: Optional[Category] = None
    account_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort: SortOrder = SortOrder.DATE_DESC
    limit: Optional[int] = Field(
        default=None,
        ge=1
    )

    @model_validator(mode='after')
    def validate_date_range(self) -> 'TransactionQuery':
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to cannot be before date_from")
        return self

    @property
    def has_filters(self) -> bool:
        return any([
            self.search,
            self.category is not None,
            self.account_id is not None,
            self.date_from is not None,
            self.date_to is not None,
            self.sort != SortOrder.DATE_DESC,
        ])


class MutationResult(BaseModel):
    """
    Outcome of one create/update/delete.

    success is True only when the backend confirmed the write and the
    local cache was patched.
    """

    success: bool
    entity: Any = Field(
        default=None,
        description="The created/updated/deleted entity, if any"
    )
    skipped: bool = Field(
        default=False,
        description="True when no backend is configured and the write was a no-op"
    )
    validation: Optional[ValidationResult] = None
    error_message: Optional[str] = None
    removed_count: int = Field(
        default=0,
        ge=0,
        description="Rows removed (cascade delete reports its transactions here)"
    )
