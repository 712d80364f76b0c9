"""
Data Models Package

This package contains all Pydantic models used in Duwit.
All data flowing through the system must conform to these schemas.
"""

from duwit.models.finance import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    Account,
    AccountForm,
    AccountType,
    BalanceSnapshot,
    Budget,
    BudgetLine,
    BudgetStatus,
    BudgetSummary,
    Category,
    CategoryShare,
    DailyFlow,
    MutationResult,
    SortOrder,
    Transaction,
    TransactionForm,
    TransactionQuery,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    categories_for,
    new_id,
)
from duwit.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "Account",
    "AccountForm",
    "AccountType",
    "BalanceSnapshot",
    "Budget",
    "BudgetLine",
    "BudgetStatus",
    "BudgetSummary",
    "Category",
    "CategoryShare",
    "DailyFlow",
    "MutationResult",
    "SortOrder",
    "Transaction",
    "TransactionForm",
    "TransactionQuery",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "categories_for",
    "new_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
