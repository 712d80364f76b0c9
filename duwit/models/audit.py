"""
Audit Models for Duwit

Every mutation, bulk load and failure is recorded as an audit event.
This provides:
1. Traceability of what changed and when
2. Debugging information when a backend call fails
3. A record of writes that were skipped or discarded

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every mutation in the store has its own event type.
    """
    # Reads
    DATA_LOADED = "data_loaded"
    LOAD_FAILED = "load_failed"

    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTIONS_CASCADE_DELETED = "transactions_cascade_deleted"

    # Budgets
    BUDGET_SAVED = "budget_saved"
    BUDGET_DELETED = "budget_deleted"

    # Rejections and degraded states
    VALIDATION_FAILED = "validation_failed"
    MUTATION_SKIPPED = "mutation_skipped"
    STALE_RESPONSE_DISCARDED = "stale_response_discarded"
    BACKEND_UNAVAILABLE = "backend_unavailable"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'transaction', 'budget')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID (or natural key) of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="User whose data was touched"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    # User action tracking
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


_CREATED = {
    "account": AuditEventType.ACCOUNT_CREATED,
    "transaction": AuditEventType.TRANSACTION_CREATED,
    "budget": AuditEventType.BUDGET_SAVED,
}

_DELETED = {
    "account": AuditEventType.ACCOUNT_DELETED,
    "transaction": AuditEventType.TRANSACTION_DELETED,
    "budget": AuditEventType.BUDGET_DELETED,
}


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created("account", account.id, user_id)
        event = AuditEventBuilder.storage_error("insert", "accounts", str(exc))
    """

    @staticmethod
    def data_loaded(
        user_id: str,
        accounts: int,
        transactions: int,
        budgets: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_LOADED,
            user_id=user_id,
            description=f"Loaded {accounts} accounts, {transactions} transactions, {budgets} budgets",
            details={
                "accounts": accounts,
                "transactions": transactions,
                "budgets": budgets,
            },
        )

    @staticmethod
    def load_failed(user_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description="Initial data fetch failed",
            error_message=error_message,
        )

    @staticmethod
    def entity_created(
        entity_type: str,
        entity_id: str,
        user_id: Optional[str],
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=_CREATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            description=f"{entity_type.capitalize()} saved: {entity_id}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def account_updated(
        account_id: str,
        user_id: Optional[str],
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            user_id=user_id,
            description=f"Account updated: {', '.join(changed_fields) or 'no changes'}",
            details={
                "changed_fields": changed_fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def entity_deleted(
        entity_type: str,
        entity_id: str,
        user_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=_DELETED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            description=f"{entity_type.capitalize()} deleted: {entity_id}",
            is_user_action=True,
        )

    @staticmethod
    def cascade_deleted(
        account_id: str,
        user_id: Optional[str],
        transaction_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_CASCADE_DELETED,
            entity_type="account",
            entity_id=account_id,
            user_id=user_id,
            description=f"Removed {transaction_count} transactions of deleted account",
            details={
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"{entity_type.capitalize()} input rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def mutation_skipped(operation: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_SKIPPED,
            severity=AuditSeverity.WARNING,
            description=f"Write skipped: {operation}",
            details={
                "operation": operation,
                "reason": reason,
            },
        )

    @staticmethod
    def stale_response_discarded(
        operation: str,
        issued_token: int,
        current_token: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESPONSE_DISCARDED,
            severity=AuditSeverity.WARNING,
            description=f"Discarded stale response for {operation}",
            details={
                "operation": operation,
                "issued_token": issued_token,
                "current_token": current_token,
            },
        )

    @staticmethod
    def backend_unavailable(backend: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKEND_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            description=f"Backend unavailable: {backend}; running without persistence",
            error_message=error_message,
            details={
                "backend": backend,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        table: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Storage error during {operation} on {table}",
            error_message=error_message,
            details={
                "operation": operation,
                "table": table,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
