"""
Audit Logger

DESIGN DECISION: Every mutation and every failure in the store is logged.
This provides:
1. Traceability of what changed
2. Debugging capability when the backend misbehaves
3. A visible record of writes that silently did not take effect

The audit logger:
- Writes structured JSON through structlog
- Never raises (a logging failure must not break the action being logged)
"""

from typing import Any, Optional

import structlog

from duwit.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Keeps the most recent events in memory so the settings page can
    show them, and writes every event to the structured log.
    """

    def __init__(self, keep_last: int = 200):
        self._logger = structlog.get_logger("duwit.audit")
        self._keep_last = keep_last
        self._recent: list[AuditEvent] = []

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._recent))

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._recent.append(event)
        if len(self._recent) > self._keep_last:
            del self._recent[0]

        log_dict = event.to_log_dict()
        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # The event is still kept in memory
            self._logger.error("audit_log_failed", error=str(e), event_id=log_dict["event_id"])

    def log_loaded(
        self,
        user_id: str,
        accounts: int,
        transactions: int,
        budgets: int,
    ) -> None:
        """Log a completed bulk fetch."""
        self.log(AuditEventBuilder.data_loaded(user_id, accounts, transactions, budgets))

    def log_load_failed(self, user_id: str, error_message: str) -> None:
        self.log(AuditEventBuilder.load_failed(user_id, error_message))

    def log_created(
        self,
        entity_type: str,
        entity_id: str,
        user_id: Optional[str],
        **details: Any,
    ) -> None:
        """Log a confirmed create (or budget upsert)."""
        self.log(AuditEventBuilder.entity_created(entity_type, entity_id, user_id, details))

    def log_account_updated(
        self,
        account_id: str,
        user_id: Optional[str],
        changed_fields: list[str],
    ) -> None:
        self.log(AuditEventBuilder.account_updated(account_id, user_id, changed_fields))

    def log_deleted(
        self,
        entity_type: str,
        entity_id: str,
        user_id: Optional[str],
    ) -> None:
        self.log(AuditEventBuilder.entity_deleted(entity_type, entity_id, user_id))

    def log_cascade(
        self,
        account_id: str,
        user_id: Optional[str],
        transaction_count: int,
    ) -> None:
        """Log transactions removed together with their account."""
        self.log(AuditEventBuilder.cascade_deleted(account_id, user_id, transaction_count))

    def log_validation_failed(self, entity_type: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_failed(entity_type, issues))

    def log_skipped(self, operation: str, reason: str) -> None:
        """Log a write that was a no-op because no backend is configured."""
        self.log(AuditEventBuilder.mutation_skipped(operation, reason))

    def log_stale(self, operation: str, issued_token: int, current_token: int) -> None:
        self.log(AuditEventBuilder.stale_response_discarded(operation, issued_token, current_token))

    def log_backend_unavailable(self, backend: str, error_message: str) -> None:
        self.log(AuditEventBuilder.backend_unavailable(backend, error_message))

    def log_storage_error(
        self,
        operation: str,
        table: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a failed backend request."""
        self.log(AuditEventBuilder.storage_error(operation, table, error_message, user_id))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an unexpected error."""
        self.log(AuditEventBuilder.system_error(error_type, error_message, details))
