"""Audit logging package."""

from duwit.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
