"""Query execution package."""

from duwit.queries.history import run_query

__all__ = ["run_query"]
