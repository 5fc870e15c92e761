"""Transaction query package."""

from finvue.queries.executor import TransactionQueryExecutor

__all__ = ["TransactionQueryExecutor"]
