"""Transaction persistence."""

from solwatch.services.persistence.store import TransactionStore

__all__ = ["TransactionStore"]
