"""Live notification fan-out."""

from solwatch.services.notify.broker import TransactionBroker

__all__ = ["TransactionBroker"]
