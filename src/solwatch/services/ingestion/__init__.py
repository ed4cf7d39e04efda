"""Signature ingestion: intake, queue, processing and drain loop."""

from solwatch.services.ingestion.monitor import WalletMonitor
from solwatch.services.ingestion.processor import TransactionProcessor
from solwatch.services.ingestion.queue import SignatureQueue
from solwatch.services.ingestion.worker import IngestionWorker

__all__ = ["IngestionWorker", "SignatureQueue", "TransactionProcessor", "WalletMonitor"]
