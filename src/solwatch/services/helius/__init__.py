"""Helius API integration."""

from solwatch.services.helius.client import HeliusClient
from solwatch.services.helius.models import HeliusTokenMetadata, WebhookTransaction

__all__ = ["HeliusClient", "HeliusTokenMetadata", "WebhookTransaction"]
