"""Jupiter price API integration."""

from solwatch.services.jupiter.client import JupiterPriceClient

__all__ = ["JupiterPriceClient"]
