"""Jupiter price API client used as the second aggregator source."""

from typing import Any

import structlog

from solwatch.config.settings import Settings
from solwatch.services.base import BaseAPIClient

log = structlog.get_logger(__name__)

MAX_IDS_PER_CALL = 50


def _extract_price(entry: Any) -> float | None:
    if not isinstance(entry, dict):
        return None
    raw = entry.get("usdPrice", entry.get("price"))
    try:
        price = float(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None
    return price if price and price > 0 else None


class JupiterPriceClient(BaseAPIClient):
    """Jupiter swap-routing price lookup.

    Endpoint used:
        - GET /price/v3?ids=<mint,...> - USD price per mint
    """

    def __init__(self, settings: Settings) -> None:
        super().__init__(
            service_name="jupiter",
            base_url=settings.jupiter_price_url,
            timeout=settings.price_source_timeout_seconds,
            max_retries=1,
        )

    async def get_prices(self, mints: list[str]) -> dict[str, float]:
        """USD prices for the mints Jupiter knows; unknown mints are absent.

        Raises:
            ExternalServiceError: If a request fails.
        """
        prices: dict[str, float] = {}
        for start in range(0, len(mints), MAX_IDS_PER_CALL):
            chunk = mints[start : start + MAX_IDS_PER_CALL]
            data = await self.get_json("/price/v3", params={"ids": ",".join(chunk)})
            # older v2 responses nest entries under "data"
            entries = data.get("data", data) if isinstance(data, dict) else {}
            for mint in chunk:
                price = _extract_price(entries.get(mint))
                if price is not None:
                    prices[mint] = price

        log.debug("jupiter_prices_fetched", requested=len(mints), found=len(prices))
        return prices
