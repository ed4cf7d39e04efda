"""DexScreener API client used as a price source.

Rate Limits: ~300 requests/minute (no auth required)
"""

import structlog

from solwatch.config.settings import Settings
from solwatch.services.base import BaseAPIClient
from solwatch.services.dexscreener.models import TokenPair, TokenPairsResponse

log = structlog.get_logger(__name__)

# /latest/dex/tokens accepts up to 30 comma-separated addresses
MAX_ADDRESSES_PER_CALL = 30


def best_pair(pairs: list[TokenPair]) -> TokenPair | None:
    """Pair with the highest 24h volume among those carrying a price."""
    priced = [p for p in pairs if p.price is not None]
    if not priced:
        return None
    return max(priced, key=lambda p: p.volume_h24)


class DexScreenerClient(BaseAPIClient):
    """DexScreener pair lookup.

    Endpoint used:
        - GET /latest/dex/tokens/{addresses} - pairs for up to 30 tokens

    Example:
        client = DexScreenerClient(settings)
        pairs = await client.get_pairs([mint])
        price = best_pair(pairs[mint]).price
    """

    SOLANA_CHAIN_ID = "solana"

    def __init__(self, settings: Settings) -> None:
        super().__init__(
            service_name="dexscreener",
            base_url=settings.dexscreener_base_url,
            timeout=settings.price_source_timeout_seconds,
            max_retries=1,
        )

    async def get_pairs(self, mints: list[str]) -> dict[str, list[TokenPair]]:
        """Solana pairs keyed by the mint they price (base token).

        Raises:
            ExternalServiceError: If a request fails.
        """
        result: dict[str, list[TokenPair]] = {mint: [] for mint in mints}
        wanted = set(mints)

        for start in range(0, len(mints), MAX_ADDRESSES_PER_CALL):
            chunk = mints[start : start + MAX_ADDRESSES_PER_CALL]
            data = await self.get_json(f"/latest/dex/tokens/{','.join(chunk)}")
            response = TokenPairsResponse.model_validate(data or {})

            for pair in response.pairs or []:
                if pair.chain_id != self.SOLANA_CHAIN_ID:
                    continue
                if pair.base_token.address in wanted:
                    result[pair.base_token.address].append(pair)

        log.debug(
            "dexscreener_pairs_fetched",
            mints=len(mints),
            with_pairs=sum(1 for pairs in result.values() if pairs),
        )
        return result
