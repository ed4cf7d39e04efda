"""Helius API client for token metadata."""

import structlog

from solwatch.config.settings import Settings
from solwatch.core.exceptions import ConfigurationError
from solwatch.services.base import BaseAPIClient
from solwatch.services.helius.models import HeliusTokenMetadata

log = structlog.get_logger(__name__)

MAX_MINTS_PER_CALL = 100


class HeliusClient(BaseAPIClient):
    """Async client for the Helius token metadata API.

    A single HTTP attempt per call; the metadata resolver wraps calls in
    its retry policy.

    Example:
        client = HeliusClient(settings)
        metadata = await client.get_token_metadata(["EPjF..."])
        await client.close()
    """

    def __init__(self, settings: Settings) -> None:
        self.api_key = settings.helius_api_key.get_secret_value()
        super().__init__(
            service_name="helius",
            base_url=settings.helius_api_url,
            timeout=10.0,
            headers={"Content-Type": "application/json"},
            max_retries=1,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def get_token_metadata(self, mints: list[str]) -> dict[str, HeliusTokenMetadata]:
        """Metadata keyed by mint; mints Helius does not know are absent.

        Raises:
            ConfigurationError: If no API key is configured.
            ExternalServiceError: If the request fails.
        """
        if not self.enabled:
            raise ConfigurationError("HELIUS_API_KEY is not set")

        result: dict[str, HeliusTokenMetadata] = {}
        for start in range(0, len(mints), MAX_MINTS_PER_CALL):
            chunk = mints[start : start + MAX_MINTS_PER_CALL]
            data = await self.post_json(
                "/v0/token-metadata",
                params={"api-key": self.api_key},
                json={"mintAccounts": chunk, "includeOffChain": True, "disableCache": False},
            )
            if not isinstance(data, list):
                log.warning("helius_metadata_unexpected_format", data_type=type(data).__name__)
                continue
            for entry in data:
                metadata = HeliusTokenMetadata.from_api(entry)
                if metadata.mint:
                    result[metadata.mint] = metadata

        log.debug("helius_metadata_fetched", requested=len(mints), found=len(result))
        return result
