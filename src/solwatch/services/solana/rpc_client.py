"""Solana JSON-RPC client.

Extends BaseAPIClient for the circuit breaker. Transaction fetches use a
single HTTP attempt; the transaction processor applies its own retry
policy around them.
"""

from typing import Any

import structlog

from solwatch.core.utils import short
from solwatch.config.settings import Settings
from solwatch.core.exceptions import ExternalServiceError
from solwatch.services.base import BaseAPIClient

log = structlog.get_logger(__name__)


class SolanaRPCClient(BaseAPIClient):
    """Client for the Solana RPC methods the pipeline consumes.

    Example:
        client = SolanaRPCClient(settings)
        tx = await client.get_transaction("5VfY...")
        await client.close()
    """

    def __init__(self, settings: Settings) -> None:
        super().__init__(
            service_name="solana-rpc",
            base_url=settings.solana_rpc_url,
            timeout=settings.rpc_timeout_seconds,
            headers={"Content-Type": "application/json"},
            max_retries=1,
            circuit_breaker_threshold=10,
            circuit_breaker_cooldown=15,
        )
        self._request_id = 0

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Invoke a JSON-RPC method and return its `result`.

        Raises:
            ExternalServiceError: On transport failure or a JSON-RPC error object.
        """
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        data = await self.post_json("", json=payload)

        error = data.get("error") if isinstance(data, dict) else None
        if error:
            log.warning(
                "solana_rpc_error",
                method=method,
                code=error.get("code"),
                message=error.get("message"),
            )
            raise ExternalServiceError(
                service=self.service_name,
                message=f"{method}: {error.get('message', 'unknown error')}",
            )
        return data.get("result") if isinstance(data, dict) else None

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        """Fetch a parsed transaction, or None if the node does not have it."""
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": "confirmed",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            log.debug("solana_transaction_not_found", signature=short(signature, 16))
        return result

    async def get_signatures_for_address(
        self,
        address: str,
        limit: int = 20,
        before: str | None = None,
    ) -> list[dict[str, Any]]:
        """Most recent signatures mentioning an address, newest first."""
        options: dict[str, Any] = {"limit": limit, "commitment": "confirmed"}
        if before:
            options["before"] = before
        result = await self._call("getSignaturesForAddress", [address, options])
        return list(result or [])

    async def get_account_info(
        self, address: str, encoding: str = "jsonParsed"
    ) -> dict[str, Any] | None:
        """Account value, or None if the account does not exist."""
        result = await self._call("getAccountInfo", [address, {"encoding": encoding}])
        if not result:
            return None
        return result.get("value")

    async def get_mint_decimals(self, mint: str) -> int | None:
        """Decimals read from the mint account itself.

        Returns None when the account is missing or is not a parsed mint.
        """
        value = await self.get_account_info(mint)
        if not value:
            return None

        data = value.get("data")
        if not isinstance(data, dict):
            return None
        parsed = data.get("parsed") or {}
        if parsed.get("type") != "mint":
            return None

        decimals = (parsed.get("info") or {}).get("decimals")
        return int(decimals) if decimals is not None else None

    async def get_token_account_balance(self, account: str) -> dict[str, Any] | None:
        """`uiTokenAmount`-shaped balance of an SPL token account."""
        result = await self._call("getTokenAccountBalance", [account])
        if not result:
            return None
        return result.get("value")
