"""Raydium API v3 client for liquidity pool discovery.

Only pool identity and vault accounts come from this API; reserves are
read on-chain from the vault token accounts, so no program account byte
layout is decoded here.
"""

from typing import Any

import structlog
from pydantic import BaseModel

from solwatch.config.settings import Settings
from solwatch.services.base import BaseAPIClient

log = structlog.get_logger(__name__)


class PoolInfo(BaseModel):
    """A pool pairing two mints, with the vaults holding its reserves."""

    id: str
    mint_a: str
    mint_b: str
    decimals_a: int
    decimals_b: int
    vault_a: str
    vault_b: str
    tvl: float = 0.0


class RaydiumPoolClient(BaseAPIClient):
    """Raydium pool lookup.

    Endpoints used:
        - GET /pools/info/mint - pools for a mint pair, sorted by liquidity
        - GET /pools/key/ids - vault accounts for pool ids
    """

    def __init__(self, settings: Settings) -> None:
        super().__init__(
            service_name="raydium",
            base_url=settings.raydium_api_url,
            timeout=settings.price_source_timeout_seconds,
            max_retries=1,
        )

    async def find_pools(self, mint_a: str, mint_b: str, limit: int = 3) -> list[PoolInfo]:
        """Deepest pools pairing `mint_a` with `mint_b` (either order).

        Raises:
            ExternalServiceError: If a request fails.
        """
        info = await self.get_json(
            "/pools/info/mint",
            params={
                "mint1": mint_a,
                "mint2": mint_b,
                "poolType": "all",
                "poolSortField": "liquidity",
                "sortType": "desc",
                "pageSize": limit,
                "page": 1,
            },
        )
        rows: list[dict[str, Any]] = ((info or {}).get("data") or {}).get("data") or []
        if not rows:
            return []

        tvl_by_id = {row["id"]: float(row.get("tvl") or 0.0) for row in rows if row.get("id")}
        keys = await self.get_json("/pools/key/ids", params={"ids": ",".join(tvl_by_id)})

        pools = []
        for key in (keys or {}).get("data") or []:
            if not key:
                continue
            vault = key.get("vault") or {}
            if not vault.get("A") or not vault.get("B"):
                # concentrated pools without plain vault keys are skipped
                continue
            pools.append(
                PoolInfo(
                    id=key["id"],
                    mint_a=key["mintA"]["address"],
                    mint_b=key["mintB"]["address"],
                    decimals_a=int(key["mintA"].get("decimals", 0)),
                    decimals_b=int(key["mintB"].get("decimals", 0)),
                    vault_a=vault["A"],
                    vault_b=vault["B"],
                    tvl=tvl_by_id.get(key["id"], 0.0),
                )
            )

        log.debug("raydium_pools_found", mint=mint_a[:8] + "...", pools=len(pools))
        return pools
