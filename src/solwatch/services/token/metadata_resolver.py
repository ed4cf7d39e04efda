"""Token metadata resolver with caching and fallback.

Priority: Cache -> Token table -> Registry snapshot -> Metadata API
-> On-chain metadata account -> "Unknown".

Decimals follow a separate authority order, because amount math depends
on them: stored token row, then RPC-observed decimals (transaction
balances or the mint account), then whatever the metadata source said.
A disagreement with the authoritative value is logged as a data-quality
alert and never overwrites it.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from solwatch.core.utils import short
from solwatch.core.retry import RetryPolicy
from solwatch.data.models.token import UNKNOWN_NAME, UNKNOWN_SYMBOL, TokenInfo, TokenSource
from solwatch.services.token.cache import TokenCache
from solwatch.services.token.on_chain import metadata_address, parse_metadata_account

if TYPE_CHECKING:
    from solwatch.data.supabase.repositories.token_repo import TokenRepository
    from solwatch.services.helius.client import HeliusClient
    from solwatch.services.solana.rpc_client import SolanaRPCClient

logger = structlog.get_logger(__name__)


class TokenMetadataResolver:
    """Resolves symbol, name and decimals for mints, batched.

    Example:
        infos = await resolver.get_token_infos(["EPjF..."], {"EPjF...": 6})
    """

    def __init__(
        self,
        cache: TokenCache,
        token_repo: TokenRepository,
        helius: HeliusClient | None,
        rpc: SolanaRPCClient,
        registry: dict[str, TokenInfo],
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.cache = cache
        self.token_repo = token_repo
        self.helius = helius
        self.rpc = rpc
        self.registry = registry
        self.retry_policy = retry_policy or RetryPolicy(name="token_metadata")
        self.stats: dict[str, int] = {source.value: 0 for source in TokenSource}
        self.decimals_alerts = 0

    async def get_token_info(self, mint: str, observed_decimals: int | None = None) -> TokenInfo:
        observed = {mint: observed_decimals} if observed_decimals is not None else None
        return (await self.get_token_infos([mint], observed))[mint]

    async def get_token_infos(
        self,
        mints: list[str],
        observed_decimals: dict[str, int] | None = None,
    ) -> dict[str, TokenInfo]:
        """Resolve every mint; never raises, unknown mints get a placeholder.

        Args:
            mints: Mints to resolve.
            observed_decimals: Decimals reported by RPC token balances.
        """
        observed = observed_decimals or {}
        resolved: dict[str, TokenInfo] = {}
        stored_decimals: dict[str, int] = {}

        # Step 1: cache
        remaining = []
        for mint in dict.fromkeys(mints):
            cached = self.cache.get(mint)
            if cached is not None:
                resolved[mint] = cached
            else:
                remaining.append(mint)

        # Step 2: token table
        if remaining:
            rows = await self.token_repo.get_by_mints(remaining)
            for mint, row in rows.items():
                if row.decimals is not None:
                    stored_decimals[mint] = row.decimals
                if row.symbol and row.symbol != UNKNOWN_SYMBOL:
                    resolved[mint] = TokenInfo(
                        mint=mint,
                        symbol=row.symbol,
                        name=row.name or row.symbol,
                        decimals=row.decimals if row.decimals is not None else 0,
                        logo_uri=row.logo_uri,
                        decimals_confident=row.decimals is not None,
                        source=TokenSource.DATABASE,
                    )
            remaining = [m for m in remaining if m not in resolved]

        # Step 3: registry snapshot
        for mint in list(remaining):
            entry = self.registry.get(mint)
            if entry is not None:
                resolved[mint] = entry
                remaining.remove(mint)

        # Step 4: metadata API
        if remaining and self.helius is not None and self.helius.enabled:
            try:
                found = await self.retry_policy.call(self.helius.get_token_metadata, remaining)
            except Exception as e:
                logger.warning("token_metadata_api_failed", mints=len(remaining), error=str(e))
                found = {}
            for mint, meta in found.items():
                if mint in remaining and (meta.symbol or meta.name):
                    resolved[mint] = TokenInfo(
                        mint=mint,
                        symbol=meta.symbol or UNKNOWN_SYMBOL,
                        name=meta.name or meta.symbol or UNKNOWN_NAME,
                        decimals=meta.decimals if meta.decimals is not None else observed.get(mint, 0),
                        logo_uri=meta.logo_uri,
                        source=TokenSource.METADATA_API,
                    )
            remaining = [m for m in remaining if m not in resolved]

        # Step 5: on-chain metadata account
        if remaining:
            on_chain = await asyncio.gather(*(self._from_chain(m) for m in remaining))
            for mint, info in zip(remaining, on_chain, strict=True):
                if info is not None:
                    resolved[mint] = info
            remaining = [m for m in remaining if m not in resolved]

        # Step 6: placeholder
        for mint in remaining:
            logger.info("token_metadata_unknown", mint=short(mint))
            resolved[mint] = TokenInfo(mint=mint, source=TokenSource.FALLBACK)

        result: dict[str, TokenInfo] = {}
        for mint in dict.fromkeys(mints):
            info = await self._settle_decimals(
                resolved[mint], stored_decimals.get(mint), observed.get(mint)
            )
            if info.source != TokenSource.CACHE:
                self.cache.set(info)
            self.stats[info.source.value] += 1
            result[mint] = info
        return result

    async def _from_chain(self, mint: str) -> TokenInfo | None:
        try:
            account = await self.rpc.get_account_info(metadata_address(mint), encoding="base64")
        except Exception as e:
            logger.debug("token_on_chain_metadata_failed", mint=short(mint), error=str(e))
            return None
        if not account:
            return None

        parsed = parse_metadata_account(account)
        if parsed is None:
            return None
        return TokenInfo(
            mint=mint,
            symbol=parsed["symbol"] or UNKNOWN_SYMBOL,
            name=parsed["name"] or parsed["symbol"] or UNKNOWN_NAME,
            source=TokenSource.ON_CHAIN,
        )

    async def _settle_decimals(
        self,
        info: TokenInfo,
        stored: int | None,
        observed: int | None,
    ) -> TokenInfo:
        if stored is not None:
            authoritative = stored
        elif info.decimals_confident:
            authoritative = info.decimals
        elif observed is not None:
            authoritative = observed
        else:
            authoritative = await self._mint_decimals(info.mint)

        if authoritative is None:
            # nothing RPC-backed; keep the source's value unconfirmed
            return info

        candidates = []
        if observed is not None:
            candidates.append(("observed", observed))
        if not info.decimals_confident and info.source in (
            TokenSource.REGISTRY,
            TokenSource.METADATA_API,
        ):
            candidates.append(("metadata", info.decimals))

        for label, other in candidates:
            if other != authoritative:
                self.decimals_alerts += 1
                logger.warning(
                    "token_decimals_disagreement",
                    mint=short(info.mint),
                    authoritative=authoritative,
                    other_source=label,
                    other=other,
                )

        return info.model_copy(update={"decimals": authoritative, "decimals_confident": True})

    async def _mint_decimals(self, mint: str) -> int | None:
        try:
            return await self.rpc.get_mint_decimals(mint)
        except Exception as e:
            logger.debug("token_mint_decimals_failed", mint=short(mint), error=str(e))
            return None

    def get_status(self) -> dict:
        return {
            "cache": self.cache.get_stats(),
            "sources": dict(self.stats),
            "decimals_alerts": self.decimals_alerts,
        }
