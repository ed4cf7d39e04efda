"""Token repository for Supabase.

Tokens are written by the `save_transaction` database function together
with the operations that reference them; this repository reads them so
that a mint resolved once does not trigger network calls again.
"""

import structlog

from solwatch.data.models.token import Token
from solwatch.data.supabase.client import SupabaseClient

log = structlog.get_logger(__name__)


class TokenRepository:
    """Read access to the tokens table."""

    TABLE_NAME = "tokens"

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def get_by_mint(self, mint: str) -> Token | None:
        tokens = await self.get_by_mints([mint])
        return tokens.get(mint)

    async def get_by_mints(self, mints: list[str]) -> dict[str, Token]:
        """Get stored tokens keyed by mint.

        Read failures are logged and treated as misses; the metadata
        resolver falls through to its next source.
        """
        if not mints:
            return {}

        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .select("*")
                .in_("mint", mints)
                .execute()
            )
        except Exception as e:
            log.warning("tokens_get_by_mints_failed", count=len(mints), error=str(e))
            return {}

        return {row["mint"]: Token(**row) for row in result.data or []}
