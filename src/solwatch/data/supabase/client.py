"""Supabase async client with connection management."""

from typing import Any

import structlog
from supabase._async.client import AsyncClient
from supabase._async.client import create_client as create_async_client
from supabase.lib.client_options import AsyncClientOptions
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from solwatch.config.settings import Settings
from solwatch.core.exceptions import DatabaseConnectionError

log = structlog.get_logger(__name__)


class SupabaseClient:
    """Async Supabase client wrapper.

    Owned by the service container; repositories receive the same
    instance and reach PostgREST through `client`.
    """

    def __init__(self, settings: Settings) -> None:
        self._client: AsyncClient | None = None
        self._settings = settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(DatabaseConnectionError),
        reraise=True,
    )
    async def connect(self) -> None:
        """Establish connection to Supabase.

        Raises:
            DatabaseConnectionError: If connection fails after retries.
        """
        if self._client is not None:
            return

        try:
            options = AsyncClientOptions(schema=self._settings.postgres_schema)
            self._client = await create_async_client(
                self._settings.supabase_url,
                self._settings.supabase_key.get_secret_value(),
                options=options,
            )
            log.info(
                "supabase_connected",
                url=self._settings.supabase_url,
                schema=self._settings.postgres_schema,
            )
        except Exception as e:
            log.error("supabase_connection_failed", error=str(e))
            raise DatabaseConnectionError(f"Supabase: {e}") from e

    async def disconnect(self) -> None:
        """Drop the client reference."""
        if self._client is not None:
            self._client = None
            log.info("supabase_disconnected")

    @property
    def client(self) -> AsyncClient:
        """Underlying Supabase client.

        Raises:
            DatabaseConnectionError: If not connected.
        """
        if self._client is None:
            raise DatabaseConnectionError("Supabase: Client not connected")
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def rpc(self, function: str, params: dict[str, Any]) -> Any:
        """Call a Postgres function and return its data payload."""
        result = await self.client.rpc(function, params).execute()
        return result.data

    async def health_check(self) -> dict[str, Any]:
        """Check Supabase reachability with a one-row read."""
        if self._client is None:
            return {"status": "disconnected", "healthy": False}

        try:
            await self._client.table("wallets").select("id").limit(1).execute()
            return {"status": "connected", "healthy": True}
        except Exception as e:
            log.error("supabase_health_check_failed", error=str(e))
            return {"status": "error", "healthy": False, "error": str(e)}
