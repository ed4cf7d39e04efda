"""Wallet and group repositories for Supabase.

Table schema expected (see migrations/001_initial_schema.sql):
    wallets (
        id UUID PRIMARY KEY,
        address TEXT UNIQUE NOT NULL,
        display_name TEXT,
        group_id UUID REFERENCES groups(id),
        is_active BOOLEAN DEFAULT TRUE,
        created_at TIMESTAMPTZ,
        updated_at TIMESTAMPTZ
    )
"""

from datetime import UTC, datetime

import structlog

from solwatch.core.utils import short
from solwatch.core.exceptions import PersistenceError
from solwatch.data.models.wallet import Group, Wallet
from solwatch.data.supabase.client import SupabaseClient

log = structlog.get_logger(__name__)


class WalletRepository:
    """Repository for the wallets table.

    Example:
        repo = WalletRepository(client)
        wallet = await repo.upsert_wallet("9xQeWvG...", display_name="whale")
        wallets = await repo.list_active(group_id=None)
    """

    TABLE_NAME = "wallets"

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def upsert_wallet(
        self,
        address: str,
        display_name: str | None = None,
        group_id: str | None = None,
    ) -> Wallet:
        """Insert a wallet or reactivate the existing row for the address.

        Existing name and group are kept when the new values are None.

        Raises:
            PersistenceError: If the write fails.
        """
        record: dict[str, object] = {
            "address": address,
            "is_active": True,
            "updated_at": datetime.now(UTC).isoformat(),
        }
        if display_name is not None:
            record["display_name"] = display_name
        if group_id is not None:
            record["group_id"] = group_id

        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .upsert(record, on_conflict="address")
                .execute()
            )
        except Exception as e:
            log.error("wallet_upsert_failed", wallet_address=short(address), error=str(e))
            raise PersistenceError(f"Failed to upsert wallet {short(address)}: {e}") from e

        if not result.data:
            msg = f"Failed to upsert wallet {short(address)}"
            raise PersistenceError(msg)

        log.info("wallet_upserted", wallet_address=short(address))
        return Wallet(**result.data[0])

    async def get_by_address(self, address: str) -> Wallet | None:
        """Get a wallet (active or not) by address."""
        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .select("*")
                .eq("address", address)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to read wallet {short(address)}: {e}") from e

        if result and result.data:
            return Wallet(**result.data)
        return None

    async def delete_by_address(self, address: str) -> bool:
        """Hard-delete a wallet; its transactions cascade.

        Returns:
            True if a row was removed.
        """
        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .delete()
                .eq("address", address)
                .execute()
            )
        except Exception as e:
            log.error("wallet_delete_failed", wallet_address=short(address), error=str(e))
            raise PersistenceError(f"Failed to delete wallet {short(address)}: {e}") from e

        return bool(result.data)

    async def remove_all(self, group_id: str | None = None) -> int:
        """Delete every wallet in scope as one statement.

        Runs in the `remove_wallets` database function so the delete is
        all-or-nothing.

        Returns:
            Number of wallets removed.
        """
        try:
            count = await self._client.rpc("remove_wallets", {"p_group_id": group_id})
        except Exception as e:
            log.error("wallets_remove_all_failed", group_id=group_id, error=str(e))
            raise PersistenceError(f"Failed to remove wallets: {e}") from e

        return int(count or 0)

    async def list_active(self, group_id: str | None = None) -> list[Wallet]:
        """List active wallets, newest first, optionally scoped to a group."""
        try:
            query = (
                self._client.client.table(self.TABLE_NAME)
                .select("*")
                .eq("is_active", True)
            )
            if group_id:
                query = query.eq("group_id", group_id)
            result = await query.order("created_at", desc=True).execute()
        except Exception as e:
            raise PersistenceError(f"Failed to list wallets: {e}") from e

        return [Wallet(**row) for row in result.data or []]

    async def get_count(self) -> int:
        """Count active wallets."""
        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .select("id", count="exact")
                .eq("is_active", True)
                .execute()
            )
            return result.count or 0
        except Exception as e:
            log.warning("wallets_count_failed", error=str(e))
            return 0


class GroupRepository:
    """Repository for the groups table."""

    TABLE_NAME = "groups"

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def create(self, name: str) -> Group:
        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .insert({"name": name})
                .execute()
            )
        except Exception as e:
            log.error("group_create_failed", name=name, error=str(e))
            raise PersistenceError(f"Failed to create group {name}: {e}") from e

        if not result.data:
            msg = f"Failed to create group {name}"
            raise PersistenceError(msg)

        log.info("group_created", name=name)
        return Group(id=result.data[0]["id"], name=result.data[0]["name"])

    async def list_groups(self) -> list[Group]:
        """List groups with their active wallet counts."""
        try:
            result = await (
                self._client.client.table(self.TABLE_NAME)
                .select("id, name, wallets(count)")
                .order("created_at")
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to list groups: {e}") from e

        groups = []
        for row in result.data or []:
            counts = row.get("wallets") or [{}]
            groups.append(
                Group(
                    id=row["id"],
                    name=row["name"],
                    wallet_count=counts[0].get("count", 0),
                )
            )
        return groups
