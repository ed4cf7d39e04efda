"""Tests for wallet management endpoints."""

from solwatch.core.exceptions import InvalidAddressError, NotFoundError, PersistenceError
from solwatch.data.models.wallet import WalletStat, WalletWithStats
from tests.factories.wallet import WalletFactory


class TestAddWallet:
    """Tests for POST /wallets."""

    def test_add_wallet_created(self, client, container) -> None:
        """
        Given: A valid address with a name and group
        When: POST /wallets is called
        Then: Returns 201 with the stored wallet
        """
        wallet = WalletFactory(group_id="g1")
        container.wallets.add_wallet.return_value = wallet

        response = client.post(
            "/wallets",
            json={"address": wallet.address, "name": "whale", "groupId": "g1"},
        )

        assert response.status_code == 201
        assert response.json()["address"] == wallet.address
        container.wallets.add_wallet.assert_awaited_once_with(
            wallet.address, name="whale", group_id="g1"
        )

    def test_invalid_address_is_bad_request(self, client, container) -> None:
        container.wallets.add_wallet.side_effect = InvalidAddressError("nope")

        response = client.post("/wallets", json={"address": "nope"})

        assert response.status_code == 400
        assert "Invalid Solana address" in response.json()["detail"]

    def test_missing_address_is_unprocessable(self, client) -> None:
        response = client.post("/wallets", json={"name": "whale"})

        assert response.status_code == 422

    def test_storage_failure_is_unavailable(self, client, container) -> None:
        container.wallets.add_wallet.side_effect = PersistenceError("db down")

        response = client.post("/wallets", json={"address": WalletFactory().address})

        assert response.status_code == 503
        assert response.json() == {"detail": "Storage unavailable"}


class TestRemoveWallet:
    def test_remove(self, client, container) -> None:
        address = WalletFactory().address

        response = client.delete(f"/wallets/{address}")

        assert response.status_code == 204
        container.wallets.remove_wallet.assert_awaited_once_with(address)

    def test_remove_unknown_is_not_found(self, client, container) -> None:
        container.wallets.remove_wallet.side_effect = NotFoundError("wallet", "abc")

        response = client.delete("/wallets/abc")

        assert response.status_code == 404
        assert response.json()["detail"] == "wallet not found: abc"

    def test_remove_all_in_group(self, client, container) -> None:
        container.wallets.remove_all_wallets.return_value = 3

        response = client.delete("/wallets", params={"groupId": "g1"})

        assert response.status_code == 200
        assert response.json() == {"count": 3}
        container.wallets.remove_all_wallets.assert_awaited_once_with("g1")


class TestListWallets:
    def test_list_with_stats(self, client, container) -> None:
        wallet = WalletFactory()
        container.wallets.list_wallets_with_stats.return_value = [
            WalletWithStats(
                **wallet.model_dump(),
                stats=WalletStat(wallet_id=wallet.id, total_buy_tx=2),
            )
        ]

        response = client.get("/wallets")

        assert response.status_code == 200
        body = response.json()
        assert body[0]["address"] == wallet.address
        assert body[0]["stats"]["total_buy_tx"] == 2
        container.wallets.list_wallets_with_stats.assert_awaited_once_with(None)
