"""FastAPI app wired to a mocked service container."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from solwatch.api.app import create_app


@pytest.fixture
def container() -> MagicMock:
    """ServiceContainer double; tests configure the services they touch."""
    mock = MagicMock()
    mock.wallets.add_wallet = AsyncMock()
    mock.wallets.remove_wallet = AsyncMock()
    mock.wallets.remove_all_wallets = AsyncMock()
    mock.wallets.list_wallets_with_stats = AsyncMock(return_value=[])
    mock.group_repo.create = AsyncMock()
    mock.group_repo.list_groups = AsyncMock(return_value=[])
    mock.transaction_repo.get_recent = AsyncMock(return_value=[])
    mock.transaction_repo.get_by_signature = AsyncMock(return_value=None)
    mock.price_resolver.get_prices = AsyncMock(return_value={})
    mock.price_resolver.get_native_price = AsyncMock()
    mock.pnl.compute_all = AsyncMock(return_value=[])
    mock.pnl.compute_token_pnl = AsyncMock()
    mock.monitor.ingest_webhook = AsyncMock()
    mock.supabase.health_check = AsyncMock(return_value={"status": "connected", "healthy": True})
    mock.redis = None
    mock.worker.running = True
    mock.get_status = AsyncMock(return_value={})
    return mock


@pytest.fixture
def app(container: MagicMock) -> FastAPI:
    """Application without its lifespan; the container is injected directly."""
    app = create_app()
    app.state.container = container
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(app)
