"""Mocked Supabase client for repository tests."""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

_BUILDER_METHODS = (
    "select",
    "eq",
    "in_",
    "gte",
    "order",
    "limit",
    "upsert",
    "insert",
    "delete",
    "maybe_single",
)


def make_query(data: Any = None, count: int | None = None, error: Exception | None = None):
    """PostgREST query builder whose methods chain onto itself."""
    query = MagicMock()
    for name in _BUILDER_METHODS:
        getattr(query, name).return_value = query
    if error is not None:
        query.execute = AsyncMock(side_effect=error)
    else:
        query.execute = AsyncMock(return_value=MagicMock(data=data, count=count))
    return query


@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """SupabaseClient double: `client.table()` and `rpc()`."""
    mock_client = MagicMock()
    mock_client.client = MagicMock()
    mock_client.rpc = AsyncMock()
    return mock_client


@pytest.fixture
def table_returns(mock_supabase_client: MagicMock) -> Callable[..., MagicMock]:
    """Make every `client.table(...)` call return a query with the given result."""

    def _install(data: Any = None, count: int | None = None, error: Exception | None = None):
        query = make_query(data=data, count=count, error=error)
        mock_supabase_client.client.table.return_value = query
        return query

    return _install
