"""
Unit tests for the SurrealDB client adapter.

The SDK connection is replaced with AsyncMock; no server is needed.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from surrealdb_pool.database.client import (SurrealClient, connect_surreal,
                                            is_embedded_address)
from surrealdb_pool.exceptions import DriverError


class TestIsEmbeddedAddress:
    @pytest.mark.parametrize("address", ["mem://", "memory://", "MEM://", "mem://data"])
    def test_embedded(self, address):
        assert is_embedded_address(address) is True

    @pytest.mark.parametrize(
        "address",
        [
            "ws://localhost:8000",
            "wss://db.example.com",
            "http://localhost:8000",
            "memcache://cache:11211",
            "memory-proxy://host",
            "localhost:8000",
        ],
    )
    def test_not_embedded(self, address):
        assert is_embedded_address(address) is False

    def test_custom_schemes(self):
        assert is_embedded_address("surrealkv://data", schemes=("surrealkv",)) is True


@pytest.fixture
def sdk_connection():
    connection = MagicMock()
    connection.connect = AsyncMock(return_value=None)
    connection.signin = AsyncMock(return_value="token")
    connection.use = AsyncMock(return_value=None)
    connection.query = AsyncMock(return_value=[{"id": "person:1"}])
    connection.close = AsyncMock(return_value=None)
    return connection


@pytest.mark.asyncio
class TestSurrealClient:
    async def test_calls_are_forwarded(self, sdk_connection):
        client = SurrealClient("ws://db:8000", sdk_connection)

        assert await client.signin({"username": "root", "password": "root"}) == "token"
        await client.use("ns", "db")
        result = await client.query("SELECT * FROM person", {"limit": 1})

        sdk_connection.signin.assert_awaited_once_with({"username": "root", "password": "root"})
        sdk_connection.use.assert_awaited_once_with("ns", "db")
        sdk_connection.query.assert_awaited_once_with("SELECT * FROM person", {"limit": 1})
        assert result == [{"id": "person:1"}]

    async def test_query_without_variables_sends_empty_dict(self, sdk_connection):
        client = SurrealClient("ws://db:8000", sdk_connection)
        await client.query("INFO FOR DB")
        sdk_connection.query.assert_awaited_once_with("INFO FOR DB", {})

    async def test_health_runs_health_query(self, sdk_connection):
        client = SurrealClient("ws://db:8000", sdk_connection)
        await client.health()
        sdk_connection.query.assert_awaited_once_with("RETURN true;", {})

    async def test_sdk_errors_become_driver_errors(self, sdk_connection):
        sdk_connection.signin.side_effect = Exception("There was a problem with authentication")
        client = SurrealClient("ws://db:8000", sdk_connection)

        with pytest.raises(DriverError) as exc_info:
            await client.signin({"username": "root", "password": "wrong"})

        assert exc_info.value.operation == "signin"
        assert exc_info.value.context["address"] == "ws://db:8000"
        assert isinstance(exc_info.value.__cause__, Exception)

    async def test_open_skips_missing_connect(self):
        connection = MagicMock(spec=["signin", "use", "query", "close"])
        client = SurrealClient("http://db:8000", connection)
        await client.open()

    async def test_open_connects(self, sdk_connection):
        client = SurrealClient("ws://db:8000", sdk_connection)
        await client.open()
        sdk_connection.connect.assert_awaited_once()

    async def test_connect_surreal_uses_sdk(self, sdk_connection):
        with patch(
            "surrealdb_pool.database.client.AsyncSurreal", return_value=sdk_connection
        ) as factory:
            client = await connect_surreal("ws://db:8000")

        factory.assert_called_once_with("ws://db:8000")
        assert isinstance(client, SurrealClient)
        assert client.connection is sdk_connection
        sdk_connection.connect.assert_awaited_once()

    async def test_connect_surreal_rejects_bad_address(self):
        with patch(
            "surrealdb_pool.database.client.AsyncSurreal",
            side_effect=ValueError("Unsupported protocol"),
        ):
            with pytest.raises(DriverError) as exc_info:
                await connect_surreal("ftp://db")

        assert exc_info.value.operation == "connect"
