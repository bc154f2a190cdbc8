"""
Pytest configuration and shared fixtures for SURREALDB_POOL tests.

This module provides:
- A scripted fake SurrealDB client and connector
- Endpoint configuration fixtures
- Marker registration for integration tests
"""

import asyncio
import os
from typing import Any, Dict, List, Optional

import pytest

from surrealdb_pool.config import EndpointConfig, RootCredentials
from surrealdb_pool.exceptions import DriverError

# ============================================================================
# FAKE SURREALDB CLIENT
# ============================================================================


class FakeClient:
    """
    In-memory stand-in for a SurrealDB connection.

    Records every call. Failures are scripted per client or through the
    owning connector.
    """

    def __init__(self, connector: "FakeConnector", address: str, number: int) -> None:
        self.connector = connector
        self.address = address
        self.number = number
        self.signins: List[Dict[str, Any]] = []
        self.uses: List[tuple] = []
        self.queries: List[tuple] = []
        self.closed = False
        self.fail_signin = False
        self.fail_use = False

    async def signin(self, params):
        if self.connector.signin_delay:
            await asyncio.sleep(self.connector.signin_delay)
        if self.fail_signin or self.connector.fail_signin:
            raise DriverError("There was a problem with authentication", operation="signin")
        self.signins.append(dict(params))
        return f"token-{self.number}"

    async def use(self, namespace, database):
        if self.fail_use or self.connector.fail_use:
            raise DriverError("Specify a namespace to use", operation="use")
        self.uses.append((namespace, database))

    async def query(self, query, variables=None):
        self.queries.append((query, variables))
        if query == "RETURN true;":
            return True
        return [{"client": self.number, "query": query}]

    async def close(self):
        self.closed = True
        self.connector.closed.append(self)

    def __repr__(self) -> str:
        return f"FakeClient({self.number})"


class FakeConnector:
    """
    Connector producing FakeClient instances.

    Attributes:
        connect_delay: Seconds each connect takes
        fail_connect: Exception instance raised by connect (if set)
        fail_signin / fail_use: Make every client reject sign-in / selection
        signin_delay: Seconds each sign-in takes
    """

    def __init__(self) -> None:
        self.clients: List[FakeClient] = []
        self.closed: List[FakeClient] = []
        self.connect_delay: float = 0
        self.fail_connect: Optional[BaseException] = None
        self.fail_signin = False
        self.fail_use = False
        self.signin_delay: float = 0
        self.attempts = 0

    async def __call__(self, address: str) -> FakeClient:
        self.attempts += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.fail_connect is not None:
            raise self.fail_connect
        client = FakeClient(self, address, len(self.clients) + 1)
        self.clients.append(client)
        return client

    @property
    def open_clients(self) -> List[FakeClient]:
        return [c for c in self.clients if not c.closed]


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def connector() -> FakeConnector:
    """Scripted connector; inspect .clients / .closed after the test."""
    return FakeConnector()


@pytest.fixture
def root_credentials() -> RootCredentials:
    return RootCredentials(username="root", password="root")


@pytest.fixture
def endpoint_config(root_credentials) -> EndpointConfig:
    """Remote endpoint with small timeouts suitable for tests."""
    return EndpointConfig(
        address="ws://localhost:8000",
        namespace="test_ns",
        database="test_db",
        credentials=root_credentials,
        connect_timeout_secs=1,
        max_connections=2,
        recycle_timeout_secs=1,
    )


@pytest.fixture
def memory_config(root_credentials) -> EndpointConfig:
    """Embedded-engine endpoint (auth exempt)."""
    return EndpointConfig(
        address="mem://",
        namespace="test_ns",
        database="test_db",
        credentials=root_credentials,
        connect_timeout_secs=1,
        max_connections=2,
    )


@pytest.fixture
def surrealdb_url() -> str:
    """Address of a real SurrealDB server; skips the test if none is configured."""
    url = os.getenv("SURREALDB_TEST_URL")
    if not url:
        pytest.skip("SURREALDB_TEST_URL not set")
    return url


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: requires a running SurrealDB server")
