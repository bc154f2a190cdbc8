"""
SurrealDB client adapter.

The pool never talks to the SurrealDB SDK directly. It goes through the
small DatabaseClient protocol below, so the lifecycle manager only has to
deal with one failure type (DriverError) and tests can script the remote
side with a fake.

This module is part of SURREALDB_POOL.
"""

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, runtime_checkable
from urllib.parse import urlsplit

from surrealdb import AsyncSurreal

from ..constants import EMBEDDED_SCHEMES, HEALTH_QUERY
from ..exceptions import DriverError

logger = logging.getLogger(__name__)


@runtime_checkable
class DatabaseClient(Protocol):
    """Operations the pool needs from one connection."""

    async def signin(self, params: Mapping[str, Any]) -> Any:
        """Sign in with the given parameters; returns the session token."""

    async def use(self, namespace: str, database: str) -> None:
        """Select the working namespace and database."""

    async def query(self, query: str, variables: Optional[Mapping[str, Any]] = None) -> Any:
        """Run a query on this connection."""

    async def close(self) -> None:
        """Close the transport."""


Connector = Callable[[str], Awaitable[DatabaseClient]]
"""Opens a transport connection to an address and returns its client."""

AuthExemptPredicate = Callable[[str], bool]


def is_embedded_address(address: str, schemes: tuple[str, ...] = EMBEDDED_SCHEMES) -> bool:
    """
    Whether the address is served by the in-process engine.

    The scheme is parsed and compared exactly, so "memcache://host" or
    "memory-proxy://host" are not treated as embedded.
    """
    scheme = urlsplit(address).scheme.lower()
    return scheme in schemes


class SurrealClient:
    """
    DatabaseClient backed by the surrealdb SDK.

    The SDK reports most failures as plain exceptions, so each call is
    funnelled through _call() which re-raises them as DriverError.
    """

    def __init__(self, address: str, connection: Any) -> None:
        self.address = address
        self._connection = connection

    @property
    def connection(self) -> Any:
        """The underlying SDK connection."""
        return self._connection

    async def open(self) -> None:
        # HTTP connections are stateless and have no connect step
        connect = getattr(self._connection, "connect", None)
        if connect is not None:
            await self._call("connect", connect())

    async def signin(self, params: Mapping[str, Any]) -> Any:
        return await self._call("signin", self._connection.signin(dict(params)))

    async def use(self, namespace: str, database: str) -> None:
        await self._call("use", self._connection.use(namespace, database))

    async def query(self, query: str, variables: Optional[Mapping[str, Any]] = None) -> Any:
        return await self._call("query", self._connection.query(query, dict(variables or {})))

    async def health(self) -> Any:
        return await self.query(HEALTH_QUERY)

    async def close(self) -> None:
        await self._call("close", self._connection.close())

    async def _call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except DriverError:
            raise
        except Exception as e:
            raise DriverError(
                f"SurrealDB {operation} failed: {e}",
                operation=operation,
                context={"address": self.address, "error_type": type(e).__name__},
            ) from e

    def __repr__(self) -> str:
        return f"SurrealClient(address={self.address!r})"


async def connect_surreal(address: str) -> SurrealClient:
    """
    Default connector: open a SurrealDB connection with the SDK.

    Raises:
        DriverError: If the SDK rejects the address or the transport fails
    """
    try:
        connection = AsyncSurreal(address)
    except Exception as e:
        raise DriverError(
            f"Unsupported SurrealDB address {address!r}: {e}",
            operation="connect",
            context={"address": address, "error_type": type(e).__name__},
        ) from e

    client = SurrealClient(address, connection)
    await client.open()
    logger.debug(f"Opened SurrealDB transport to {address}")
    return client
