"""
Connection lifecycle management for SurrealDB.

The Manager knows how to turn an EndpointConfig into a ready connection
(connect, sign in, select namespace/database) and how to re-validate a
pooled connection before it is lent out again. It holds no pool state;
the Pool decides when create() and recycle() run.

This module is part of SURREALDB_POOL.
"""

import logging
from typing import Any, Optional

from ..config import (
    DatabaseCredentials,
    EndpointConfig,
    NamespaceCredentials,
    RootCredentials,
)
from ..database.client import (
    AuthExemptPredicate,
    Connector,
    DatabaseClient,
    connect_surreal,
    is_embedded_address,
)
from ..exceptions import (
    AuthError,
    ConfigurationError,
    ConnectError,
    DriverError,
    RecycleError,
    SelectError,
)
from ..observability import get_logger as get_contextual_logger
from .types import SlotMetrics

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

# Failures a client (or a connector) may surface
DRIVER_FAILURES = (DriverError, OSError)


class Manager:
    """
    Creates and recycles SurrealDB connections for one endpoint.

    Connections to addresses matched by the auth_exempt predicate (the
    embedded engine by default) skip sign-in on create and every remote call
    on recycle.
    """

    def __init__(
        self,
        config: EndpointConfig,
        connector: Optional[Connector] = None,
        auth_exempt: Optional[AuthExemptPredicate] = None,
    ) -> None:
        """
        Args:
            config: Endpoint to connect to
            connector: Opens a transport to an address (defaults to the SDK)
            auth_exempt: Predicate deciding whether an address skips sign-in
        """
        self.config = config
        self._connector = connector or connect_surreal
        self._auth_exempt = auth_exempt or is_embedded_address

    @property
    def auth_exempt(self) -> bool:
        """Whether connections to the configured address skip remote checks."""
        return self._auth_exempt(self.config.address)

    async def create(self) -> DatabaseClient:
        """
        Open, authenticate and bind a new connection.

        Returns:
            A client signed in and bound to the default namespace/database

        Raises:
            ConnectError: If the transport cannot be opened
            AuthError: If sign-in is rejected
            SelectError: If the namespace/database cannot be selected
        """
        address = self.config.address
        try:
            client = await self._connector(address)
        except DRIVER_FAILURES as e:
            raise ConnectError(
                f"Failed to connect: {e}",
                address=address,
                context={"error_type": type(e).__name__},
            ) from e

        try:
            if not self.auth_exempt:
                await self.authenticate(client)
            await self.select(client)
        except BaseException:
            # the session never reaches the pool; drop the transport, including on cancellation
            await self.close(client)
            raise

        contextual_logger.debug(
            "Created SurrealDB connection",
            extra={
                "address": address,
                "namespace": self.config.namespace,
                "database": self.config.database,
                "auth_exempt": self.auth_exempt,
            },
        )
        return client

    async def recycle(self, client: DatabaseClient, metrics: SlotMetrics) -> None:
        """
        Re-validate a pooled connection before it is handed out again.

        Signing in again doubles as a liveness probe: an expired session or
        a dead transport makes it fail.

        Raises:
            RecycleError: If the connection must not be reused
        """
        if self.auth_exempt:
            return

        try:
            await self.authenticate(client)
            await self.select(client)
        except (AuthError, SelectError) as e:
            raise RecycleError(
                f"Connection check failed: {e.message}",
                context={
                    "address": self.config.address,
                    "error_type": type(e).__name__,
                    "recycle_count": metrics.recycle_count,
                },
            ) from e

    async def authenticate(self, client: DatabaseClient) -> Any:
        """
        Sign in with the configured credentials.

        Returns:
            The session token returned by the server

        Raises:
            AuthError: If the server rejects the credentials
        """
        credentials = self.config.credentials
        match credentials:
            case RootCredentials(username=username, password=password):
                params = {"username": username, "password": password}
            case NamespaceCredentials(username=username, password=password, namespace=namespace):
                params = {"namespace": namespace, "username": username, "password": password}
            case DatabaseCredentials(
                username=username, password=password, namespace=namespace, database=database
            ):
                params = {
                    "namespace": namespace,
                    "database": database,
                    "username": username,
                    "password": password,
                }
            case _:
                raise ConfigurationError(
                    f"Unsupported credentials type: {type(credentials).__name__}",
                    config_key="credentials",
                )

        scope = credentials.scope.value
        try:
            return await client.signin(params)
        except DRIVER_FAILURES as e:
            raise AuthError(
                f"{scope.capitalize()} auth failed: {e}",
                scope=scope,
                context={"username": credentials.username},
            ) from e

    async def select(self, client: DatabaseClient) -> None:
        """
        Select the configured default namespace and database.

        Raises:
            SelectError: If the selection is rejected
        """
        namespace, database = self.config.namespace, self.config.database
        try:
            await client.use(namespace, database)
        except DRIVER_FAILURES as e:
            raise SelectError(
                f"Failed to set ns/db: {e}",
                namespace=namespace,
                database=database,
            ) from e

    async def close(self, client: DatabaseClient) -> None:
        """
        Close a connection that is being discarded.

        The connection is abandoned either way, so a failing close is
        logged rather than raised.
        """
        try:
            await client.close()
        except DRIVER_FAILURES as e:
            logger.warning(f"Failed to close SurrealDB connection to {self.config.address}: {e}")

    def __repr__(self) -> str:
        return f"Manager(address={self.config.address!r})"
