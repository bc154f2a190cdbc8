"""
Configuration management for SURREALDB_POOL.

Provides the immutable endpoint description the pool is built from:

- RootCredentials / NamespaceCredentials / DatabaseCredentials: the closed
  set of sign-in scopes
- EndpointConfig: address, default namespace/database, credentials and
  sizing/timing parameters
- ConfigBuilder: fluent construction that rejects incomplete configuration
- PoolSettings: the same configuration read from SURREALDB__* environment
  variables via pydantic-settings

Example:
    config = EndpointConfig(
        address="ws://localhost:8000",
        namespace="app",
        database="app",
        credentials=RootCredentials(username="root", password="root"),
    )
    pool = config.create_pool()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_CONNECT_TIMEOUT_SECS,
    DEFAULT_DATABASE,
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_NAMESPACE,
    DEFAULT_RECYCLE_TIMEOUT_SECS,
    DEFAULT_ROOT_PASSWORD,
    DEFAULT_ROOT_USER,
    SETTINGS_ENV_DELIMITER,
    SETTINGS_ENV_PREFIX,
)
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .core.pool import Pool
    from .core.types import Runtime, Timeouts


class AuthScope(str, Enum):
    """Breadth of access granted by a sign-in."""

    ROOT = "root"
    NAMESPACE = "namespace"
    DATABASE = "database"


@dataclass(frozen=True)
class RootCredentials:
    """Instance-wide (root) user."""

    scope: ClassVar[AuthScope] = AuthScope.ROOT

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class NamespaceCredentials:
    """User defined on a namespace."""

    scope: ClassVar[AuthScope] = AuthScope.NAMESPACE

    username: str
    password: str = field(repr=False)
    namespace: str


@dataclass(frozen=True)
class DatabaseCredentials:
    """User defined on a database inside a namespace."""

    scope: ClassVar[AuthScope] = AuthScope.DATABASE

    username: str
    password: str = field(repr=False)
    namespace: str
    database: str


Credentials = Union[RootCredentials, NamespaceCredentials, DatabaseCredentials]


@dataclass(frozen=True)
class EndpointConfig:
    """
    Immutable description of one SurrealDB endpoint and its pool sizing.

    Attributes:
        address: Database URL ("ws://host:8000", "http://host:8000", "mem://")
        namespace: Namespace selected on every connection
        database: Database selected on every connection
        credentials: How connections sign in
        connect_timeout_secs: Budget for waiting on and creating a connection
        max_connections: Maximum number of live connections
        recycle_timeout_secs: Budget for re-validating a pooled connection;
            0 disables the budget
    """

    address: str
    namespace: str
    database: str
    credentials: Credentials
    connect_timeout_secs: float = DEFAULT_CONNECT_TIMEOUT_SECS
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    recycle_timeout_secs: float = DEFAULT_RECYCLE_TIMEOUT_SECS

    @staticmethod
    def builder() -> ConfigBuilder:
        """Start a fluent builder."""
        return ConfigBuilder()

    def connect_timeout(self) -> timedelta:
        """Connection timeout as a duration."""
        return timedelta(seconds=self.connect_timeout_secs)

    def idle_timeout(self) -> timedelta:
        """Recycle (idle re-validation) timeout as a duration."""
        return timedelta(seconds=self.recycle_timeout_secs)

    def timeouts(self) -> Timeouts:
        """
        Pool timeouts derived from this configuration.

        Waiting for a slot and creating a connection share the connect
        budget; a recycle budget of 0 means recycling is not time-limited.
        """
        from .core.types import Timeouts

        return Timeouts(
            wait=self.connect_timeout_secs,
            create=self.connect_timeout_secs,
            recycle=self.recycle_timeout_secs or None,
        )

    def create_pool(self, runtime: Optional[Runtime] = None, **kwargs: Any) -> Pool:
        """Build a pool for this endpoint (see build_pool)."""
        from .core.pool import build_pool

        return build_pool(self, runtime, **kwargs)


class ConfigBuilder:
    """
    Fluent builder for EndpointConfig.

    Address, namespace, database and credentials are required; every
    numeric field falls back to its documented default.
    """

    _REQUIRED: ClassVar[tuple[str, ...]] = ("address", "namespace", "database", "credentials")

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def address(self, address: str) -> ConfigBuilder:
        self._values["address"] = address
        return self

    def host(self, host: str) -> ConfigBuilder:
        """Alias of address()."""
        return self.address(host)

    def namespace(self, namespace: str) -> ConfigBuilder:
        self._values["namespace"] = namespace
        return self

    def database(self, database: str) -> ConfigBuilder:
        self._values["database"] = database
        return self

    def credentials(self, credentials: Credentials) -> ConfigBuilder:
        self._values["credentials"] = credentials
        return self

    def connect_timeout(self, seconds: float) -> ConfigBuilder:
        self._values["connect_timeout_secs"] = seconds
        return self

    def max_connections(self, count: int) -> ConfigBuilder:
        self._values["max_connections"] = count
        return self

    def recycle_timeout(self, seconds: float) -> ConfigBuilder:
        self._values["recycle_timeout_secs"] = seconds
        return self

    idle_timeout = recycle_timeout

    def build(self) -> EndpointConfig:
        """
        Build the configuration.

        Raises:
            ConfigurationError: If any required field was never set
        """
        missing = [name for name in self._REQUIRED if self._values.get(name) is None]
        if missing:
            raise ConfigurationError(
                f"{missing[0]} is required",
                config_key=missing[0],
                missing=missing,
            )
        return EndpointConfig(**self._values)


# ============================================================================
# ENVIRONMENT SETTINGS
# ============================================================================


class _UserSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    user: str = DEFAULT_ROOT_USER
    password: str = Field(
        DEFAULT_ROOT_PASSWORD,
        validation_alias=AliasChoices("pass", "password"),
    )


class RootCredentialsSettings(_UserSettings):
    """creds.root: user, pass"""


class NamespaceCredentialsSettings(_UserSettings):
    """creds.namespace: user, pass, ns"""

    ns: str


class DatabaseCredentialsSettings(_UserSettings):
    """creds.database: user, pass, ns, db"""

    ns: str
    db: str


class CredentialsSettings(BaseModel):
    """Externally tagged credentials: exactly one of root/namespace/database."""

    root: Optional[RootCredentialsSettings] = None
    namespace: Optional[NamespaceCredentialsSettings] = None
    database: Optional[DatabaseCredentialsSettings] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> CredentialsSettings:
        chosen = [name for name in ("root", "namespace", "database") if getattr(self, name)]
        if len(chosen) != 1:
            raise ValueError(
                "exactly one of root, namespace or database credentials must be set, "
                f"got {chosen or 'none'}"
            )
        return self

    def to_credentials(self) -> Credentials:
        if self.root is not None:
            return RootCredentials(username=self.root.user, password=self.root.password)
        if self.namespace is not None:
            return NamespaceCredentials(
                username=self.namespace.user,
                password=self.namespace.password,
                namespace=self.namespace.ns,
            )
        if self.database is not None:
            return DatabaseCredentials(
                username=self.database.user,
                password=self.database.password,
                namespace=self.database.ns,
                database=self.database.db,
            )
        raise ConfigurationError("No credentials configured", config_key="creds")


def _default_credentials() -> CredentialsSettings:
    return CredentialsSettings(root=RootCredentialsSettings())


class PoolSettings(BaseSettings):
    """
    Endpoint configuration read from the environment.

    Variables use the SURREALDB__ prefix and "__" for nesting:

        SURREALDB__HOST=ws://localhost:8000
        SURREALDB__NS=app
        SURREALDB__DB=app
        SURREALDB__CONNECT_TIMEOUT=10
        SURREALDB__MAX_CONNECTIONS=20
        SURREALDB__CREDS__ROOT__USER=root
        SURREALDB__CREDS__ROOT__PASS=secret
    """

    model_config = SettingsConfigDict(
        env_prefix=SETTINGS_ENV_PREFIX,
        env_nested_delimiter=SETTINGS_ENV_DELIMITER,
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(..., min_length=1, description="Database URL")
    ns: str = Field(DEFAULT_NAMESPACE, description="Default namespace")
    db: str = Field(DEFAULT_DATABASE, description="Default database")
    creds: CredentialsSettings = Field(default_factory=_default_credentials)
    connect_timeout: float = Field(
        DEFAULT_CONNECT_TIMEOUT_SECS,
        gt=0,
        description="Connection timeout in seconds",
    )
    max_connections: int = Field(
        DEFAULT_MAX_CONNECTIONS,
        ge=1,
        description="Maximum number of connections in the pool",
    )
    idle_timeout: float = Field(
        DEFAULT_RECYCLE_TIMEOUT_SECS,
        ge=0,
        description="Recycle timeout in seconds",
    )

    def to_config(self) -> EndpointConfig:
        return EndpointConfig(
            address=self.host,
            namespace=self.ns,
            database=self.db,
            credentials=self.creds.to_credentials(),
            connect_timeout_secs=self.connect_timeout,
            max_connections=self.max_connections,
            recycle_timeout_secs=self.idle_timeout,
        )


def load_pool_settings(env_file: Optional[Union[str, Path]] = None, **overrides: Any) -> PoolSettings:
    """
    Load PoolSettings from the environment (and optionally a .env file).

    Args:
        env_file: Optional dotenv file to read in addition to the environment
        **overrides: Explicit values that win over the environment

    Raises:
        ConfigurationError: If a value is missing or invalid
    """
    try:
        return PoolSettings(_env_file=env_file, **overrides)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        config_key = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid SurrealDB pool settings: {first.get('msg', e)}",
            config_key=config_key,
            context={"error_count": e.error_count()},
        ) from e
