"""
SURREALDB_POOL - Async connection pooling for SurrealDB

Bounded, lazily recycled pools of authenticated SurrealDB connections
for asyncio applications.
"""

# Configuration
from .config import (AuthScope, ConfigBuilder, DatabaseCredentials,
                     EndpointConfig, NamespaceCredentials, PoolSettings,
                     RootCredentials, load_pool_settings)
# Pooling
from .core import (Manager, Pool, PooledConnection, PoolStatus, QueueMode,
                   RetainResult, Runtime, SlotMetrics, Timeouts, build_pool)
# Errors
from .exceptions import (AuthError, BuildError, ConfigurationError,
                         ConnectError, DriverError, PoolClosedError,
                         PoolTimeoutError, RecycleError, SelectError,
                         SurrealPoolError, TimeoutType)

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "EndpointConfig",
    "ConfigBuilder",
    "AuthScope",
    "RootCredentials",
    "NamespaceCredentials",
    "DatabaseCredentials",
    "PoolSettings",
    "load_pool_settings",
    # Pooling
    "build_pool",
    "Pool",
    "PooledConnection",
    "Manager",
    "PoolStatus",
    "RetainResult",
    "SlotMetrics",
    "Timeouts",
    "QueueMode",
    "Runtime",
    # Errors
    "SurrealPoolError",
    "ConfigurationError",
    "BuildError",
    "DriverError",
    "ConnectError",
    "AuthError",
    "SelectError",
    "RecycleError",
    "PoolTimeoutError",
    "PoolClosedError",
    "TimeoutType",
]
