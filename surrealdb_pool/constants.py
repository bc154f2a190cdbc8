"""
Constants for SURREALDB_POOL.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# ENDPOINT DEFAULTS
# ============================================================================

DEFAULT_CONNECT_TIMEOUT_SECS: Final[float] = 5
"""Default budget for establishing a new connection (seconds)."""

DEFAULT_MAX_CONNECTIONS: Final[int] = 10
"""Default maximum number of live connections per pool."""

DEFAULT_RECYCLE_TIMEOUT_SECS: Final[float] = 60
"""Default budget for re-validating a pooled connection (seconds)."""

DEFAULT_NAMESPACE: Final[str] = "test"
"""Namespace used by environment settings when none is given."""

DEFAULT_DATABASE: Final[str] = "test"
"""Database used by environment settings when none is given."""

DEFAULT_ROOT_USER: Final[str] = "root"
DEFAULT_ROOT_PASSWORD: Final[str] = "root"

# ============================================================================
# ADDRESS SCHEMES
# ============================================================================

EMBEDDED_SCHEMES: Final[tuple[str, ...]] = (
    "mem",
    "memory",
)
"""URL schemes served by the in-process engine (no remote authentication)."""


# ============================================================================
# SETTINGS
# ============================================================================

SETTINGS_ENV_PREFIX: Final[str] = "SURREALDB__"
SETTINGS_ENV_DELIMITER: Final[str] = "__"

# ============================================================================
# HEALTH & METRICS
# ============================================================================

HEALTH_QUERY: Final[str] = "RETURN true;"
"""Cheap statement used to prove a leased connection answers queries."""

POOL_USAGE_DEGRADED_PERCENT: Final[float] = 80
POOL_USAGE_CRITICAL_PERCENT: Final[float] = 90

MAX_METRICS: Final[int] = 1000
"""Maximum number of distinct metric keys kept per collector before eviction."""

# Operation names recorded by the pool
OP_POOL_WAIT: Final[str] = "pool.wait"
OP_CONNECTION_CREATE: Final[str] = "connection.create"
OP_CONNECTION_RECYCLE: Final[str] = "connection.recycle"
OP_CONNECTION_DESTROY: Final[str] = "connection.destroy"
