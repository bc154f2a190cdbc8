"""
Custom exceptions for SURREALDB_POOL.

Every error raised by the pool derives from SurrealPoolError, which keeps
backward compatibility with RuntimeError and carries an optional context
dictionary describing where the failure happened.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class SurrealPoolError(RuntimeError):
    """
    Base exception for SurrealDB pool errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (address,
                 namespace, scope, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConfigurationError(SurrealPoolError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        missing: Every required key that was absent (builder only)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        missing: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if missing:
            context["missing"] = ",".join(missing)
        super().__init__(message, context=context)
        self.config_key = config_key
        self.missing = missing or []


class BuildError(SurrealPoolError):
    """
    Raised when a pool cannot be built from otherwise complete configuration.

    Covers out-of-range sizing, negative timeouts and unsupported runtimes.
    """


class DriverError(SurrealPoolError):
    """
    Raised by the database client adapter.

    Normalizes whatever the SurrealDB SDK raises so the lifecycle manager
    only has to handle one driver failure type.

    Attributes:
        operation: Client operation that failed (connect, signin, use, ...)
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if operation:
            context["operation"] = operation
        super().__init__(message, context=context)
        self.operation = operation


class ConnectError(SurrealPoolError):
    """
    Raised when the transport connection to the address cannot be opened.

    Retryable by the caller.
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if address:
            context["address"] = address
        super().__init__(message, context=context)
        self.address = address


class AuthError(SurrealPoolError):
    """
    Raised when the remote side rejects the configured credentials.

    Attributes:
        scope: Authentication scope that was attempted (root, namespace, database)
    """

    def __init__(
        self,
        message: str,
        scope: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if scope:
            context["scope"] = scope
        super().__init__(message, context=context)
        self.scope = scope


class SelectError(SurrealPoolError):
    """
    Raised when selecting the default namespace/database fails after a
    successful sign-in.
    """

    def __init__(
        self,
        message: str,
        namespace: Optional[str] = None,
        database: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if namespace:
            context["namespace"] = namespace
        if database:
            context["database"] = database
        super().__init__(message, context=context)
        self.namespace = namespace
        self.database = database


class RecycleError(SurrealPoolError):
    """
    Raised when a previously pooled connection fails re-validation.

    The pool handles this internally by destroying the connection; callers
    only see it if they drive the manager directly.
    """


class TimeoutType(str, Enum):
    """Which pool budget expired."""

    WAIT = "wait"
    CREATE = "create"
    RECYCLE = "recycle"


class PoolTimeoutError(SurrealPoolError):
    """
    Raised when one of the pool's time budgets is exceeded.

    Attributes:
        timeout_type: The budget that expired (wait, create, recycle)
        timeout: The configured budget in seconds
    """

    def __init__(
        self,
        timeout_type: TimeoutType,
        timeout: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        context["timeout_type"] = timeout_type.value
        if timeout is not None:
            context["timeout"] = timeout
        super().__init__(f"Timeout occurred while {_TIMEOUT_ACTIONS[timeout_type]}", context)
        self.timeout_type = timeout_type
        self.timeout = timeout


_TIMEOUT_ACTIONS = {
    TimeoutType.WAIT: "waiting for a slot to become available",
    TimeoutType.CREATE: "creating a new connection",
    TimeoutType.RECYCLE: "recycling a connection",
}


class PoolClosedError(SurrealPoolError):
    """Raised when acquiring from a pool that has been closed."""
