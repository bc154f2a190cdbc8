"""
Health check utilities for SURREALDB_POOL.

Provides health check functions for monitoring pool status.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..constants import POOL_USAGE_CRITICAL_PERCENT, POOL_USAGE_DEGRADED_PERCENT
from ..exceptions import SurrealPoolError

if TYPE_CHECKING:
    from ..core.pool import Pool

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """Result of a health check."""

    name: str
    status: HealthStatus
    message: str
    details: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class HealthChecker:
    """
    Runs a set of registered health checks and folds them into one status.
    """

    def __init__(self):
        self._checks: list[Callable[[], Awaitable[HealthCheckResult]]] = []

    def register_check(self, check_func: Callable[[], Awaitable[HealthCheckResult]]) -> None:
        """
        Register a health check function.

        Args:
            check_func: Async function that returns HealthCheckResult
        """
        self._checks.append(check_func)

    async def check_all(self) -> dict[str, Any]:
        """
        Run all registered health checks.

        Returns:
            Dictionary with overall status and individual check results
        """
        results: list[HealthCheckResult] = []

        for check_func in self._checks:
            name = getattr(check_func, "__name__", repr(check_func))
            try:
                results.append(await check_func())
            except (SurrealPoolError, RuntimeError, ValueError, TypeError, OSError) as e:
                logger.error(f"Health check {name} failed: {e}", exc_info=True)
                results.append(
                    HealthCheckResult(
                        name=name,
                        status=HealthStatus.UNKNOWN,
                        message=f"Check failed: {str(e)}",
                    )
                )

        statuses = [r.status for r in results]
        if HealthStatus.UNHEALTHY in statuses:
            overall_status = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED in statuses:
            overall_status = HealthStatus.DEGRADED
        elif all(s == HealthStatus.HEALTHY for s in statuses):
            overall_status = HealthStatus.HEALTHY
        else:
            overall_status = HealthStatus.UNKNOWN

        return {
            "status": overall_status.value,
            "timestamp": datetime.now().isoformat(),
            "checks": [r.to_dict() for r in results],
        }


async def check_pool_health(pool: "Pool | None") -> HealthCheckResult:
    """
    Check pool capacity usage.

    Usage above 80% of max_size is degraded, above 90% unhealthy. A closed
    pool is always unhealthy.
    """
    if pool is None:
        return HealthCheckResult(
            name="connection_pool",
            status=HealthStatus.UNHEALTHY,
            message="Pool not initialized",
        )

    status = pool.status()
    details = {"pool": pool.name, **status.to_dict()}

    if pool.is_closed:
        return HealthCheckResult(
            name="connection_pool",
            status=HealthStatus.UNHEALTHY,
            message="Connection pool is closed",
            details=details,
        )

    usage_percent = status.usage_percent
    if usage_percent > POOL_USAGE_CRITICAL_PERCENT:
        health = HealthStatus.UNHEALTHY
        message = f"Connection pool usage is critical: {usage_percent:.1f}%"
    elif usage_percent > POOL_USAGE_DEGRADED_PERCENT:
        health = HealthStatus.DEGRADED
        message = f"Connection pool usage is high: {usage_percent:.1f}%"
    else:
        health = HealthStatus.HEALTHY
        message = f"Connection pool is healthy: {usage_percent:.1f}% usage"

    return HealthCheckResult(
        name="connection_pool",
        status=health,
        message=message,
        details=details,
    )


async def check_connection_health(
    pool: "Pool | None", timeout_seconds: float = 5.0
) -> HealthCheckResult:
    """
    Borrow a connection and run the health query on it.

    Args:
        pool: Pool to check
        timeout_seconds: Budget for acquiring the connection and running the query

    Returns:
        HealthCheckResult
    """
    if pool is None:
        return HealthCheckResult(
            name="surrealdb",
            status=HealthStatus.UNHEALTHY,
            message="Pool not initialized",
        )

    async def _probe() -> None:
        async with pool.acquire() as conn:
            await conn.health()

    try:
        await asyncio.wait_for(_probe(), timeout=timeout_seconds)
        return HealthCheckResult(
            name="surrealdb",
            status=HealthStatus.HEALTHY,
            message="SurrealDB connection is healthy",
            details={"pool": pool.name, "timeout_seconds": timeout_seconds},
        )
    except asyncio.TimeoutError:
        return HealthCheckResult(
            name="surrealdb",
            status=HealthStatus.UNHEALTHY,
            message=f"SurrealDB health query timed out after {timeout_seconds}s",
            details={"pool": pool.name},
        )
    except (SurrealPoolError, OSError) as e:
        return HealthCheckResult(
            name="surrealdb",
            status=HealthStatus.UNHEALTHY,
            message=f"SurrealDB health check failed: {str(e)}",
            details={"pool": pool.name, "error_type": type(e).__name__},
        )
