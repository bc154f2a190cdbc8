"""
Unit tests for health checks.

Tests pool usage thresholds and the connection round-trip check.
"""

import asyncio

import pytest

from surrealdb_pool.core.pool import build_pool
from surrealdb_pool.core.types import PoolStatus
from surrealdb_pool.observability.health import (HealthChecker,
                                                 HealthCheckResult,
                                                 HealthStatus,
                                                 check_connection_health,
                                                 check_pool_health)


class _StubPool:
    """Reports a fixed status."""

    name = "stub"

    def __init__(self, size, available, max_size=10, closed=False):
        self._status = PoolStatus(max_size=max_size, size=size, available=available, waiting=0)
        self.is_closed = closed

    def status(self):
        return self._status


@pytest.mark.asyncio
class TestCheckPoolHealth:
    @pytest.mark.parametrize(
        "in_use, expected",
        [
            (0, HealthStatus.HEALTHY),
            (8, HealthStatus.HEALTHY),
            (9, HealthStatus.DEGRADED),
            (10, HealthStatus.UNHEALTHY),
        ],
    )
    async def test_usage_thresholds(self, in_use, expected):
        result = await check_pool_health(_StubPool(size=in_use, available=0))

        assert result.status is expected
        assert result.details["in_use"] == in_use

    async def test_closed_pool_is_unhealthy(self):
        result = await check_pool_health(_StubPool(size=0, available=0, closed=True))
        assert result.status is HealthStatus.UNHEALTHY
        assert "closed" in result.message

    async def test_missing_pool(self):
        result = await check_pool_health(None)
        assert result.status is HealthStatus.UNHEALTHY


@pytest.mark.asyncio
@pytest.mark.timeout(10)
class TestCheckConnectionHealth:
    async def test_healthy_round_trip(self, endpoint_config, connector):
        pool = build_pool(endpoint_config, connector=connector)

        result = await check_connection_health(pool, timeout_seconds=1)

        assert result.status is HealthStatus.HEALTHY
        assert connector.clients[0].queries == [("RETURN true;", None)]
        assert pool.status().available == 1

    async def test_auth_failure_is_unhealthy(self, endpoint_config, connector):
        connector.fail_signin = True
        pool = build_pool(endpoint_config, connector=connector)

        result = await check_connection_health(pool, timeout_seconds=1)

        assert result.status is HealthStatus.UNHEALTHY
        assert result.details["error_type"] == "AuthError"

    async def test_timeout_is_unhealthy(self, endpoint_config, connector):
        connector.connect_delay = 0.3
        pool = build_pool(endpoint_config, connector=connector)

        result = await check_connection_health(pool, timeout_seconds=0.1)

        assert result.status is HealthStatus.UNHEALTHY
        assert "timed out" in result.message

        # the abandoned creation still completes and joins the pool
        await asyncio.sleep(0.5)
        assert pool.status().available == 1

    async def test_closed_pool_is_unhealthy(self, endpoint_config, connector):
        pool = build_pool(endpoint_config, connector=connector)
        await pool.close()

        result = await check_connection_health(pool)

        assert result.status is HealthStatus.UNHEALTHY


@pytest.mark.asyncio
class TestHealthChecker:
    async def test_overall_status_is_worst(self):
        checker = HealthChecker()

        async def healthy():
            return HealthCheckResult(name="a", status=HealthStatus.HEALTHY, message="ok")

        async def degraded():
            return HealthCheckResult(name="b", status=HealthStatus.DEGRADED, message="high")

        checker.register_check(healthy)
        checker.register_check(degraded)

        report = await checker.check_all()

        assert report["status"] == "degraded"
        assert [c["name"] for c in report["checks"]] == ["a", "b"]

    async def test_failing_check_is_unknown(self):
        checker = HealthChecker()

        async def broken():
            raise RuntimeError("no pool")

        checker.register_check(broken)

        report = await checker.check_all()

        assert report["status"] == "unknown"
        assert report["checks"][0]["name"] == "broken"
