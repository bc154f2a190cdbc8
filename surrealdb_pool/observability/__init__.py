"""
Observability components.

Provides structured logging, per-pool metrics collection and health check
capabilities.
"""

from .health import (
    HealthChecker,
    HealthCheckResult,
    HealthStatus,
    check_connection_health,
    check_pool_health,
)
from .logging import (
    ContextualLoggerAdapter,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    get_logging_context,
    log_operation,
    pool_context,
    reset_pool_context,
    set_correlation_id,
    set_pool_context,
)
from .metrics import MetricsCollector, OperationMetrics

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "set_pool_context",
    "reset_pool_context",
    "pool_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
    "log_operation",
    # Health
    "HealthStatus",
    "HealthCheckResult",
    "HealthChecker",
    "check_pool_health",
    "check_connection_health",
]
