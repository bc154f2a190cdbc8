"""
Core pooling components.

The Manager creates and recycles connections; the Pool bounds, lends and
reclaims them.
"""

from .manager import Manager
from .pool import Pool, PooledConnection, build_pool
from .types import (PoolStatus, QueueMode, RetainResult, Runtime, Slot,
                    SlotMetrics, Timeouts)

__all__ = [
    "Manager",
    "Pool",
    "PooledConnection",
    "build_pool",
    "PoolStatus",
    "QueueMode",
    "RetainResult",
    "Runtime",
    "Slot",
    "SlotMetrics",
    "Timeouts",
]
