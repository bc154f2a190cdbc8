"""
Value types shared by the pool and the lifecycle manager.

This module is part of SURREALDB_POOL.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Runtime(str, Enum):
    """Async runtime a pool schedules its timeouts and background work on."""

    ASYNCIO = "asyncio"


class QueueMode(str, Enum):
    """Order in which idle connections are handed out."""

    FIFO = "fifo"
    LIFO = "lifo"


@dataclass(frozen=True)
class Timeouts:
    """
    Independent time budgets (seconds) for the pool's three waits.

    None disables a budget. A wait budget of 0 means "never wait": get()
    fails at once if no capacity is free.

    Attributes:
        wait: Waiting for a free slot
        create: Establishing a new connection
        recycle: Re-validating an idle connection
    """

    wait: Optional[float] = None
    create: Optional[float] = None
    recycle: Optional[float] = None

    def items(self) -> tuple[tuple[str, Optional[float]], ...]:
        return (("wait", self.wait), ("create", self.create), ("recycle", self.recycle))


@dataclass
class SlotMetrics:
    """
    Bookkeeping kept alongside every pooled connection.

    Timestamps come from time.monotonic().
    """

    created: float = field(default_factory=time.monotonic)
    recycled: Optional[float] = None
    recycle_count: int = 0
    use_count: int = 0

    def age(self) -> float:
        """Seconds since the connection was created."""
        return time.monotonic() - self.created

    def last_used(self) -> float:
        """Seconds since the connection was created or last recycled."""
        return time.monotonic() - (self.recycled or self.created)

    def mark_recycled(self) -> None:
        self.recycled = time.monotonic()
        self.recycle_count += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "age_seconds": round(self.age(), 3),
            "last_used_seconds": round(self.last_used(), 3),
            "recycle_count": self.recycle_count,
            "use_count": self.use_count,
        }


@dataclass
class Slot:
    """One live connection and its metrics; replaced, never mutated in place."""

    client: Any
    metrics: SlotMetrics = field(default_factory=SlotMetrics)


@dataclass(frozen=True)
class PoolStatus:
    """
    Point-in-time view of a pool.

    Attributes:
        max_size: Configured upper bound on live connections
        size: Live connections plus connections being created
        available: Idle connections ready to be handed out
        waiting: Callers currently waiting for a slot
    """

    max_size: int
    size: int
    available: int
    waiting: int

    @property
    def in_use(self) -> int:
        return self.size - self.available

    @property
    def usage_percent(self) -> float:
        return round(self.in_use / self.max_size * 100, 2) if self.max_size else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_size": self.max_size,
            "size": self.size,
            "available": self.available,
            "waiting": self.waiting,
            "in_use": self.in_use,
            "usage_percent": self.usage_percent,
        }


@dataclass(frozen=True)
class RetainResult:
    """Outcome of Pool.retain()."""

    retained: int
    removed: int
