"""
Bounded SurrealDB connection pool.

The pool admits at most max_size live connections and lends each one to a
single caller at a time. Capacity is a semaphore permit: a caller holds one
from the moment get() admits it until its lease is released, or until the
connection it was creating has settled. Idle connections hold no permit.

All bookkeeping (idle deque, size and waiting counters) is mutated between
await points only, so the event loop serializes it; create() and recycle()
run with nothing held but the caller's own permit.

Usage:
    pool = build_pool(config)

    async with pool.acquire() as conn:
        result = await conn.run("SELECT * FROM person")

    await pool.close()

A lease that is never released permanently shrinks the pool. Use
"async with pool.acquire()" or call release() in a finally block.

This module is part of SURREALDB_POOL.
"""

import asyncio
import itertools
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Generator, Optional, Union

from ..config import EndpointConfig
from ..constants import (
    DEFAULT_MAX_CONNECTIONS,
    HEALTH_QUERY,
    OP_CONNECTION_CREATE,
    OP_CONNECTION_DESTROY,
    OP_CONNECTION_RECYCLE,
    OP_POOL_WAIT,
)
from ..database.client import AuthExemptPredicate, Connector
from ..exceptions import (
    BuildError,
    PoolClosedError,
    PoolTimeoutError,
    RecycleError,
    SurrealPoolError,
    TimeoutType,
)
from ..observability import MetricsCollector, log_operation, pool_context
from ..observability import get_logger as get_contextual_logger
from .manager import Manager
from .types import PoolStatus, QueueMode, RetainResult, Runtime, Slot, SlotMetrics, Timeouts

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

_pool_ids = itertools.count(1)


class _Permit:
    """One unit of pool capacity taken from the semaphore."""

    __slots__ = ("_semaphore", "_held")

    def __init__(self, semaphore: asyncio.Semaphore) -> None:
        self._semaphore = semaphore
        self._held = True

    def hand_off(self) -> "_Permit":
        """Move the capacity to a new owner; this permit stops releasing it."""
        self._held = False
        return _Permit(self._semaphore)

    def release(self) -> None:
        if self._held:
            self._held = False
            self._semaphore.release()


class PooledConnection:
    """
    Exclusive lease on one pooled connection.

    Returned by Pool.get() / Pool.acquire(). Releasing it (explicitly or on
    leaving "async with") hands the connection back to the pool; it is
    re-validated lazily by the next get().
    """

    def __init__(self, pool: "Pool", slot: Slot, permit: _Permit) -> None:
        self._pool = pool
        self._slot: Optional[Slot] = slot
        self._permit = permit
        self._discard = False

    @property
    def client(self) -> Any:
        """The leased database client."""
        if self._slot is None:
            raise SurrealPoolError("Connection lease already released", context={"pool": self._pool.name})
        return self._slot.client

    @property
    def metrics(self) -> SlotMetrics:
        if self._slot is None:
            raise SurrealPoolError("Connection lease already released", context={"pool": self._pool.name})
        return self._slot.metrics

    @property
    def released(self) -> bool:
        return self._slot is None

    async def run(self, query: str, variables: Optional[dict[str, Any]] = None) -> Any:
        """Run a query on the leased connection."""
        return await self.client.query(query, variables)

    query = run

    async def health(self) -> Any:
        """Prove the leased connection still answers queries."""
        return await self.run(HEALTH_QUERY)

    def discard(self) -> None:
        """Close the connection on release instead of returning it to the pool."""
        self._discard = True

    def release(self) -> None:
        """Return the connection to the pool. Safe to call more than once."""
        if self._slot is None:
            return
        slot, self._slot = self._slot, None
        self._pool._return(slot, self._permit, discard=self._discard)

    async def __aenter__(self) -> "PooledConnection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._slot is None else "leased"
        return f"PooledConnection(pool={self._pool.name!r}, {state})"


class _AcquireContext:
    """Awaitable and async context manager returned by Pool.acquire()."""

    __slots__ = ("_pool", "_timeouts", "_lease")

    def __init__(self, pool: "Pool", timeouts: Optional[Timeouts]) -> None:
        self._pool = pool
        self._timeouts = timeouts
        self._lease: Optional[PooledConnection] = None

    def __await__(self) -> Generator[Any, None, PooledConnection]:
        return self._pool.get(self._timeouts).__await__()

    async def __aenter__(self) -> PooledConnection:
        self._lease = await self._pool.get(self._timeouts)
        return self._lease

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._lease is not None:
            self._lease.release()
            self._lease = None


class Pool:
    """
    Bounded pool of SurrealDB connections.

    Connections are created on demand by the Manager, up to max_size, and
    recycled lazily when a caller asks for one. Callers that find the pool
    exhausted wait in FIFO order.
    """

    def __init__(
        self,
        manager: Manager,
        max_size: int = DEFAULT_MAX_CONNECTIONS,
        timeouts: Optional[Timeouts] = None,
        runtime: Optional[Union[Runtime, str]] = None,
        queue_mode: Union[QueueMode, str] = QueueMode.FIFO,
        name: Optional[str] = None,
    ) -> None:
        """
        Args:
            manager: Creates and recycles connections
            max_size: Maximum number of live connections
            timeouts: Default wait/create/recycle budgets
            runtime: Async runtime hint (only asyncio is supported)
            queue_mode: Whether the oldest (FIFO) or newest (LIFO) idle
                connection is reused first
            name: Name used in logs and metrics (generated if omitted)

        Raises:
            BuildError: If sizing, timeouts or runtime are invalid
        """
        if max_size < 1:
            raise BuildError(f"max_size must be >= 1, got {max_size}", context={"max_size": max_size})

        timeouts = timeouts or Timeouts()
        for key, value in timeouts.items():
            if value is not None and value < 0:
                raise BuildError(
                    f"{key} timeout must be >= 0, got {value}",
                    context={"timeout_type": key},
                )

        if runtime is not None:
            try:
                Runtime(runtime)
            except ValueError as e:
                raise BuildError(
                    f"Unsupported runtime: {runtime!r}",
                    context={"supported": ",".join(r.value for r in Runtime)},
                ) from e

        try:
            self._queue_mode = QueueMode(queue_mode)
        except ValueError as e:
            raise BuildError(f"Unsupported queue mode: {queue_mode!r}") from e

        self.manager = manager
        self.name = name or f"surrealdb-pool-{next(_pool_ids)}"
        self.metrics = MetricsCollector()

        self._max_size = max_size
        self._timeouts = timeouts
        self._semaphore = asyncio.Semaphore(max_size)
        self._idle: deque[Slot] = deque()
        self._size = 0
        self._waiting = 0
        self._closed = False
        self._background: set[asyncio.Task] = set()

    # -- public API ---------------------------------------------------------

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def timeouts(self) -> Timeouts:
        return self._timeouts

    @property
    def is_closed(self) -> bool:
        return self._closed

    def status(self) -> PoolStatus:
        """Current size, idle and waiting counts."""
        return PoolStatus(
            max_size=self._max_size,
            size=self._size,
            available=len(self._idle),
            waiting=self._waiting,
        )

    def acquire(self, timeouts: Optional[Timeouts] = None) -> _AcquireContext:
        """
        Borrow a connection.

        Use as "async with pool.acquire() as conn:" to release on every exit
        path, or "conn = await pool.acquire()" and release it yourself.
        """
        return _AcquireContext(self, timeouts)

    async def get(self, timeouts: Optional[Timeouts] = None) -> PooledConnection:
        """
        Borrow a connection, waiting for capacity if the pool is exhausted.

        Args:
            timeouts: Budgets for this call (defaults to the pool's)

        Returns:
            A lease on a connection that passed recycle or was just created

        Raises:
            PoolTimeoutError: If the wait or create budget is exceeded
            PoolClosedError: If the pool is closed
            ConnectError, AuthError, SelectError: If a new connection fails
        """
        timeouts = timeouts or self._timeouts
        self._ensure_open()

        with self._logging_scope():
            deadline = None
            if timeouts.wait is not None:
                deadline = asyncio.get_running_loop().time() + timeouts.wait

            permit = await self._acquire_permit(timeouts.wait)
            try:
                slot = await self._checkout(permit, timeouts, deadline)
            except BaseException:
                permit.release()
                raise

        slot.metrics.use_count += 1
        return PooledConnection(self, slot, permit)

    def retain(self, predicate: Callable[[Any, SlotMetrics], bool]) -> RetainResult:
        """
        Keep only the idle connections for which predicate(client, metrics) holds.

        Every idle connection is judged before any is removed, so a predicate
        that raises leaves the idle set untouched.

        Example (drop connections idle for more than five minutes):
            pool.retain(lambda _, metrics: metrics.last_used() < 300)
        """
        rejected = [
            slot for slot in list(self._idle) if not predicate(slot.client, slot.metrics)
        ]
        rejected_ids = {id(slot) for slot in rejected}
        self._idle = deque(slot for slot in self._idle if id(slot) not in rejected_ids)

        with self._logging_scope():
            for slot in rejected:
                self._destroy(slot, reason="retain")
        return RetainResult(retained=len(self._idle), removed=len(rejected))

    async def close(self) -> None:
        """
        Close the pool.

        Idle connections are closed, waiting callers fail with
        PoolClosedError and leases released afterwards are closed instead of
        pooled. Idempotent.
        """
        if self._closed:
            return
        self._closed = True
        start_time = time.perf_counter()

        with self._logging_scope():
            idle, self._idle = list(self._idle), deque()
            for slot in idle:
                self._size -= 1
                await self._close_client(slot.client, reason="pool_closed")

            # wake one waiter; every waiter that wakes into a closed pool passes it on
            self._semaphore.release()

            if self._background:
                await asyncio.wait(set(self._background))

            log_operation(
                contextual_logger,
                "pool.close",
                duration_ms=(time.perf_counter() - start_time) * 1000,
                closed_idle=len(idle),
                leased=self._size,
            )

    async def __aenter__(self) -> "Pool":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        status = self.status()
        return (
            f"Pool(name={self.name!r}, size={status.size}/{status.max_size}, "
            f"available={status.available}, closed={self._closed})"
        )

    # -- internals ----------------------------------------------------------

    def _logging_scope(self):
        config = self.manager.config
        return pool_context(
            self.name,
            address=config.address,
            namespace=config.namespace,
            database=config.database,
        )

    def _ensure_open(self) -> None:
        if self._closed:
            raise PoolClosedError("Pool is closed", context={"pool": self.name})

    async def _apply_timeout(
        self, timeout_type: TimeoutType, timeout: Optional[float], awaitable: Awaitable[Any]
    ) -> Any:
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as e:
            raise PoolTimeoutError(timeout_type, timeout, context={"pool": self.name}) from e

    async def _acquire_permit(self, timeout: Optional[float]) -> _Permit:
        self._waiting += 1
        try:
            with self.metrics.timed(OP_POOL_WAIT):
                if timeout == 0:
                    if self._semaphore.locked():
                        raise PoolTimeoutError(TimeoutType.WAIT, 0, context={"pool": self.name})
                    await self._semaphore.acquire()
                else:
                    await self._apply_timeout(TimeoutType.WAIT, timeout, self._semaphore.acquire())
        finally:
            self._waiting -= 1

        if self._closed:
            self._semaphore.release()
            raise PoolClosedError("Pool was closed while waiting for a slot", context={"pool": self.name})
        return _Permit(self._semaphore)

    async def _checkout(
        self, permit: _Permit, timeouts: Timeouts, deadline: Optional[float]
    ) -> Slot:
        while True:
            slot = self._pop_idle()
            if slot is None:
                return await self._create_slot(permit, timeouts.create)

            if await self._try_recycle(slot, timeouts.recycle):
                return slot

            if deadline is not None and asyncio.get_running_loop().time() >= deadline:
                raise PoolTimeoutError(
                    TimeoutType.WAIT,
                    timeouts.wait,
                    context={"pool": self.name, "reason": "recycle failures exhausted the wait budget"},
                )

    def _pop_idle(self) -> Optional[Slot]:
        if not self._idle:
            return None
        if self._queue_mode is QueueMode.LIFO:
            return self._idle.pop()
        return self._idle.popleft()

    async def _try_recycle(self, slot: Slot, timeout: Optional[float]) -> bool:
        start_time = time.perf_counter()
        try:
            await self._apply_timeout(
                TimeoutType.RECYCLE, timeout, self.manager.recycle(slot.client, slot.metrics)
            )
        except (RecycleError, PoolTimeoutError) as e:
            outcome = "timeout" if isinstance(e, PoolTimeoutError) else "failed"
            self._record(OP_CONNECTION_RECYCLE, start_time, success=False, outcome=outcome)
            contextual_logger.info(
                "Discarding connection that failed recycle",
                extra={"outcome": outcome, "error": str(e), **slot.metrics.to_dict()},
            )
            self._destroy(slot, reason=f"recycle_{outcome}")
            return False
        except BaseException:
            self._record(OP_CONNECTION_RECYCLE, start_time, success=False, outcome="aborted")
            self._destroy(slot, reason="recycle_aborted")
            raise

        slot.metrics.mark_recycled()
        self._record(OP_CONNECTION_RECYCLE, start_time, success=True, outcome="ok")
        return True

    async def _create_slot(self, permit: _Permit, timeout: Optional[float]) -> Slot:
        # reserve capacity before the network call so concurrent callers see it
        self._size += 1
        start_time = time.perf_counter()
        task = asyncio.ensure_future(self.manager.create())
        try:
            client = await self._apply_timeout(TimeoutType.CREATE, timeout, asyncio.shield(task))
        except PoolTimeoutError:
            task.cancel()
            self._settle_in_background(task, permit.hand_off(), start_time)
            raise
        except asyncio.CancelledError:
            # the caller gave up; the creation finishes on its own and joins the idle set
            self._settle_in_background(task, permit.hand_off(), start_time)
            raise
        except BaseException as e:
            self._size -= 1
            self._record(OP_CONNECTION_CREATE, start_time, success=False)
            contextual_logger.warning(
                "Failed to create SurrealDB connection",
                extra={"error_type": type(e).__name__, "error": str(e)},
            )
            raise

        self._record(OP_CONNECTION_CREATE, start_time, success=True)
        contextual_logger.debug(
            "Added connection to pool",
            extra={"size": self._size, "max_size": self._max_size},
        )
        return Slot(client=client)

    def _settle_in_background(self, task: asyncio.Future, permit: _Permit, start_time: float) -> None:
        """Finish the bookkeeping of a creation whose caller is gone."""

        def _settle(done: asyncio.Future) -> None:
            try:
                if done.cancelled():
                    self._size -= 1
                    self._record(OP_CONNECTION_CREATE, start_time, success=False, outcome="cancelled")
                elif done.exception() is not None:
                    self._size -= 1
                    self._record(OP_CONNECTION_CREATE, start_time, success=False, outcome="orphaned")
                    logger.warning(
                        f"Background connection creation for pool {self.name} failed: {done.exception()}"
                    )
                else:
                    self._record(OP_CONNECTION_CREATE, start_time, success=True, outcome="orphaned")
                    slot = Slot(client=done.result())
                    if self._closed:
                        self._destroy(slot, reason="pool_closed")
                    else:
                        self._idle.append(slot)
            finally:
                permit.release()

        if task.done():
            _settle(task)
        else:
            task.add_done_callback(_settle)

    def _return(self, slot: Slot, permit: _Permit, discard: bool = False) -> None:
        # idle first, then the permit, so the woken waiter finds the slot
        if discard or self._closed:
            with self._logging_scope():
                self._destroy(slot, reason="discarded" if discard else "pool_closed")
        else:
            self._idle.append(slot)
        permit.release()

    def _destroy(self, slot: Slot, reason: str) -> None:
        self._size -= 1
        self._spawn(self._close_client(slot.client, reason=reason))

    async def _close_client(self, client: Any, reason: str) -> None:
        with self.metrics.timed(OP_CONNECTION_DESTROY, reason=reason):
            await self.manager.close(client)
        logger.debug(f"Closed connection from pool {self.name} ({reason})")

    def _spawn(self, coro: Awaitable[None]) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning(f"No running event loop; connection from pool {self.name} dropped unclosed")
            return
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _record(self, operation: str, start_time: float, success: bool, **tags: Any) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        self.metrics.record_operation(operation, duration_ms, success, **tags)


def build_pool(
    config: EndpointConfig,
    runtime: Optional[Union[Runtime, str]] = None,
    *,
    connector: Optional[Connector] = None,
    auth_exempt: Optional[AuthExemptPredicate] = None,
    timeouts: Optional[Timeouts] = None,
    queue_mode: Union[QueueMode, str] = QueueMode.FIFO,
    name: Optional[str] = None,
) -> Pool:
    """
    Build a pool for an endpoint.

    Waiting for a slot and creating a connection are both bounded by
    config.connect_timeout_secs; recycling by config.recycle_timeout_secs
    (0 disables it). Pass timeouts to override all three.

    Args:
        config: Endpoint to pool connections for
        runtime: Async runtime hint (Runtime.ASYNCIO or None)
        connector: Opens transports (defaults to the surrealdb SDK)
        auth_exempt: Address predicate that skips sign-in (defaults to
            the embedded-engine schemes)
        timeouts: Explicit budgets instead of the ones derived from config
        queue_mode: FIFO or LIFO reuse of idle connections
        name: Pool name for logs and metrics

    Raises:
        BuildError: If the configuration cannot produce a pool
    """
    if config.connect_timeout_secs <= 0:
        raise BuildError(
            f"connect_timeout must be > 0, got {config.connect_timeout_secs}",
            context={"address": config.address},
        )
    if config.recycle_timeout_secs < 0:
        raise BuildError(
            f"recycle_timeout must be >= 0, got {config.recycle_timeout_secs}",
            context={"address": config.address},
        )

    manager = Manager(config, connector=connector, auth_exempt=auth_exempt)
    pool = Pool(
        manager,
        max_size=config.max_connections,
        timeouts=timeouts or config.timeouts(),
        runtime=runtime,
        queue_mode=queue_mode,
        name=name,
    )
    with pool._logging_scope():
        contextual_logger.info(
            "Built SurrealDB pool",
            extra={"max_size": pool.max_size, "auth_exempt": manager.auth_exempt},
        )
    return pool
