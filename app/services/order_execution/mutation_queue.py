"""
Mutation queue - buffered, coalesced persistence of field edits.

Writes are applied to the in-memory record immediately (read-your-writes)
and collected in a pending map keyed by field name, so a second write to
the same field replaces the first. The map is sent to the order store in
one request, either when the debounce timer fires or straight away for
immediate writes. It is only cleared on acknowledged success; a failed
flush keeps the values and re-arms the timer (at-least-once delivery of
the latest value per field).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from app.config import settings
from app.schemas.work_order import InspectionRecord
from app.services.order_store import OrderStore, OrderStoreError

logger = logging.getLogger(__name__)

_MISSING = object()


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules callbacks on the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class FlushResult:
    """Outcome of a flush. ``success`` with no fields means nothing was sent."""

    success: bool
    flushed_fields: list[str] = field(default_factory=list)
    error: Optional[str] = None


class MutationQueue:
    """Per-order write buffer in front of the order store."""

    def __init__(
        self,
        record: InspectionRecord,
        store: OrderStore,
        *,
        delay: Optional[float] = None,
        scheduler: Optional[Scheduler] = None,
        read_only: bool = False,
    ):
        self.order_id = record.id
        self.store = store
        self.delay = settings.FLUSH_DELAY_SECONDS if delay is None else delay
        self.scheduler = scheduler or LoopScheduler()
        self.read_only = read_only

        self._record = record
        self._pending: dict[str, Any] = {}
        self._timer: Optional[TimerHandle] = None
        self._flush_task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._in_flight = False
        self._closed = False

    @property
    def record(self) -> InspectionRecord:
        return self._record

    @property
    def pending(self) -> dict[str, Any]:
        return dict(self._pending)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    @property
    def save_state(self) -> str:
        """Passive indicator: saving, pending or saved."""
        if self._in_flight:
            return "saving"
        if self._pending:
            return "pending"
        return "saved"

    def apply_external(self, **changes) -> None:
        """Reflect values the store changed on its own (e.g. status) without queueing them."""
        self._record = self._record.with_changes(**changes)

    async def set_field(self, name: str, value: Any, immediate: bool = False) -> bool:
        """
        Write a field locally and queue it for persistence.

        Returns False when the write was suppressed because the order is
        read-only.
        """
        if self.read_only:
            logger.debug(f"Order {self.order_id} is read-only, write to {name} suppressed")
            return False
        if name not in type(self._record).model_fields:
            raise ValueError(f"Unknown field '{name}'")

        self._record = self._record.with_changes(**{name: value})
        self._pending[name] = getattr(self._record, name)

        if immediate:
            await self.flush()
        else:
            self._arm_timer()
        return True

    async def set_fields(self, changes: dict[str, Any], immediate: bool = False) -> bool:
        """Write several fields; flushes at most once."""
        if self.read_only:
            return False
        for name, value in changes.items():
            await self.set_field(name, value, immediate=False)
        if immediate:
            await self.flush()
        return True

    async def flush(self) -> FlushResult:
        """Send the coalesced pending map to the store in a single request."""
        self._cancel_timer()
        async with self._lock:
            self._cancel_timer()
            if not self._pending:
                return FlushResult(success=True)

            batch = dict(self._pending)
            self._in_flight = True
            try:
                await self.store.update_order(self.order_id, batch)
            except OrderStoreError as e:
                logger.warning(
                    f"Flush failed for order {self.order_id} ({len(batch)} fields), will retry: {e}"
                )
                self._arm_timer()
                return FlushResult(success=False, error=str(e))
            finally:
                self._in_flight = False

            # Values written while the request was in flight stay pending
            for name, value in batch.items():
                if self._pending.get(name, _MISSING) == value:
                    del self._pending[name]

            if self._pending:
                self._arm_timer()

            logger.debug(f"Flushed order {self.order_id}: {sorted(batch)}")
            return FlushResult(success=True, flushed_fields=sorted(batch))

    async def close(self) -> FlushResult:
        """Flush whatever is pending and stop the timer."""
        result = await self.flush()
        self._closed = True
        self._cancel_timer()
        return result

    def _arm_timer(self) -> None:
        if self._closed:
            return
        self._cancel_timer()
        self._timer = self.scheduler.call_later(self.delay, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        # An explicit flush in progress will pick up (or re-arm for) anything left
        if self._lock.locked() or not self._pending:
            return
        self._flush_task = asyncio.get_running_loop().create_task(self._timer_flush())

    async def _timer_flush(self) -> None:
        result = await self.flush()
        if not result.success:
            logger.info(f"Background flush for order {self.order_id} deferred: {result.error}")
