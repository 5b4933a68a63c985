"""
Execution Session Manager

Keeps one open execution session (record, mutation queue, workflow
controller) per work order, so debounced writes survive between requests.
Sessions are flushed and dropped on close, after finalization and on
application shutdown.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from app.config import settings
from app.services.order_execution.finalization import Finalizer
from app.services.order_execution.mutation_queue import FlushResult, MutationQueue, Scheduler
from app.services.order_execution.workflow import WorkflowController
from app.services.order_store import OrderStore

logger = logging.getLogger(__name__)


@dataclass
class ExecutionSession:
    order_id: int
    agent_id: Optional[str]
    queue: MutationQueue
    controller: WorkflowController


class ExecutionSessionManager:
    """Registry of open order-execution sessions."""

    def __init__(
        self,
        store: OrderStore,
        *,
        scheduler: Optional[Scheduler] = None,
        flush_delay: Optional[float] = None,
        finalizer_factory: Optional[Callable[..., Finalizer]] = None,
    ):
        self.store = store
        self.scheduler = scheduler
        self.flush_delay = flush_delay
        self.finalizer_factory = finalizer_factory or Finalizer
        self._sessions: Dict[int, ExecutionSession] = {}
        self._lock = asyncio.Lock()

    def __contains__(self, order_id: int) -> bool:
        return order_id in self._sessions

    @property
    def open_sessions(self) -> int:
        return len(self._sessions)

    async def open(self, order_id: int, agent_id: Optional[str] = None) -> ExecutionSession:
        """Return the open session for an order, loading the record if needed."""
        async with self._lock:
            session = self._sessions.get(order_id)
            if session is not None:
                return session

            record = await self.store.read_order(order_id)
            read_only = record.status in settings.READ_ONLY_STATUSES
            queue = MutationQueue(
                record,
                self.store,
                delay=self.flush_delay,
                scheduler=self.scheduler,
                read_only=read_only,
            )
            finalizer = self.finalizer_factory(queue, self.store)
            controller = WorkflowController(queue, self.store, finalizer)

            session = ExecutionSession(order_id, agent_id, queue, controller)
            self._sessions[order_id] = session

        logger.info(
            f"Execution session opened: order={order_id}, step={int(controller.step)}, "
            f"read_only={read_only}"
        )
        return session

    async def close(self, order_id: int) -> Optional[FlushResult]:
        """Flush and drop a session. Returns None when none was open."""
        session = self._sessions.pop(order_id, None)
        if session is None:
            return None
        result = await session.queue.close()
        if not result.success:
            logger.warning(f"Session for order {order_id} closed with unsaved fields: {result.error}")
        return result

    async def close_all(self) -> None:
        for order_id in list(self._sessions):
            await self.close(order_id)
