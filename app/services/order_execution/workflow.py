"""
Order execution workflow.

Four ordered steps: Summary -> Inspection -> Installation -> Closing.
Advancing from Inspection jumps straight to Closing when the checklist
ends the visit early (suggestion other than CHANGE_COMPLETED), and the
suggested motive is pre-selected. Going back from Closing mirrors that
jump. Every step change is persisted immediately so a reload resumes
where the agent left off.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from app.config import settings
from app.schemas.closure_motive import ClosureMotiveCode
from app.schemas.work_order import (
    Answer,
    CLOSURE_FIELDS,
    INSTALLATION_FIELDS,
    InspectionRecord,
    Question,
    Step,
)
from app.services.gps_tracking_service import GeolocationProvider
from app.services.order_execution.decision import suggest
from app.services.order_execution.finalization import FinalizationResult, Finalizer
from app.services.order_execution.mutation_queue import FlushResult, MutationQueue
from app.services.order_execution.visibility import askable_questions
from app.services.order_store import OrderStore, OrderStoreError

logger = logging.getLogger(__name__)


def initial_step(record: InspectionRecord) -> Step:
    """Resume from the persisted step, or start at Summary."""
    if record.current_step in tuple(Step):
        return Step(record.current_step)
    return Step.SUMMARY


class WorkflowController:
    """State machine driving one agent through one order."""

    def __init__(self, queue: MutationQueue, store: OrderStore, finalizer: Finalizer):
        self.queue = queue
        self.store = store
        self.finalizer = finalizer
        self.clock = finalizer.clock
        self.step = initial_step(queue.record)
        self.finalized = False

    @property
    def record(self) -> InspectionRecord:
        return self.queue.record

    @property
    def read_only(self) -> bool:
        return self.queue.read_only

    @property
    def suggestion(self) -> ClosureMotiveCode:
        return suggest(self.record)

    @property
    def installation_skipped(self) -> bool:
        return self.step == Step.CLOSING and self.suggestion != ClosureMotiveCode.CHANGE_COMPLETED

    def askable_questions(self) -> list[Question]:
        return askable_questions(self.record)

    # ==================== Navigation ====================

    async def next_step(self) -> Step:
        if self.step == Step.CLOSING:
            return self.step

        if self.step == Step.INSPECTION:
            return await self._leave_inspection()

        if self.step == Step.SUMMARY:
            await self._start_execution()
        return await self.go_to(Step(self.step + 1))

    async def previous_step(self) -> Step:
        if self.step == Step.SUMMARY:
            return self.step
        if self.step == Step.CLOSING and self.suggestion != ClosureMotiveCode.CHANGE_COMPLETED:
            return await self.go_to(Step.INSPECTION)
        return await self.go_to(Step(self.step - 1))

    async def go_to(self, step: Step) -> Step:
        """Move to ``step`` and persist it (suppressed when read-only)."""
        step = Step(step)
        if self.finalized:
            return self.step
        self.step = step
        await self.queue.set_field("current_step", int(step), immediate=True)
        return self.step

    async def _leave_inspection(self) -> Step:
        suggested = self.suggestion
        # Motive 1 only holds on the first visit; a later visit re-derives it
        stale = (
            self.record.closure_motive == ClosureMotiveCode.NO_RESIDENT_FIRST_VISIT
            and suggested != ClosureMotiveCode.NO_RESIDENT_FIRST_VISIT
        )
        if suggested == ClosureMotiveCode.CHANGE_COMPLETED:
            if stale:
                await self.queue.set_field("closure_motive", None, immediate=True)
            return await self.go_to(Step.INSTALLATION)

        logger.info(
            f"Order {self.queue.order_id}: checklist ends visit early "
            f"(motive {int(suggested)}), skipping installation"
        )
        if self.record.closure_motive is None or stale:
            await self.queue.set_field("closure_motive", int(suggested), immediate=True)
        return await self.go_to(Step.CLOSING)

    async def _start_execution(self) -> None:
        if self.read_only:
            return
        if self.record.execution_started_at is None:
            await self.queue.set_field(
                "execution_started_at", self.clock(), immediate=True
            )
        if self.record.status != settings.STATUS_IN_EXECUTION:
            try:
                await self.store.set_order_status(self.queue.order_id, settings.STATUS_IN_EXECUTION)
            except OrderStoreError as e:
                logger.warning(f"Could not mark order {self.queue.order_id} in execution: {e}")
            else:
                self.queue.apply_external(status=settings.STATUS_IN_EXECUTION)

    # ==================== Field edits ====================

    async def answer(self, question: Question, answer: Optional[Answer]) -> bool:
        """Record a checklist answer; persisted immediately."""
        return await self.queue.set_field(Question(question).value, answer, immediate=True)

    async def update_fields(self, changes: dict[str, Any]) -> bool:
        """
        Edit installation and closure fields.

        Closure fields are written immediately, installation fields are
        debounced.
        """
        unknown = set(changes) - INSTALLATION_FIELDS - CLOSURE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

        installation = {k: v for k, v in changes.items() if k in INSTALLATION_FIELDS}
        closure = {k: v for k, v in changes.items() if k in CLOSURE_FIELDS}

        accepted = True
        if installation:
            accepted = await self.queue.set_fields(installation) and accepted
        if closure:
            accepted = await self.queue.set_fields(closure, immediate=True) and accepted
        return accepted

    async def set_removed_meter_reading(self, reading: Optional[Decimal]) -> bool:
        """Store the removed meter's reading as a difference against the previous reading."""
        if reading is None:
            difference = None
        else:
            difference = Decimal(reading) - (self.record.previous_reading or Decimal("0"))
        return await self.queue.set_field("reading_difference", difference)

    async def flush(self) -> FlushResult:
        return await self.queue.flush()

    # ==================== Finalization ====================

    async def finalize(
        self, evidence_count: int, geolocation: Optional[GeolocationProvider] = None
    ) -> FinalizationResult:
        if self.finalized:
            return FinalizationResult(success=True, status=self.record.status)

        result = await self.finalizer.finalize(evidence_count, geolocation)
        if result.redirect_step is not None:
            await self.go_to(result.redirect_step)
        if result.success:
            self.step = Step.CLOSING
            self.finalized = True
        return result
