"""
Order finalization.

Checks the closure preconditions (first failure wins), then captures the
position if missing, flushes the mutation queue and only after the
store acknowledged the fields requests the terminal status transition.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from app.config import settings
from app.schemas.closure_motive import ClosureMotiveCode
from app.schemas.work_order import InspectionRecord, Step
from app.services.gps_tracking_service import GeolocationProvider, GeolocationUnavailable
from app.services.order_execution.decision import suggest
from app.services.order_execution.mutation_queue import MutationQueue
from app.services.order_store import OrderStore, OrderStoreError

logger = logging.getLogger(__name__)


class FinalizationError(str, Enum):
    # Validation (recoverable by filling in data)
    INCOMPLETE_INSTALLATION = "incomplete installation data"
    MISSING_CLOSURE_MOTIVE = "missing closure motive"
    INSUFFICIENT_EVIDENCE = "insufficient evidence"
    SIGNATURE_REQUIRED = "signature required"
    # Fatal (local state kept, finalize may be retried)
    ALREADY_CLOSED = "order already closed"
    SAVE_FAILED = "changes could not be saved"
    STATUS_REJECTED = "status update rejected"


@dataclass
class ValidationFailure:
    error: FinalizationError
    message: str
    redirect_step: Optional[Step] = None


@dataclass
class FinalizationResult:
    success: bool
    status: Optional[str] = None
    error: Optional[FinalizationError] = None
    message: Optional[str] = None
    redirect_step: Optional[Step] = None

    @property
    def is_validation_error(self) -> bool:
        return self.error in (
            FinalizationError.INCOMPLETE_INSTALLATION,
            FinalizationError.MISSING_CLOSURE_MOTIVE,
            FinalizationError.INSUFFICIENT_EVIDENCE,
            FinalizationError.SIGNATURE_REQUIRED,
        )

    @classmethod
    def failed(cls, failure: ValidationFailure) -> "FinalizationResult":
        return cls(
            success=False,
            error=failure.error,
            message=failure.message,
            redirect_step=failure.redirect_step,
        )


def is_first_visit_no_resident(record: InspectionRecord) -> bool:
    """No resident on the first visit: no signature can have been obtained."""
    if record.closure_motive is not None:
        return record.closure_motive == ClosureMotiveCode.NO_RESIDENT_FIRST_VISIT
    return suggest(record) == ClosureMotiveCode.NO_RESIDENT_FIRST_VISIT


def check_preconditions(
    record: InspectionRecord,
    evidence_count: int,
    min_evidence: Optional[int] = None,
) -> Optional[ValidationFailure]:
    """Return the first unmet closure precondition, or None."""
    min_evidence = settings.MIN_EVIDENCE_COUNT if min_evidence is None else min_evidence

    if suggest(record) == ClosureMotiveCode.CHANGE_COMPLETED:
        if not (record.new_meter_serial or "").strip() or record.new_reading is None:
            return ValidationFailure(
                FinalizationError.INCOMPLETE_INSTALLATION,
                "New meter serial and reading are required to close an installation",
                redirect_step=Step.INSTALLATION,
            )
    elif record.closure_motive is None:
        return ValidationFailure(
            FinalizationError.MISSING_CLOSURE_MOTIVE,
            "Select a closure motive",
        )

    if evidence_count < min_evidence:
        return ValidationFailure(
            FinalizationError.INSUFFICIENT_EVIDENCE,
            f"At least {min_evidence} photos or videos are required ({evidence_count} attached)",
        )

    if not is_first_visit_no_resident(record) and not (record.signature or "").strip():
        return ValidationFailure(
            FinalizationError.SIGNATURE_REQUIRED,
            "The client's signature is required",
        )

    return None


def terminal_status_for(record: InspectionRecord) -> str:
    if record.closure_motive == ClosureMotiveCode.NO_RESIDENT_FIRST_VISIT:
        return settings.STATUS_SECOND_VISIT_PENDING
    return settings.STATUS_CLOSED_BY_AGENT


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Finalizer:
    """Runs the terminal transition of an order through its mutation queue."""

    def __init__(
        self,
        queue: MutationQueue,
        store: OrderStore,
        geolocation: Optional[GeolocationProvider] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        geolocation_timeout: Optional[float] = None,
        min_evidence: Optional[int] = None,
    ):
        self.queue = queue
        self.store = store
        self.geolocation = geolocation
        self.clock = clock
        self.geolocation_timeout = (
            settings.GEOLOCATION_TIMEOUT_SECONDS if geolocation_timeout is None else geolocation_timeout
        )
        self.min_evidence = min_evidence

    async def finalize(
        self, evidence_count: int, geolocation: Optional[GeolocationProvider] = None
    ) -> FinalizationResult:
        order_id = self.queue.order_id
        if self.queue.read_only:
            return FinalizationResult(
                success=False,
                error=FinalizationError.ALREADY_CLOSED,
                message=f"Order {order_id} is already closed",
            )

        record = self.queue.record
        failure = check_preconditions(record, evidence_count, self.min_evidence)
        if failure is not None:
            logger.info(f"Finalize of order {order_id} blocked: {failure.error.value}")
            return FinalizationResult.failed(failure)

        if record.closure_motive is None:
            await self.queue.set_field("closure_motive", int(ClosureMotiveCode.CHANGE_COMPLETED))

        if not record.has_coordinates:
            await self._capture_position(geolocation or self.geolocation)

        record = self.queue.record
        status = terminal_status_for(record)
        stamp_field = (
            "first_visit_at" if status == settings.STATUS_SECOND_VISIT_PENDING else "finalized_at"
        )
        previous_stamp = getattr(record, stamp_field)

        await self.queue.set_field("current_step", int(Step.CLOSING))
        await self.queue.set_field(stamp_field, self.clock())

        flushed = await self.queue.flush()
        if not flushed.success:
            await self.queue.set_field(stamp_field, previous_stamp)
            logger.error(f"Finalize of order {order_id} aborted, fields not saved: {flushed.error}")
            return FinalizationResult(
                success=False,
                error=FinalizationError.SAVE_FAILED,
                message=flushed.error,
            )

        try:
            await self.store.set_order_status(order_id, status)
        except OrderStoreError as e:
            logger.error(f"Status transition to {status} rejected for order {order_id}: {e}")
            # The stamp must not survive without the status it belongs to
            await self.queue.set_field(stamp_field, previous_stamp, immediate=True)
            return FinalizationResult(
                success=False,
                error=FinalizationError.STATUS_REJECTED,
                message=str(e),
            )

        self.queue.apply_external(status=status)
        if status in settings.READ_ONLY_STATUSES:
            self.queue.read_only = True

        logger.info(f"Order {order_id} finalized with status {status}")
        return FinalizationResult(success=True, status=status)

    async def _capture_position(self, geolocation: Optional[GeolocationProvider]) -> None:
        if geolocation is None:
            return
        try:
            position = await geolocation.get_current_position(self.geolocation_timeout)
        except GeolocationUnavailable as e:
            logger.info(f"Finalizing order {self.queue.order_id} without coordinates: {e}")
            return
        await self.queue.set_fields({"latitude": position.latitude, "longitude": position.longitude})
