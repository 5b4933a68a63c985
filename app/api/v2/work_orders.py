"""
Order Execution API - drives a field agent through a work order.

The execution session (record, mutation queue, workflow controller) lives
in the process-wide session manager; each endpoint operates on it and
returns the refreshed execution state.
"""

from fastapi import APIRouter
import logging

from app.api.deps import CurrentAgent, Evidence, LocationSessionFactory, SessionManager
from app.exceptions import (
    ErrorCode,
    ExternalServiceError,
    NotFoundError,
    OrderReadOnlyError,
    ValidationError,
)
from app.schemas.work_order import (
    AnswerUpdate,
    ExecutionFieldsUpdate,
    ExecutionStateResponse,
    FinalizeRequest,
    FinalizeResponse,
    FlushResponse,
    Question,
    RemovedReadingUpdate,
    StepChange,
)
from app.services.evidence_store import EvidenceStore
from app.services.gps_tracking_service import (
    FallbackPositionProvider,
    LastKnownLocationProvider,
    ReportedPositionProvider,
)
from app.services.order_execution.finalization import FinalizationError
from app.services.order_execution.sessions import ExecutionSession, ExecutionSessionManager
from app.services.order_store import OrderNotFoundError, OrderStoreError

logger = logging.getLogger(__name__)

router = APIRouter()


async def _open_session(
    manager: ExecutionSessionManager, order_id: int, agent_id: str
) -> ExecutionSession:
    try:
        return await manager.open(order_id, agent_id)
    except OrderNotFoundError:
        raise NotFoundError("Work order", order_id)
    except OrderStoreError as e:
        logger.error(f"Could not load work order {order_id}: {e}")
        raise ExternalServiceError("Order store", str(e), code=ErrorCode.ORDER_STORE_ERROR)


async def _state(session: ExecutionSession, evidence: EvidenceStore) -> ExecutionStateResponse:
    controller = session.controller
    return ExecutionStateResponse(
        order_id=session.order_id,
        step=controller.step,
        suggested_motive=controller.suggestion,
        askable_questions=controller.askable_questions(),
        installation_skipped=controller.installation_skipped,
        read_only=controller.read_only,
        finalized=controller.finalized,
        save_state=session.queue.save_state,
        pending_fields=sorted(session.queue.pending),
        evidence_count=await evidence.count_evidence(session.order_id),
        record=controller.record,
    )


def _ensure_writable(session: ExecutionSession) -> None:
    if session.controller.read_only:
        raise OrderReadOnlyError(session.order_id)


@router.get("/{order_id}/execution", response_model=ExecutionStateResponse)
async def get_execution_state(
    order_id: int,
    manager: SessionManager,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    """Open (or resume) the execution of a work order."""
    session = await _open_session(manager, order_id, current_agent.agent_id)
    return await _state(session, evidence)


@router.put("/{order_id}/execution/answers/{question}", response_model=ExecutionStateResponse)
async def answer_question(
    order_id: int,
    question: Question,
    body: AnswerUpdate,
    manager: SessionManager,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    """Answer a checklist question. Saved immediately."""
    session = await _open_session(manager, order_id, current_agent.agent_id)
    _ensure_writable(session)
    await session.controller.answer(question, body.answer)
    return await _state(session, evidence)


@router.patch("/{order_id}/execution/fields", response_model=ExecutionStateResponse)
async def update_execution_fields(
    order_id: int,
    body: ExecutionFieldsUpdate,
    manager: SessionManager,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    """Edit installation fields (debounced) and closure fields (immediate)."""
    session = await _open_session(manager, order_id, current_agent.agent_id)
    _ensure_writable(session)
    changes = body.model_dump(exclude_unset=True)
    if "closure_motive" in changes and changes["closure_motive"] is not None:
        changes["closure_motive"] = int(changes["closure_motive"])
    await session.controller.update_fields(changes)
    return await _state(session, evidence)


@router.put("/{order_id}/execution/removed-reading", response_model=ExecutionStateResponse)
async def set_removed_reading(
    order_id: int,
    body: RemovedReadingUpdate,
    manager: SessionManager,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    """Record the reading of the meter being removed."""
    session = await _open_session(manager, order_id, current_agent.agent_id)
    _ensure_writable(session)
    await session.controller.set_removed_meter_reading(body.reading)
    return await _state(session, evidence)


@router.post("/{order_id}/execution/next", response_model=ExecutionStateResponse)
async def next_step(
    order_id: int,
    manager: SessionManager,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    session = await _open_session(manager, order_id, current_agent.agent_id)
    await session.controller.next_step()
    return await _state(session, evidence)


@router.post("/{order_id}/execution/previous", response_model=ExecutionStateResponse)
async def previous_step(
    order_id: int,
    manager: SessionManager,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    session = await _open_session(manager, order_id, current_agent.agent_id)
    await session.controller.previous_step()
    return await _state(session, evidence)


@router.post("/{order_id}/execution/step", response_model=ExecutionStateResponse)
async def go_to_step(
    order_id: int,
    body: StepChange,
    manager: SessionManager,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    """Jump to a step directly (stepper navigation)."""
    session = await _open_session(manager, order_id, current_agent.agent_id)
    await session.controller.go_to(body.step)
    return await _state(session, evidence)


@router.post("/{order_id}/execution/flush", response_model=FlushResponse)
async def flush_execution(
    order_id: int,
    manager: SessionManager,
    current_agent: CurrentAgent,
):
    """Persist pending edits now. A failure is reported but never blocks the agent."""
    session = await _open_session(manager, order_id, current_agent.agent_id)
    result = await session.controller.flush()
    return FlushResponse(success=result.success, flushed_fields=result.flushed_fields, error=result.error)


@router.post("/{order_id}/execution/close", response_model=FlushResponse)
async def close_execution(
    order_id: int,
    manager: SessionManager,
    current_agent: CurrentAgent,
):
    """Leave the execution screen: flush and release the session."""
    result = await manager.close(order_id)
    if result is None:
        return FlushResponse(success=True)
    return FlushResponse(success=result.success, flushed_fields=result.flushed_fields, error=result.error)


@router.post("/{order_id}/execution/finalize", response_model=FinalizeResponse)
async def finalize_execution(
    order_id: int,
    body: FinalizeRequest,
    manager: SessionManager,
    evidence: Evidence,
    location_sessions: LocationSessionFactory,
    current_agent: CurrentAgent,
):
    """Validate the closure preconditions and close the order."""
    session = await _open_session(manager, order_id, current_agent.agent_id)
    geolocation = FallbackPositionProvider([
        ReportedPositionProvider(body.position()),
        LastKnownLocationProvider(location_sessions, current_agent.agent_id),
    ])

    evidence_count = await evidence.count_evidence(order_id)
    result = await session.controller.finalize(evidence_count, geolocation)

    if result.success:
        await manager.close(order_id)
        return FinalizeResponse(success=True, status=result.status)

    if result.is_validation_error:
        raise ValidationError(
            detail=result.message or result.error.value,
            code=ErrorCode.FINALIZATION_BLOCKED,
            errors=[{
                "reason": result.error.value,
                "redirect_step": int(result.redirect_step) if result.redirect_step else None,
            }],
        )

    if result.error == FinalizationError.ALREADY_CLOSED:
        raise OrderReadOnlyError(order_id)

    raise ExternalServiceError(
        "Order store",
        f"{result.error.value}: {result.message}",
        code=ErrorCode.ORDER_STORE_ERROR,
    )
