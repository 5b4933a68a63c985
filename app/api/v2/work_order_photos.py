from fastapi import APIRouter, status
import logging

from app.api.deps import CurrentAgent, Evidence
from app.exceptions import ExternalServiceError, NotFoundError, ValidationError
from app.schemas.work_order_evidence import EvidenceCreate, EvidenceItem, EvidenceListResponse
from app.services.evidence_store import (
    EvidenceNotFoundError,
    EvidenceStoreError,
    InvalidMediaError,
    UnknownOrderError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{order_id}/evidence", response_model=EvidenceListResponse)
async def list_evidence(
    order_id: int,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    """Get all photos and videos attached to a work order."""
    items = await evidence.list_evidence(order_id)
    return EvidenceListResponse(items=items, total=len(items))


@router.post("/{order_id}/evidence", response_model=EvidenceItem, status_code=status.HTTP_201_CREATED)
async def add_evidence(
    order_id: int,
    body: EvidenceCreate,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    """Attach a photo or video (base64) to a work order."""
    try:
        item = await evidence.add_evidence(order_id, body.data, body.is_video, body.content_type)
    except UnknownOrderError:
        raise NotFoundError("Work order", order_id)
    except InvalidMediaError as e:
        raise ValidationError(detail=str(e))
    except EvidenceStoreError as e:
        logger.error(f"Evidence upload for order {order_id} failed: {e}")
        raise ExternalServiceError("Evidence store", str(e))
    return item


@router.delete("/{order_id}/evidence/{evidence_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_evidence(
    order_id: int,
    evidence_id: str,
    evidence: Evidence,
    current_agent: CurrentAgent,
):
    """Remove a photo or video from a work order."""
    try:
        await evidence.remove_evidence(evidence_id)
    except EvidenceNotFoundError:
        raise NotFoundError("Evidence", evidence_id)
