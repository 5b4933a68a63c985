"""
Evidence Store - photo and video evidence attached to work orders.

The engine only counts evidence; the API uses the store to list, add
and remove items.
"""

import base64
import binascii
import logging
import time
import uuid
from typing import Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.models.work_order import WorkOrder
from app.models.work_order_evidence import WorkOrderEvidence
from app.schemas.work_order_evidence import EvidenceItem

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/webm": "webm",
}


class EvidenceStoreError(Exception):
    """The evidence store rejected or failed a request."""


class EvidenceNotFoundError(EvidenceStoreError):
    pass


class InvalidMediaError(EvidenceStoreError):
    pass


class UnknownOrderError(EvidenceStoreError):
    pass


class EvidenceStore(Protocol):
    async def list_evidence(self, order_id: int) -> list[EvidenceItem]: ...

    async def count_evidence(self, order_id: int) -> int: ...

    async def add_evidence(
        self, order_id: int, media: str, is_video: bool, content_type: Optional[str] = None
    ) -> EvidenceItem: ...

    async def remove_evidence(self, evidence_id: str) -> None: ...


def build_media_url(order_id: int, is_video: bool, content_type: Optional[str]) -> str:
    """Storage path for a new item: {base}/{photos|videos}/{order}_{millis}.{ext}"""
    folder = "videos" if is_video else "photos"
    ext = CONTENT_TYPE_EXTENSIONS.get(content_type or "", "mp4" if is_video else "jpg")
    millis = int(time.time() * 1000)
    return f"{settings.MEDIA_BASE_URL.rstrip('/')}/{folder}/{order_id}_{millis}.{ext}"


class SQLAlchemyEvidenceStore:
    """Evidence store keeping base64 media in the work_order_evidence table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_evidence(self, order_id: int) -> list[EvidenceItem]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(WorkOrderEvidence)
                .where(WorkOrderEvidence.work_order_id == order_id)
                .order_by(WorkOrderEvidence.created_at)
            )
            return [EvidenceItem.model_validate(item) for item in result.scalars().all()]

    async def count_evidence(self, order_id: int) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                select(func.count(WorkOrderEvidence.id)).where(
                    WorkOrderEvidence.work_order_id == order_id
                )
            )
            return result.scalar_one()

    async def add_evidence(
        self, order_id: int, media: str, is_video: bool, content_type: Optional[str] = None
    ) -> EvidenceItem:
        try:
            base64.b64decode(media, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidMediaError("Media payload is not valid base64") from e

        async with self.session_factory() as session:
            order = await session.get(WorkOrder, order_id)
            if order is None:
                raise UnknownOrderError(f"Work order {order_id} not found")

            item = WorkOrderEvidence(
                id=str(uuid.uuid4()),
                work_order_id=order_id,
                media_url=build_media_url(order_id, is_video, content_type),
                is_video=is_video,
                data=media,
                content_type=content_type,
            )
            try:
                session.add(item)
                await session.commit()
                await session.refresh(item)
            except SQLAlchemyError as e:
                await session.rollback()
                raise EvidenceStoreError(f"Failed to store evidence: {type(e).__name__}") from e

            logger.info(f"Evidence {item.id} added to work order {order_id}")
            return EvidenceItem.model_validate(item)

    async def remove_evidence(self, evidence_id: str) -> None:
        async with self.session_factory() as session:
            item = await session.get(WorkOrderEvidence, evidence_id)
            if item is None:
                raise EvidenceNotFoundError(f"Evidence {evidence_id} not found")
            await session.delete(item)
            await session.commit()

        logger.info(f"Evidence {evidence_id} removed")
