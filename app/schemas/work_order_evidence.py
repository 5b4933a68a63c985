from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class EvidenceCreate(BaseModel):
    """Schema for uploading a photo or video."""

    data: str = Field(..., min_length=1)  # base64 encoded media
    is_video: bool = False
    content_type: Optional[str] = None


class EvidenceItem(BaseModel):
    """Schema for evidence response."""

    id: str
    work_order_id: int
    media_url: str
    is_video: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EvidenceListResponse(BaseModel):
    items: list[EvidenceItem]
    total: int
