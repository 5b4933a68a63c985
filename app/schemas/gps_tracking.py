"""
GPS Tracking Schemas
Pydantic models for agent location updates
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class LocationUpdate(BaseModel):
    """Location update from the agent's mobile device"""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0, description="GPS accuracy in meters")
    captured_at: datetime = Field(default_factory=datetime.utcnow)
    work_order_id: Optional[int] = None


class AgentLocationResponse(BaseModel):
    agent_id: str
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    captured_at: datetime
    current_work_order_id: Optional[int] = None

    class Config:
        from_attributes = True
