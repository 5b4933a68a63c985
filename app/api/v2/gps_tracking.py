"""
GPS Tracking API Endpoints
Agent location updates, used as the fallback position when an order is
finalized without device coordinates.
"""

from fastapi import APIRouter

from app.api.deps import CurrentAgent, DbSession
from app.schemas.gps_tracking import AgentLocationResponse, LocationUpdate
from app.services.gps_tracking_service import GPSTrackingService

router = APIRouter(prefix="/agents", tags=["GPS Tracking"])


# ==================== Location Updates ====================

@router.post("/me/location", response_model=AgentLocationResponse)
async def update_location(
    location: LocationUpdate,
    db: DbSession,
    current_agent: CurrentAgent,
):
    """
    Update the agent's current GPS location.
    Called by the mobile app at configured intervals.
    """
    service = GPSTrackingService(db)
    return await service.update_agent_location(current_agent.agent_id, location)
