"""
GPS Tracking Service
Agent location updates and best-effort position lookup at finalization
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.models.gps_tracking import AgentLocation
from app.schemas.gps_tracking import LocationUpdate
from app.schemas.work_order import Position

logger = logging.getLogger(__name__)


class GeolocationUnavailable(Exception):
    """No usable position could be obtained."""


class GeolocationProvider(Protocol):
    async def get_current_position(self, timeout: float) -> Position: ...


class ReportedPositionProvider:
    """Position reported by the device along with the request."""

    def __init__(self, position: Optional[Position]):
        self.position = position

    async def get_current_position(self, timeout: float) -> Position:
        if self.position is None:
            raise GeolocationUnavailable("Device did not report a position")
        return self.position


class LastKnownLocationProvider:
    """Latest position pushed by the agent's device, if recent enough."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        agent_id: str,
        max_age: Optional[timedelta] = None,
    ):
        self.session_factory = session_factory
        self.agent_id = agent_id
        self.max_age = max_age or timedelta(minutes=settings.LOCATION_MAX_AGE_MINUTES)

    async def _lookup(self) -> Position:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(AgentLocation).where(AgentLocation.agent_id == self.agent_id)
                )
                location = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise GeolocationUnavailable(f"Location lookup failed: {type(e).__name__}") from e

        if location is None:
            raise GeolocationUnavailable(f"No location recorded for agent {self.agent_id}")

        captured_at = location.captured_at
        if captured_at.tzinfo is None:
            captured_at = captured_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - captured_at > self.max_age:
            raise GeolocationUnavailable(f"Location for agent {self.agent_id} is stale")

        return Position(latitude=location.latitude, longitude=location.longitude)

    async def get_current_position(self, timeout: float) -> Position:
        try:
            return await asyncio.wait_for(self._lookup(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise GeolocationUnavailable("Location lookup timed out") from e


class FallbackPositionProvider:
    """Try each provider in turn, returning the first position obtained."""

    def __init__(self, providers: Sequence[GeolocationProvider]):
        self.providers = list(providers)

    async def get_current_position(self, timeout: float) -> Position:
        for provider in self.providers:
            try:
                return await provider.get_current_position(timeout)
            except GeolocationUnavailable as e:
                logger.debug(f"{type(provider).__name__}: {e}")
        raise GeolocationUnavailable("No provider returned a position")


class GPSTrackingService:
    """Service for agent location updates"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def update_agent_location(self, agent_id: str, location: LocationUpdate) -> AgentLocation:
        """
        Update an agent's current location (one row per agent)
        """
        result = await self.db.execute(
            select(AgentLocation).where(AgentLocation.agent_id == agent_id)
        )
        current = result.scalar_one_or_none()

        if current:
            current.latitude = location.latitude
            current.longitude = location.longitude
            current.accuracy = location.accuracy
            current.captured_at = location.captured_at
            current.received_at = datetime.now(timezone.utc)
            current.current_work_order_id = location.work_order_id
        else:
            current = AgentLocation(
                agent_id=agent_id,
                latitude=location.latitude,
                longitude=location.longitude,
                accuracy=location.accuracy,
                captured_at=location.captured_at,
                received_at=datetime.now(timezone.utc),
                current_work_order_id=location.work_order_id,
            )
            self.db.add(current)

        await self.db.commit()
        await self.db.refresh(current)
        return current
