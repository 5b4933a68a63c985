"""
GPS Tracking Models
Last known agent position, pushed from the mobile device
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from app.database import Base


class AgentLocation(Base):
    """
    Real-time GPS location for field agents
    Updated frequently from mobile app
    """

    __tablename__ = "agent_locations"

    id = Column(Integer, primary_key=True, index=True)
    agent_id = Column(String(64), nullable=False, unique=True)

    # GPS coordinates
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)  # GPS accuracy in meters

    # Timestamps
    captured_at = Column(DateTime(timezone=True), nullable=False)  # When the GPS was captured on device
    received_at = Column(DateTime(timezone=True), server_default=func.now())  # When server received it

    # Current context
    current_work_order_id = Column(Integer, ForeignKey("work_orders.id"), nullable=True)

    __table_args__ = (
        Index("idx_agent_location_agent_id", "agent_id"),
    )

    def __repr__(self):
        return f"<AgentLocation {self.agent_id} ({self.latitude}, {self.longitude})>"
