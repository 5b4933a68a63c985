from sqlalchemy import Column, String, Text, DateTime, Boolean, Integer, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class WorkOrderEvidence(Base):
    """Photo or video evidence captured during order execution."""

    __tablename__ = "work_order_evidence"

    id = Column(String(36), primary_key=True, index=True)
    work_order_id = Column(Integer, ForeignKey("work_orders.id"), nullable=False, index=True)

    media_url = Column(String(500), nullable=False)
    is_video = Column(Boolean, default=False, nullable=False)

    # Base64 encoded media
    data = Column(Text, nullable=False)
    content_type = Column(String(100))

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    work_order = relationship("WorkOrder", backref="evidence")

    def __repr__(self):
        return f"<WorkOrderEvidence {self.id} - {'video' if self.is_video else 'photo'}>"
