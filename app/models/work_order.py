from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Float, ForeignKey, Numeric
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class OrderStatus(Base):
    """Lifecycle status catalog. Status names are resolved to ids here."""

    __tablename__ = "order_statuses"

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True, index=True)

    def __repr__(self):
        return f"<OrderStatus {self.name}>"


class WorkOrder(Base):
    """Meter replacement work order - one inspection record per order."""

    __tablename__ = "work_orders"

    id = Column(Integer, primary_key=True, index=True)
    status_id = Column(String(36), ForeignKey("order_statuses.id"), index=True)

    # Client data (read-only for the agent)
    client_name = Column(String(255))
    client_address = Column(String(255))
    contract_account = Column(String(50))
    current_meter_serial = Column(String(50))
    previous_reading = Column(Numeric(12, 3))

    # Workflow
    current_step = Column(Integer)
    execution_started_at = Column(DateTime(timezone=True))
    first_visit_at = Column(DateTime(timezone=True))
    finalized_at = Column(DateTime(timezone=True))

    # Inspection checklist ("YES" / "NO" / NULL)
    resident_present = Column(String(3))
    client_accepts_change = Column(String(3))
    meter_serial_matches = Column(String(3))
    meter_damaged = Column(String(3))
    has_grate_or_weld = Column(String(3))
    grate_removable = Column(String(3))
    leak_outside_zone = Column(String(3))
    valve_leak = Column(String(3))
    valve_operable = Column(String(3))
    leak_persists_after_valve_op = Column(String(3))

    # Installation
    new_meter_serial = Column(String(50))
    new_reading = Column(Numeric(12, 3))
    reading_difference = Column(Numeric(12, 3))
    regulator_present = Column(String(3))
    flexible_hose = Column(String(20))  # NO, YES, Dinatecnica
    agent_notes = Column(Text)

    # Closure
    closure_motive = Column(Integer)
    second_visit_date = Column(Date)
    signature = Column(Text)  # Base64 encoded image
    latitude = Column(Float)
    longitude = Column(Float)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    status = relationship("OrderStatus", lazy="joined")

    def __repr__(self):
        return f"<WorkOrder {self.id} - step {self.current_step}>"
