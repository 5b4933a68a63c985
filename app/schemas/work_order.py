from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Optional

from app.schemas.closure_motive import ClosureMotiveCode


class Answer(str, Enum):
    """Checklist answer. Unanswered is represented by None."""

    YES = "YES"
    NO = "NO"


class FlexibleHose(str, Enum):
    NONE = "NO"
    YES = "YES"
    DINATECNICA = "Dinatecnica"


class Question(str, Enum):
    """Inspection checklist questions, in the order they are asked."""

    resident_present = "resident_present"
    client_accepts_change = "client_accepts_change"
    meter_serial_matches = "meter_serial_matches"
    meter_damaged = "meter_damaged"
    has_grate_or_weld = "has_grate_or_weld"
    grate_removable = "grate_removable"
    leak_outside_zone = "leak_outside_zone"
    valve_leak = "valve_leak"
    valve_operable = "valve_operable"
    leak_persists_after_valve_op = "leak_persists_after_valve_op"


class Step(IntEnum):
    """Order execution steps."""

    SUMMARY = 1
    INSPECTION = 2
    INSTALLATION = 3
    CLOSING = 4


class Position(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class InspectionRecord(BaseModel):
    """
    Immutable snapshot of a work order as seen by the execution engine.

    Writes go through the mutation queue, which replaces the snapshot
    with an updated copy.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    status: Optional[str] = None

    # Client data
    client_name: Optional[str] = None
    client_address: Optional[str] = None
    contract_account: Optional[str] = None
    current_meter_serial: Optional[str] = None
    previous_reading: Optional[Decimal] = None

    # Checklist
    resident_present: Optional[Answer] = None
    client_accepts_change: Optional[Answer] = None
    meter_serial_matches: Optional[Answer] = None
    meter_damaged: Optional[Answer] = None
    has_grate_or_weld: Optional[Answer] = None
    grate_removable: Optional[Answer] = None
    leak_outside_zone: Optional[Answer] = None
    valve_leak: Optional[Answer] = None
    valve_operable: Optional[Answer] = None
    leak_persists_after_valve_op: Optional[Answer] = None

    # Installation
    new_meter_serial: Optional[str] = None
    new_reading: Optional[Decimal] = None
    reading_difference: Optional[Decimal] = None
    regulator_present: Optional[Answer] = None
    flexible_hose: Optional[FlexibleHose] = None
    agent_notes: Optional[str] = None

    # Closure
    closure_motive: Optional[int] = None
    second_visit_date: Optional[date] = None
    signature: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # Workflow
    current_step: Optional[int] = None
    execution_started_at: Optional[datetime] = None
    first_visit_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, order) -> "InspectionRecord":
        """Create snapshot from SQLAlchemy model."""
        data = {
            name: getattr(order, name)
            for name in cls.model_fields
            if name != "status"
        }
        data["status"] = order.status.name if order.status else None
        return cls.model_validate(data)

    def answer(self, question: Question) -> Optional[Answer]:
        return getattr(self, Question(question).value)

    def with_changes(self, **changes) -> "InspectionRecord":
        """Return a copy with ``changes`` applied and validated like stored data."""
        return self.model_validate({**self.model_dump(), **changes})

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def removed_meter_reading(self) -> Optional[Decimal]:
        """Reading of the removed meter, reconstructed from the stored difference."""
        if self.reading_difference is None or self.previous_reading is None:
            return None
        return self.previous_reading + self.reading_difference


# Fields the agent may edit outside the checklist
INSTALLATION_FIELDS = frozenset({
    "new_meter_serial",
    "new_reading",
    "reading_difference",
    "regulator_present",
    "flexible_hose",
    "agent_notes",
})

CLOSURE_FIELDS = frozenset({
    "closure_motive",
    "second_visit_date",
    "signature",
    "latitude",
    "longitude",
})

WORKFLOW_FIELDS = frozenset({
    "current_step",
    "execution_started_at",
    "first_visit_at",
    "finalized_at",
})

CHECKLIST_FIELDS = frozenset(q.value for q in Question)

MUTABLE_FIELDS = CHECKLIST_FIELDS | INSTALLATION_FIELDS | CLOSURE_FIELDS | WORKFLOW_FIELDS


# ==================== API Schemas ====================


class AnswerUpdate(BaseModel):
    """Schema for answering (or clearing) a checklist question."""

    answer: Optional[Answer] = None


class ExecutionFieldsUpdate(BaseModel):
    """Schema for editing installation and closure fields (all optional)."""

    new_meter_serial: Optional[str] = Field(None, max_length=50)
    new_reading: Optional[Decimal] = Field(None, ge=0)
    regulator_present: Optional[Answer] = None
    flexible_hose: Optional[FlexibleHose] = None
    agent_notes: Optional[str] = None
    closure_motive: Optional[ClosureMotiveCode] = None
    second_visit_date: Optional[date] = None
    signature: Optional[str] = None


class RemovedReadingUpdate(BaseModel):
    reading: Optional[Decimal] = Field(None, ge=0)


class StepChange(BaseModel):
    step: Step


class FinalizeRequest(BaseModel):
    """Optional device position captured at the moment of finishing."""

    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    def position(self) -> Optional[Position]:
        if self.latitude is None or self.longitude is None:
            return None
        return Position(latitude=self.latitude, longitude=self.longitude)


class ExecutionStateResponse(BaseModel):
    """Everything the execution screen needs to render the current step."""

    order_id: int
    step: Step
    suggested_motive: ClosureMotiveCode
    askable_questions: list[Question]
    installation_skipped: bool
    read_only: bool
    finalized: bool
    save_state: str
    pending_fields: list[str]
    evidence_count: int
    record: InspectionRecord


class FlushResponse(BaseModel):
    success: bool
    flushed_fields: list[str] = []
    error: Optional[str] = None


class FinalizeResponse(BaseModel):
    success: bool
    status: Optional[str] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    redirect_step: Optional[Step] = None
