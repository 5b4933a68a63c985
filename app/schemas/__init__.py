from app.schemas.work_order import (
    Answer,
    FlexibleHose,
    Question,
    Step,
    Position,
    InspectionRecord,
    AnswerUpdate,
    ExecutionFieldsUpdate,
    RemovedReadingUpdate,
    StepChange,
    FinalizeRequest,
    ExecutionStateResponse,
    FlushResponse,
    FinalizeResponse,
)
from app.schemas.work_order_evidence import EvidenceCreate, EvidenceItem, EvidenceListResponse
from app.schemas.closure_motive import ClosureMotiveCode, ClosureMotiveResponse
from app.schemas.gps_tracking import LocationUpdate, AgentLocationResponse

__all__ = [
    "Answer",
    "FlexibleHose",
    "Question",
    "Step",
    "Position",
    "InspectionRecord",
    "AnswerUpdate",
    "ExecutionFieldsUpdate",
    "RemovedReadingUpdate",
    "StepChange",
    "FinalizeRequest",
    "ExecutionStateResponse",
    "FlushResponse",
    "FinalizeResponse",
    "EvidenceCreate",
    "EvidenceItem",
    "EvidenceListResponse",
    "ClosureMotiveCode",
    "ClosureMotiveResponse",
    "LocationUpdate",
    "AgentLocationResponse",
]
