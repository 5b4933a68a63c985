from app.models.work_order import WorkOrder, OrderStatus
from app.models.work_order_evidence import WorkOrderEvidence
from app.models.closure_motive import ClosureMotive
from app.models.gps_tracking import AgentLocation

__all__ = [
    "WorkOrder",
    "OrderStatus",
    "WorkOrderEvidence",
    "ClosureMotive",
    "AgentLocation",
]
