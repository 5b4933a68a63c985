"""
Order Execution Services

Decision, visibility, persistence and workflow logic for field visits.
"""

from app.services.order_execution.decision import suggest, evaluate_rules
from app.services.order_execution.visibility import is_askable, askable_questions
from app.services.order_execution.mutation_queue import MutationQueue, FlushResult
from app.services.order_execution.finalization import (
    Finalizer,
    FinalizationError,
    FinalizationResult,
    check_preconditions,
)
from app.services.order_execution.workflow import WorkflowController
from app.services.order_execution.sessions import ExecutionSession, ExecutionSessionManager

__all__ = [
    "suggest",
    "evaluate_rules",
    "is_askable",
    "askable_questions",
    "MutationQueue",
    "FlushResult",
    "Finalizer",
    "FinalizationError",
    "FinalizationResult",
    "check_preconditions",
    "WorkflowController",
    "ExecutionSession",
    "ExecutionSessionManager",
]
