"""Document workflow state machine"""
from thesis_repository.modules.workflow.backend import (
    DocumentFilter,
    DocumentRecord,
    SQLAlchemyWorkflowBackend,
    WorkflowBackend,
    WorkflowHistoryEntry,
)
from thesis_repository.modules.workflow.engine import Actor, TransitionResult, WorkflowEngine
from thesis_repository.modules.workflow.history import HistoryLedger
from thesis_repository.modules.workflow.permissions import Capability
from thesis_repository.modules.workflow.statistics import (
    StatisticsAggregator,
    StatsScope,
    StatusCounts,
)

__all__ = [
    "Actor",
    "Capability",
    "DocumentFilter",
    "DocumentRecord",
    "HistoryLedger",
    "SQLAlchemyWorkflowBackend",
    "StatisticsAggregator",
    "StatsScope",
    "StatusCounts",
    "TransitionResult",
    "WorkflowBackend",
    "WorkflowEngine",
    "WorkflowHistoryEntry",
]
