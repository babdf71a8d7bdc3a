"""Content plans - proposed action batches, their ledger, and their outcomes.

Executor, plan store, ledger and revert engine live in their own modules and
are imported from there.
"""

from content_engine.plans.errors import (
    EmptyPlanError,
    MalformedActionError,
    PlanNotFoundError,
    PlanPersistenceError,
)
from content_engine.plans.types import (
    DELETION_MARKER,
    ActionKind,
    ActionOutcome,
    ChangeRecord,
    ContentAction,
    ContentPlan,
    ExecutionResult,
    PlanStatus,
    RevertResult,
)

__all__ = [
    "DELETION_MARKER",
    "ActionKind",
    "ActionOutcome",
    "ChangeRecord",
    "ContentAction",
    "ContentPlan",
    "EmptyPlanError",
    "ExecutionResult",
    "MalformedActionError",
    "PlanNotFoundError",
    "PlanPersistenceError",
    "PlanStatus",
    "RevertResult",
]
