"""Error types for plan execution.

Only EmptyPlanError, PlanPersistenceError and PlanNotFoundError reach the
caller. Per-action and per-revert failures are absorbed into result objects.
"""

from content_engine.content.errors import ContentEngineError


class EmptyPlanError(ContentEngineError):
    """Raised when a plan with no actions is submitted for execution."""

    def __init__(self, title: str | None = None):
        self.title = title
        self.message = f"Plan {title!r} has no actions to execute" if title else "Plan has no actions to execute"
        super().__init__(self.message)


class PlanPersistenceError(ContentEngineError):
    """Raised when the plan row cannot be written.

    This is the commit point for execution: when it fails, no action is
    attempted.
    """

    def __init__(self, title: str, cause: Exception | None = None):
        self.title = title
        self.cause = cause
        detail = f": {cause}" if cause else ""
        self.message = f"Failed to save plan {title!r}{detail}"
        super().__init__(self.message)


class MalformedActionError(ContentEngineError):
    """Raised for actions missing a record_id or payload they need."""

    def __init__(self, kind: str, problem: str):
        self.kind = kind
        self.message = problem
        super().__init__(self.message)


class PlanNotFoundError(ContentEngineError):
    """Raised when a plan ID does not exist (or is not in the expected status)."""

    def __init__(self, plan_id: str, message: str | None = None):
        self.plan_id = plan_id
        self.message = message or f"Plan {plan_id} not found"
        super().__init__(self.message)
