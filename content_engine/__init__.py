"""Content mutation and undo engine.

Applies planner-proposed batches of create/update/delete actions to a fixed
set of content collections, records a before/after ledger entry for every
attempted action, and reverts whole plans or single changes on request.
"""

from content_engine.service import ContentActionService, PlanHistoryEntry

__all__ = ["ContentActionService", "PlanHistoryEntry"]
