"""Content change notifications.

After every batch of writes the engine publishes exactly one
InvalidationSignal listing the records it touched. Cache and view layers
subscribe and decide for themselves how much to refresh.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict

from content_engine.plans.types import ActionKind

SignalOrigin = Literal["execute", "revert_plan", "revert_change"]


class ContentChanged(BaseModel):
    """One record that changed."""

    model_config = ConfigDict(frozen=True)

    resource: str
    record_id: str
    action_kind: ActionKind


class InvalidationSignal(BaseModel):
    """One batch of content changes.

    ``changes`` may be empty, e.g. when every action of a plan failed.
    """

    model_config = ConfigDict(frozen=True)

    origin: SignalOrigin
    plan_id: str | None = None
    changes: tuple[ContentChanged, ...] = ()

    @property
    def resources(self) -> set[str]:
        return {change.resource for change in self.changes}


SignalHandler = Callable[[InvalidationSignal], Awaitable[None] | None]


class ContentEventBus:
    """In-process publisher of InvalidationSignal events.

    Handlers run in subscription order. A handler that raises is logged and
    skipped; it never fails the operation that published the signal.
    """

    def __init__(self) -> None:
        self._handlers: list[SignalHandler] = []

    def subscribe(self, handler: SignalHandler) -> Callable[[], None]:
        """Register a sync or async handler. Returns an unsubscribe callable."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def subscribe_invalidate_all(self, callback: Callable[[], Awaitable[None] | None]) -> Callable[[], None]:
        """Adapt a no-argument "refresh everything" callback."""

        def handler(_signal: InvalidationSignal) -> Awaitable[None] | None:
            return callback()

        return self.subscribe(handler)

    async def publish(self, signal: InvalidationSignal) -> None:
        logger.debug(
            "Publishing invalidation signal",
            origin=signal.origin,
            plan_id=signal.plan_id,
            changes=len(signal.changes),
        )
        for handler in list(self._handlers):
            try:
                result = handler(signal)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Invalidation handler failed", origin=signal.origin, plan_id=signal.plan_id)
