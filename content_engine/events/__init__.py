"""Invalidation signals published after content writes."""

from content_engine.events.invalidation import ContentChanged, ContentEventBus, InvalidationSignal

__all__ = ["ContentChanged", "ContentEventBus", "InvalidationSignal"]
