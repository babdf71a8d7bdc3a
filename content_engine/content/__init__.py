"""Allow-listed content collections and the document store behind them."""

from content_engine.content.collections import Collection, CollectionStore, Document, SqlDocumentStore
from content_engine.content.errors import (
    ContentEngineError,
    DuplicateRecordError,
    RecordNotFoundError,
    RejectedResourceError,
)
from content_engine.content.resources import (
    ALLOWED_RESOURCES,
    RESOURCE_TRAITS,
    ResourceName,
    ResourceRegistry,
    is_allowed,
)

__all__ = [
    "ALLOWED_RESOURCES",
    "RESOURCE_TRAITS",
    "Collection",
    "CollectionStore",
    "ContentEngineError",
    "Document",
    "DuplicateRecordError",
    "RecordNotFoundError",
    "RejectedResourceError",
    "ResourceName",
    "ResourceRegistry",
    "SqlDocumentStore",
    "is_allowed",
]
