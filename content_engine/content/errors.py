"""Error types for content collections.

Raised by the resource registry and the document store. The plan executor and
revert engine catch these per action; they never escape a batch operation.
"""


class ContentEngineError(Exception):
    """Base class for all content engine errors."""


class RejectedResourceError(ContentEngineError):
    """Raised when a collection name is not on the allow-list."""

    def __init__(self, resource: str, message: str | None = None):
        self.resource = resource
        self.message = message or f"Resource {resource!r} is not an allowed collection"
        super().__init__(self.message)


class RecordNotFoundError(ContentEngineError):
    """Raised when an update targets a record that does not exist."""

    def __init__(self, resource: str, record_id: str):
        self.resource = resource
        self.record_id = record_id
        self.message = f"Record {record_id} not found in {resource}"
        super().__init__(self.message)


class DuplicateRecordError(ContentEngineError):
    """Raised when an insert supplies an ID that is already taken."""

    def __init__(self, resource: str, record_id: str):
        self.resource = resource
        self.record_id = record_id
        self.message = f"Record {record_id} already exists in {resource}"
        super().__init__(self.message)
