"""Exceptions raised by the data exchange services."""


class ExchangeError(Exception):
    """Base class for data exchange failures."""


class UnknownCollectionError(ExchangeError, LookupError):
    """Raised when a collection name has no schema."""

    def __init__(self, collection_name: str):
        super().__init__(f"Unknown collection: {collection_name}")
        self.collection_name = collection_name


class RecordNotFoundError(ExchangeError, LookupError):
    """Raised when a record id does not exist in its collection."""

    def __init__(self, collection_name: str, record_id: str):
        super().__init__(f"Record '{record_id}' not found in {collection_name}")
        self.collection_name = collection_name
        self.record_id = record_id


class WorkbookReadError(ExchangeError, ValueError):
    """Raised when an uploaded workbook cannot be read."""
