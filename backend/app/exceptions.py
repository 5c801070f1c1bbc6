# app/exceptions.py


class CatalogError(Exception):
    """Base exception for catalog store errors."""

    kind = "catalog_error"

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(CatalogError):
    """Raised when a required field is missing or a value is invalid. No write happens."""

    kind = "validation_error"

    def __init__(self, message: str, errors=None, original_error: Exception = None):
        super().__init__(message, original_error)
        self.errors = errors or []


class StaleCursorError(ValidationError):
    """Raised when a cursor is resumed against a query other than the one that issued it."""

    kind = "stale_cursor"


class ReferenceNotFoundError(CatalogError):
    """Raised when a child record references a parent that does not exist at write time."""

    kind = "reference_error"

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"Referenced {collection} record '{record_id}' does not exist.")
        self.collection = collection
        self.record_id = record_id


class RecordNotFoundError(CatalogError):
    """Raised when an update or delete targets an id that is not stored."""

    kind = "not_found"

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"No {collection} record with id '{record_id}'.")
        self.collection = collection
        self.record_id = record_id


class IndexMissingError(CatalogError):
    """Raised when an ordering/predicate combination has no supporting index."""

    kind = "index_missing"


class BatchError(CatalogError):
    """Raised when any operation of a batch fails. Nothing from the batch is committed."""

    kind = "batch_error"

    def __init__(self, message: str, index: int = None, original_error: Exception = None):
        super().__init__(message, original_error)
        self.index = index


class DatabaseError(CatalogError):
    """Raised when the underlying database rejects a commit or query."""

    kind = "database_error"
