# app/endpoints/errors.py
from app.exceptions import (
    BatchError,
    CatalogError,
    DatabaseError,
    IndexMissingError,
    RecordNotFoundError,
    ReferenceNotFoundError,
    ValidationError,
)

# Most specific first
STATUS_CODES = [
    (ValidationError, 422),
    (ReferenceNotFoundError, 409),
    (RecordNotFoundError, 404),
    (IndexMissingError, 400),
    (BatchError, 409),
    (DatabaseError, 503),
]


def status_for(error: CatalogError) -> int:
    for error_type, status in STATUS_CODES:
        if isinstance(error, error_type):
            return status
    return 500


def error_payload(error: CatalogError) -> dict:
    body = {"kind": error.kind, "message": error.message}
    if isinstance(error, ValidationError) and error.errors:
        body["errors"] = error.errors
    if isinstance(error, BatchError) and error.index is not None:
        body["index"] = error.index
        if isinstance(error.original_error, CatalogError):
            body["cause"] = error.original_error.kind
    return {"error": body}
