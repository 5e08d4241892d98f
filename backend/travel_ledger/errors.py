"""
Error taxonomy shared by every service.

All core failures are recoverable and typed: callers branch on ``kind``.
Storage-layer errors are not wrapped here and propagate unchanged.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    INVALID_STATE = "INVALID_STATE"
    NOT_FOUND = "NOT_FOUND"
    TIMEOUT = "TIMEOUT"


class LedgerError(Exception):
    """Base class for recoverable errors raised by the ledger core"""
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(LedgerError):
    """Malformed date, unparseable identifier or unknown locale"""
    kind = ErrorKind.INVALID_INPUT


class EntityValidationError(LedgerError):
    """An entity invariant would be violated by a write"""
    kind = ErrorKind.VALIDATION

    def __init__(self, invariant: str, message: str):
        super().__init__(message)
        self.invariant = invariant


class ConflictError(LedgerError):
    """A confirmed match already exists for one side"""
    kind = ErrorKind.CONFLICT


class InvalidStateError(LedgerError):
    """A state-machine transition was attempted from a non-source state"""
    kind = ErrorKind.INVALID_STATE


class NotFoundError(LedgerError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class LockTimeoutError(LedgerError):
    """A row lock could not be acquired before the deadline"""
    kind = ErrorKind.TIMEOUT

    def __init__(self, key: str, timeout: float):
        super().__init__(f"Could not acquire lock on {key} within {timeout:.2f}s")
        self.key = key
        self.timeout = timeout


# HTTP status per error kind; every kind maps to a distinct code
HTTP_STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_STATE: 412,
    ErrorKind.VALIDATION: 422,
    ErrorKind.TIMEOUT: 503,
}


def error_payload(error: LedgerError) -> dict:
    payload = {"error": error.kind.value, "detail": error.message}
    invariant: Optional[str] = getattr(error, "invariant", None)
    if invariant:
        payload["invariant"] = invariant
    return payload
