"""
Error taxonomy shared by the stores, the consistency engine and the AI intake
pipeline.

Every error carries a stable ``code`` plus a list of ``{field, message}``
pairs so the HTTP layer (and any other caller) can render it verbatim.
"""

from typing import List, Optional


class DomainError(Exception):
    code = "error"
    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[dict]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        if errors is None:
            errors = [{"field": field, "message": message}] if field else []
        self.errors = errors

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, "errors": self.errors}


class ValidationError(DomainError):
    """Bad input. Caller-fixable and never retried automatically."""

    code = "validation_error"
    status_code = 400


class IntegrityViolation(ValidationError):
    """A derived invariant failed to hold, e.g. a total time that is not prep + cook."""

    code = "integrity_violation"


class ConflictError(DomainError):
    code = "conflict"
    status_code = 409

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[dict]] = None,
        cascade_available: bool = False,
    ):
        super().__init__(message, field=field, errors=errors)
        self.cascade_available = cascade_available

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["cascade_available"] = self.cascade_available
        return data


class NotFoundError(DomainError):
    code = "not_found"
    status_code = 404


class TransientError(DomainError):
    """Generator or storage unavailability. Eligible for retry with backoff."""

    code = "transient"
    status_code = 503


class OperationCancelled(DomainError):
    code = "cancelled"
    status_code = 499
