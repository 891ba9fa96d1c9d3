# storefront/errors.py
"""
Failure taxonomy shared by every public operation.

Each error carries the kind reported to callers (``errorKind``), a message
that is safe to show to the user and the HTTP status used by the API layer.
"""
from .schemas import ErrorResult


class StoreError(Exception):
    error_kind = "StoreError"
    status_code = 500

    def __init__(self, message: str = "Something went wrong!"):
        super().__init__(message)
        self.message = message

    def to_result(self) -> ErrorResult:
        return ErrorResult(error_kind=self.error_kind, message=self.message)


class StoreUnavailable(StoreError):
    """Transient infrastructure failure; safe to retry at the caller's discretion."""

    error_kind = "StoreUnavailable"
    status_code = 503


class NotFound(StoreError):
    error_kind = "NotFound"
    status_code = 404


class Forbidden(StoreError):
    error_kind = "Forbidden"
    status_code = 403


class InvalidInput(StoreError):
    error_kind = "InvalidInput"
    status_code = 400


class InvalidQuantity(InvalidInput):
    error_kind = "InvalidQuantity"


class CouponInvalid(StoreError):
    error_kind = "CouponInvalid"
    status_code = 400
