# spotwise/core/errors.py
from __future__ import annotations

from typing import Any, Dict


class SpotwiseError(Exception):
    """
    Base class for user-visible domain errors.

    Every subclass carries the HTTP status it maps to and a stable `error` code
    so clients can branch on the kind (e.g. refresh state on AlreadyClaimed).
    """

    status_code: int = 400
    code: str = "SpotwiseError"

    def __init__(self, message: str = "", **extra: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.extra = extra

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        detail.update(self.extra)
        return detail


class ValidationError(SpotwiseError):
    status_code = 422
    code = "ValidationError"


class AuthenticationError(SpotwiseError):
    status_code = 401
    code = "AuthenticationError"


class AuthorizationError(SpotwiseError):
    status_code = 403
    code = "AuthorizationError"


class NotFound(SpotwiseError):
    status_code = 404
    code = "NotFound"


class AlreadyClaimed(SpotwiseError):
    status_code = 409
    code = "AlreadyClaimed"


class InvalidState(SpotwiseError):
    status_code = 409
    code = "InvalidState"


class ProviderBusy(SpotwiseError):
    status_code = 409
    code = "ProviderBusy"


class InvalidPin(SpotwiseError):
    status_code = 400
    code = "InvalidPin"


class PinAttemptsExceeded(InvalidPin):
    status_code = 429
    code = "PinAttemptsExceeded"


class InvalidLocation(SpotwiseError):
    status_code = 400
    code = "InvalidLocation"


class StoreError(SpotwiseError):
    """Storage failure. The message is generic; the cause is logged, never returned."""

    status_code = 503
    code = "StoreError"

    def __init__(self, message: str = "Storage temporarily unavailable.", **extra: Any):
        super().__init__(message, **extra)
