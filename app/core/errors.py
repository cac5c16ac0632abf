"""
Error taxonomy shared by all modules.

Every class is an HTTPException so services can keep the
`except HTTPException: raise` / `except Exception: -> 500` shape and routes
need no translation layer.
"""

from fastapi import HTTPException, status
from typing import Any, Optional


class ValidationError(HTTPException):
    """Malformed or out-of-range input. Reported to the user, never logged as exceptional."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AccessDenied(HTTPException):
    def __init__(self, detail: str = "Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidSession(HTTPException):
    """Participant token is malformed or no longer maps to a participant."""

    def __init__(self, detail: str = "Participant session not valid"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class CapacityExceeded(HTTPException):
    """Plan limit reached. The body carries enough for an upgrade call-to-action."""

    def __init__(self, message: str, limit: Optional[int] = None, current: Optional[int] = None):
        detail: dict[str, Any] = {"error": "FREE_PLAN_LIMIT", "message": message}
        if limit is not None:
            detail["limit"] = limit
        if current is not None:
            detail["current"] = current
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictError(HTTPException):
    """An atomic conditional update lost a race."""

    def __init__(self, detail: str = "The workshop was changed by another request. Please retry."):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class UpstreamAdapterError(HTTPException):
    """AI call failed or returned something unusable. Retryable by the user."""

    def __init__(self, detail: str = "Clustering failed, try again", status_code: int = status.HTTP_502_BAD_GATEWAY):
        super().__init__(status_code=status_code, detail=detail)


class UpstreamRateLimited(UpstreamAdapterError):
    def __init__(self, detail: str = "Rate limit exceeded. Please wait a moment and try again."):
        super().__init__(detail=detail, status_code=status.HTTP_429_TOO_MANY_REQUESTS)


class UpstreamQuotaExhausted(UpstreamAdapterError):
    def __init__(self, detail: str = "AI credits exhausted. Please contact your administrator."):
        super().__init__(detail=detail, status_code=status.HTTP_402_PAYMENT_REQUIRED)
