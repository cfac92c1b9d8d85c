"""Custom exceptions."""
from typing import Optional
from fastapi import HTTPException, status
from taskboard.localization.helpers import get_translation


class NotFoundError(HTTPException):
    """Resource not found exception."""

    def __init__(self, detail: Optional[str] = None, locale: str = "en"):
        if detail is None:
            detail = get_translation("errors.resource_not_found", locale)
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthorizedError(HTTPException):
    """Unauthorized exception."""

    def __init__(self, detail: Optional[str] = None, locale: str = "en"):
        if detail is None:
            detail = get_translation("errors.not_authenticated", locale)
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(HTTPException):
    """Forbidden exception."""

    def __init__(self, detail: Optional[str] = None, locale: str = "en"):
        if detail is None:
            detail = get_translation("errors.permission_denied", locale)
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ValidationError(HTTPException):
    """Validation exception."""

    def __init__(self, detail: Optional[str] = None, locale: str = "en"):
        if detail is None:
            detail = get_translation("errors.validation_error", locale)
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class ConflictError(HTTPException):
    """Conflict exception."""

    def __init__(self, detail: Optional[str] = None, locale: str = "en"):
        if detail is None:
            detail = get_translation("errors.resource_conflict", locale)
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class CredentialAlreadyInUseError(ConflictError):
    """External credential is already linked to a different account."""

    def __init__(self, detail: Optional[str] = None, locale: str = "en"):
        if detail is None:
            detail = get_translation("errors.tracker_credential_in_use", locale)
        super().__init__(detail=detail, locale=locale)


class TrackerError(HTTPException):
    """Remote issue tracker call failed or returned something unusable."""

    def __init__(self, detail: Optional[str] = None, locale: str = "en"):
        if detail is None:
            detail = get_translation("errors.tracker_request_failed", locale)
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


class ServiceUnavailableError(HTTPException):
    """Store write failed; the detail is the notice shown to the user."""

    def __init__(self, detail: Optional[str] = None, locale: str = "en"):
        if detail is None:
            detail = get_translation("errors.resource_conflict", locale)
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
