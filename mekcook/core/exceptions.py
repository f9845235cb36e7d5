"""
Application exception hierarchy.

Every exception raised towards the request boundary is an ``AppException``,
which is a regular FastAPI ``HTTPException`` that also carries a stable
machine-readable ``code`` and an internal ``context`` dict. The exception
handlers in ``mekcook.main`` render them with ``to_dict()``.
"""
from enum import Enum
from typing import Any, Optional

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base class for exceptions rendered as JSON error responses."""

    default_message = "An unexpected error occurred."
    default_code = "INTERNAL_SERVER_ERROR"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(
            status_code=status_code or self.default_status,
            detail=message or self.default_message,
            headers=headers,
        )
        self.code = code or self.default_code
        self.context = context or {}

    @property
    def message(self) -> str:
        return self.detail

    def to_dict(self, debug: bool = False) -> dict[str, Any]:
        body: dict[str, Any] = {
            "status": "error",
            "status_code": self.status_code,
            "code": self.code,
            "detail": self.detail,
        }
        if debug and self.context:
            body["context"] = self.context
        return body


class BadRequestException(AppException):
    default_message = "Bad Request"
    default_code = "BAD_REQUEST"
    default_status = status.HTTP_400_BAD_REQUEST


class UnauthorizedException(AppException):
    default_message = "Unauthorized"
    default_code = "UNAUTHORIZED"
    default_status = status.HTTP_401_UNAUTHORIZED

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(*args, **kwargs)


class NotFoundException(AppException):
    default_message = "The requested resource was not found."
    default_code = "NOT_FOUND"
    default_status = status.HTTP_404_NOT_FOUND


class ModelNotFoundException(NotFoundException):
    """Raised when a row does not exist or is not owned by the caller."""

    def __init__(self, model: str, context: Optional[dict[str, Any]] = None):
        super().__init__(
            f"{model} not found.",
            code="MODEL_NOT_FOUND",
            context=context,
        )
        self.model = model


class ConfigurationError(AppException):
    """Fatal misconfiguration (missing or unusable signing secret, etc.)."""

    default_message = "Server authentication is misconfigured."
    default_code = "INVALID_JWT_CONFIG"


class AuthFailure(str, Enum):
    """Internal cause of a rejected credential. Never sent to the client."""

    MISSING_CREDENTIAL = "missing_credential"
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"
    REVOKED_TOKEN = "revoked_token"
    MISSING_SUBJECT = "missing_subject"
    USER_NOT_FOUND = "user_not_found"


class AuthError(UnauthorizedException):
    """
    A credential was rejected.

    ``reason`` keeps the precise cause for logs and tests, but the rendered
    response is the same plain 401 for every reason so callers cannot tell
    a revoked token from an expired or forged one.
    """

    def __init__(self, reason: AuthFailure, context: Optional[dict[str, Any]] = None):
        super().__init__(context=context)
        self.reason = reason

    def __repr__(self) -> str:
        return f"AuthError(reason={self.reason.value!r})"
