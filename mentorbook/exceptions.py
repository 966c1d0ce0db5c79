"""
Domain exceptions for the booking service.

Services raise these; routes convert them with ``to_http_exception()`` so
status codes stay in one place.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainError(Exception):
    """Base exception for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def headers(self) -> Optional[Dict[str, str]]:
        return None

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
            headers=self.headers(),
        )


class AuthenticationError(DomainError):
    """No resolvable caller identity."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class AuthorizationError(DomainError):
    """Caller lacks the required relationship or role."""

    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(DomainError):
    """Malformed input or a duration/advance-window guardrail rejection."""

    status_code = status.HTTP_400_BAD_REQUEST


class QuotaError(DomainError):
    """Monthly quota or cooldown rejection. Retryable later, never automatically."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        retry_after_seconds: Optional[int] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.retry_after_seconds = retry_after_seconds
        if retry_after_seconds is not None:
            self.details.setdefault("retry_after_seconds", retry_after_seconds)

    def headers(self) -> Optional[Dict[str, str]]:
        if self.retry_after_seconds is None:
            return None
        return {"Retry-After": str(max(0, int(self.retry_after_seconds)))}


class ConflictError(DomainError):
    """Slot overlap at commit time, or a stale update."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(DomainError):
    """Unknown mentor, session, connection or template id."""

    status_code = status.HTTP_404_NOT_FOUND


class UpstreamError(DomainError):
    """Video provider or email failure."""

    status_code = status.HTTP_502_BAD_GATEWAY
