"""
Gateway Error Taxonomy

Every failure the gateway reports maps to one ErrorCode and one HTTP status.
Adapters raise these; the API layer renders them as a JSON envelope:

    {
        "error": "Rate Limit Exceeded",
        "code": "RateLimited",
        "message": "Daily quota exhausted, please try again after 09:00 UTC."
    }
"""
from enum import Enum
from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Error kinds surfaced to clients."""

    UNAUTHORIZED = "Unauthorized"
    VALIDATION_ERROR = "ValidationError"
    NOT_FOUND = "NotFound"
    RATE_LIMITED = "RateLimited"
    METHOD_NOT_ALLOWED = "MethodNotAllowed"
    INTERNAL_ERROR = "InternalError"


class ServiceError(HTTPException):
    """
    Base class for classified gateway errors.

    Caught by the registered exception handler and converted to the
    error envelope. `message` and `details` are optional and omitted
    from the body when unset.
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        error: str,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=error, headers=headers)
        self.code = code
        self.error = error
        self.user_message = message
        self.error_details = details

    def to_envelope(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error, "code": self.code.value}
        if self.user_message is not None:
            body["message"] = self.user_message
        if self.error_details is not None:
            body["details"] = self.error_details
        return body


# Convenience functions for each error kind
def unauthorized_error() -> ServiceError:
    """Bad or missing credential (401)."""
    return ServiceError(status.HTTP_401_UNAUTHORIZED, ErrorCode.UNAUTHORIZED, "Unauthorized")


def validation_error(error: str, details: Optional[Any] = None) -> ServiceError:
    """Missing or malformed required input (400)."""
    return ServiceError(status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR, error, details=details)


def not_found_error(asset_id: str) -> ServiceError:
    """Delete target absent (404)."""
    return ServiceError(
        status.HTTP_404_NOT_FOUND,
        ErrorCode.NOT_FOUND,
        "File not found",
        details={"id": asset_id},
    )


def rate_limited_error(retry_hint: str, details: Optional[Any] = None) -> ServiceError:
    """Vendor quota exhausted; safe to retry after the hinted window (429)."""
    return ServiceError(
        status.HTTP_429_TOO_MANY_REQUESTS,
        ErrorCode.RATE_LIMITED,
        "Rate Limit Exceeded",
        message=retry_hint,
        details=details,
    )


def method_not_allowed_error() -> ServiceError:
    """Method outside the gateway contract (405)."""
    return ServiceError(
        status.HTTP_405_METHOD_NOT_ALLOWED,
        ErrorCode.METHOD_NOT_ALLOWED,
        "Method Not Allowed",
        headers={"Allow": "GET, POST, DELETE, OPTIONS"},
    )


def internal_error(details: str) -> ServiceError:
    """Any other backend or parsing failure (500)."""
    return ServiceError(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR,
        "Server error",
        details=details,
    )
