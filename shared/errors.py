"""
Shared error handling for the Service Intake Gateway.
"""

from typing import Dict, Any, List, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Client-facing error body."""

    error: str


class ValidationErrorResponse(ErrorResponse):
    """Error body for payloads rejected by the validation engine."""

    violations: List[Dict[str, Any]] = []


class AccessLayerException(Exception):
    """Base exception for intake services.

    ``message`` and ``details`` are recorded for operators; clients only ever
    see ``public_message``.
    """

    status_code: int = 400
    public_message: str = "bad request"

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.public_message)


class DecodeError(AccessLayerException):
    """Request body could not be decoded into the expected shape."""

    def __init__(self, message: str = "Malformed request body", details: Optional[Dict[str, Any]] = None):
        super().__init__("DECODE_ERROR", message, details)
        self.public_message = message


class ValidationFailed(AccessLayerException):
    """One or more field rules rejected a decoded payload."""

    public_message = "validation failed"

    def __init__(self, violations: List[Any], details: Optional[Dict[str, Any]] = None):
        self.violations = list(violations)
        message = "\n".join(str(v) for v in self.violations) or "Validation failed"
        super().__init__("VALIDATION_FAILED", message, details)

    def to_response(self) -> ValidationErrorResponse:
        return ValidationErrorResponse(
            error=self.message,
            violations=[v.to_dict() for v in self.violations],
        )


class AuthenticationFailed(AccessLayerException):
    """Login/secret pair did not match a stored identity."""

    status_code = 401
    public_message = "incorrect auth"

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_FAILED", message, details)


class SigningError(AccessLayerException):
    """Token could not be minted with the configured signing settings."""

    public_message = "token error"

    def __init__(self, message: str = "Token signing failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SIGNING_ERROR", message, details)


class UnauthorizedError(AccessLayerException):
    """Base for every failure of the protected-route gate."""

    status_code = 401
    public_message = "unauthorized"


class TokenInvalid(UnauthorizedError):
    """Token missing, malformed, or its signature does not verify."""

    def __init__(self, message: str = "Token invalid", details: Optional[Dict[str, Any]] = None):
        super().__init__("TOKEN_INVALID", message, details)


class TokenExpired(UnauthorizedError):
    """Token signature is valid but its expiry has passed."""

    def __init__(self, message: str = "Token expired", details: Optional[Dict[str, Any]] = None):
        super().__init__("TOKEN_EXPIRED", message, details)


class IdentityNotFound(UnauthorizedError):
    """Token subject no longer corresponds to an existing account."""

    def __init__(self, message: str = "Identity not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("IDENTITY_NOT_FOUND", message, details)


class StoreError(AccessLayerException):
    """Persistence collaborator failed or is unreachable."""

    status_code = 503
    public_message = "storage unavailable"

    def __init__(self, message: str = "Store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_ERROR", message, details)
