# =============================================================================
# app/exceptions.py - Custom Exceptions and Handlers
# =============================================================================
# Centralized error taxonomy for the API. Services raise these; the handlers
# registered in app/main.py turn them into JSON bodies of the form:
#
#   {"error": "...", "code": "...", "suggestion": "...", "details": ...}
#
# Errors should tell HOW to fix, not just WHAT failed.
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SellrException(Exception):
    """
    Base exception for the Sellr API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    status_code: int = 500
    code: str = "SELLR_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        suggestion: str | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.suggestion = suggestion
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "error": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Taxonomy
# =============================================================================

class AuthenticationError(SellrException):
    """Missing or invalid credentials, or a webhook that fails verification."""

    status_code = 401
    code = "AUTHENTICATION_FAILED"


class AuthorizationError(SellrException):
    """Valid identity, disallowed action (e.g. a downgrade attempt)."""

    status_code = 403
    code = "FORBIDDEN"


class TierLimitError(AuthorizationError):
    """Raised when an action would exceed the caller's tier limits."""

    code = "TIER_LIMIT_EXCEEDED"

    def __init__(self, message: str, tier: str, limit: int | None = None):
        super().__init__(
            message=message,
            suggestion="Upgrade to a higher plan to unlock more capacity",
            details={"tier": tier, "limit": limit},
        )


class ValidationError(SellrException):
    """Malformed input."""

    status_code = 400
    code = "VALIDATION_ERROR"


class ConflictError(SellrException):
    """Duplicate or no-op state transition."""

    status_code = 409
    code = "CONFLICT"


class AlreadySubscribedError(ConflictError):
    """Raised when a user asks to pay for the tier they are already on."""

    status_code = 400
    code = "ALREADY_SUBSCRIBED"

    def __init__(self, tier: str):
        super().__init__(
            message=f"Already subscribed to the {tier} plan",
            suggestion="Choose a different plan to upgrade to",
            details={"tier": tier},
        )


class NotFoundError(SellrException):
    """Unknown reference or id."""

    status_code = 404
    code = "NOT_FOUND"


class InternalError(SellrException):
    """Persistence or upstream provider failure."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("suggestion", "Try again later or contact support if the issue persists")
        super().__init__(message, **kwargs)


# =============================================================================
# Exception Handlers
# =============================================================================

async def sellr_exception_handler(
    request: Request,
    exc: SellrException
) -> JSONResponse:
    """
    Convert SellrException to JSON response.

    Returns structured error with:
    - error: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request-body validation errors.

    Flattens Pydantic errors into a `details` array of {field, message}.
    """
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append({
            "field": ".".join(loc),
            "message": error.get("msg", "Invalid value"),
        })

    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid input",
            "code": "VALIDATION_ERROR",
            "details": details,
        }
    )
