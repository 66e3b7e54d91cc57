"""
peergrade/errors.py
Centralized error handling for the grading engine

CORE PRINCIPLES:
- Every failure a caller can cause is a typed, recoverable error
- No 500 errors caused by user input
- All errors follow consistent structure
- Errors are user-safe (no stack traces, no storage details)
- Errors are machine-readable

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}
"""

import logging
import uuid
from typing import Optional, Dict, Any, List

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    INVALID_INPUT = "INVALID_INPUT"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"

    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    NOT_FOUND = "NOT_FOUND"

    INSUFFICIENT_POOL = "INSUFFICIENT_POOL"
    GRADING_NOT_OPEN = "GRADING_NOT_OPEN"
    EDIT_WINDOW_EXPIRED = "EDIT_WINDOW_EXPIRED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class InvalidInputError(APIError):
    """400 Bad Request - malformed or out-of-range input"""
    def __init__(self, violations: List[str], message: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Invalid Input",
            message=message or "; ".join(violations),
            code=ErrorCode.INVALID_INPUT,
            details={"violations": list(violations)}
        )
        self.violations = list(violations)


class UnauthorizedError(APIError):
    """401 Unauthorized - Authentication required"""
    def __init__(self, message: str = "Authentication required", code: str = ErrorCode.AUTH_REQUIRED):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Unauthorized",
            message=message,
            code=code
        )


class NotAuthorizedError(APIError):
    """403 Forbidden - requester lacks the ownership or evaluator relation"""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Not Authorized",
            message=message,
            code=ErrorCode.NOT_AUTHORIZED,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=ErrorCode.NOT_FOUND
        )


class InsufficientPoolError(APIError):
    """400 Bad Request - not enough eligible evaluators for the requested jury"""
    def __init__(self, pool_size: int, requested: int):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Insufficient Pool",
            message=f"Not enough students available. Found {pool_size}, needed {requested}",
            code=ErrorCode.INSUFFICIENT_POOL,
            details={"pool_size": pool_size, "requested": requested}
        )
        self.pool_size = pool_size
        self.requested = requested


class GradingNotOpenError(APIError):
    """409 Conflict - lifecycle state forbids the action"""
    def __init__(self, message: str, current_status: str, details: Optional[Dict] = None):
        payload = {"status": current_status}
        if details:
            payload.update(details)
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="Grading Not Open",
            message=message,
            code=ErrorCode.GRADING_NOT_OPEN,
            details=payload
        )


class EditWindowExpiredError(APIError):
    """403 Forbidden - evaluation was last modified too long ago"""
    def __init__(self, last_modified_at: str, window_hours: int):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Edit Window Expired",
            message=f"You can only edit your evaluation within {window_hours} hours of its last modification",
            code=ErrorCode.EDIT_WINDOW_EXPIRED,
            details={"last_modified_at": last_modified_at, "window_hours": window_hours}
        )


class InternalError(APIError):
    """500 Internal Server Error - Use sparingly, only for true internal failures"""
    def __init__(self, message: str = "An internal error occurred. Please try again later.", log_id: Optional[str] = None):
        details = {"log_id": log_id} if log_id else None
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal Error",
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            details=details
        )


def new_log_id() -> str:
    return str(uuid.uuid4())[:8]


def log_internal(error: Exception, context: str = "") -> InternalError:
    """Log an internal error and build a safe 500 error for the caller"""
    log_id = new_log_id()
    logger.error(f"[{log_id}] Internal error in {context}: {type(error).__name__}: {str(error)}")
    return InternalError(log_id=log_id)


def get_error_summary() -> Dict[str, Any]:
    """Return summary of error handling system for documentation"""
    return {
        "service": "peergrade-error-handler",
        "response_structure": {
            "success": "boolean (always false for errors)",
            "error": "string (error type)",
            "message": "string (human-readable)",
            "code": "string (machine-readable)",
            "details": "object (optional)"
        },
        "status_codes": {
            "400": "Invalid input / insufficient evaluator pool",
            "401": "Authentication missing or expired",
            "403": "Not authorized / edit window expired",
            "404": "Resource does not exist",
            "409": "Deliverable lifecycle forbids the action",
            "500": "Internal error (never caused by user input)"
        },
        "error_codes": [
            attr for attr in dir(ErrorCode)
            if not attr.startswith('_')
        ]
    }
