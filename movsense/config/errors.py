"""MovSense error handling.

Custom exceptions and error codes for the inventory pipeline.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    EMPTY_PHOTO_LIST = "EMPTY_PHOTO_LIST"
    MISSING_ROOM_NAME = "MISSING_ROOM_NAME"
    INVALID_FIELD = "INVALID_FIELD"

    # Model Errors (2xxx)
    MODEL_RATE_LIMIT = "MODEL_RATE_LIMIT"
    MODEL_SERVER_ERROR = "MODEL_SERVER_ERROR"
    MODEL_TIMEOUT = "MODEL_TIMEOUT"
    MODEL_NETWORK_ERROR = "MODEL_NETWORK_ERROR"
    MODEL_CLIENT_ERROR = "MODEL_CLIENT_ERROR"
    MODEL_EMPTY_RESPONSE = "MODEL_EMPTY_RESPONSE"

    # Parse Errors (3xxx)
    PARSE_ERROR = "PARSE_ERROR"
    UNEXPECTED_SHAPE = "UNEXPECTED_SHAPE"


class MovSenseError(Exception):
    """Base exception for MovSense errors.

    Provides structured error information for API responses.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"MovSenseError(code={self.code!r}, message={self.message!r})"


class ValidationError(MovSenseError):
    """Caller input error. Raised before any model call is made."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: str = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class ModelInvocationError(MovSenseError):
    """A single model call failed.

    Attributes:
        status_code: HTTP status when the provider answered, else None.
        retryable: Whether the retry policy may try again.
        attempts: Attempts made before this error surfaced.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
        attempts: int = 1,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={
                **(details or {}),
                "status_code": status_code,
                "retryable": retryable,
            }
        )
        self.status_code = status_code
        self.retryable = retryable
        self.attempts = attempts

    @classmethod
    def from_status(cls, status_code: int, body: str = "") -> "ModelInvocationError":
        """Classify an HTTP error status. 429 and 5xx are retryable."""
        if status_code == 429:
            code, retryable = ErrorCode.MODEL_RATE_LIMIT, True
        elif status_code >= 500:
            code, retryable = ErrorCode.MODEL_SERVER_ERROR, True
        else:
            code, retryable = ErrorCode.MODEL_CLIENT_ERROR, False
        return cls(
            code=code,
            message=f"Model API error: {status_code}",
            status_code=status_code,
            retryable=retryable,
            details={"body": body[:500]} if body else None
        )


class ResponseParseError(MovSenseError):
    """Model returned content that is not JSON in the expected shape."""

    def __init__(
        self,
        message: str,
        raw_content: str = "",
        code: str = ErrorCode.PARSE_ERROR,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "raw_content": raw_content[:500]}
        )
        self.raw_content = raw_content
