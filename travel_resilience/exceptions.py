"""Typed application errors, each bound to an HTTP status and error code"""

from typing import Any, Dict, Optional

from .models import ErrorCode


def _restore_error(cls, state: Dict[str, Any]) -> "AppError":
    error = cls.__new__(cls)
    Exception.__init__(error, state.get("message", ""))
    error.__dict__.update(state)
    return error


class AppError(Exception):
    """
    Base class for all application errors.

    Every error carries the HTTP status it maps to and a machine-readable
    code. Fields are read-only once the error is constructed.
    """

    _FIELDS = frozenset({"message", "status_code", "is_operational", "code", "details"})

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        is_operational: bool = True,
        code: Optional[ErrorCode] = None,
        details: Optional[Any] = None,
    ):
        if not 400 <= status_code <= 599:
            raise ValueError(f"status_code must be in [400, 599], got {status_code}")
        super().__init__(message)
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "status_code", status_code)
        object.__setattr__(self, "is_operational", is_operational)
        object.__setattr__(self, "code", ErrorCode(code) if code else ErrorCode.INTERNAL_ERROR)
        object.__setattr__(self, "details", details)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._FIELDS:
            raise AttributeError(f"{type(self).__name__}.{name} is read-only")
        super().__setattr__(name, value)

    def __reduce__(self):
        # Rebuild from the stored fields; subclass __init__ signatures differ
        return _restore_error, (type(self), dict(self.__dict__))

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation: message, code and details when present"""
        payload: Dict[str, Any] = {"message": self.message, "code": self.code.value}
        if self.details:
            payload["details"] = self.details
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class BadRequestError(AppError):
    """400 Bad Request"""

    def __init__(self, message: str = "Bad Request", details: Optional[Any] = None):
        super().__init__(message, 400, True, ErrorCode.BAD_REQUEST, details)


class UnauthorizedError(AppError):
    """401 Unauthorized"""

    def __init__(self, message: str = "Unauthorized", details: Optional[Any] = None):
        super().__init__(message, 401, True, ErrorCode.UNAUTHORIZED, details)


class ForbiddenError(AppError):
    """403 Forbidden"""

    def __init__(self, message: str = "Forbidden", details: Optional[Any] = None):
        super().__init__(message, 403, True, ErrorCode.FORBIDDEN, details)


class NotFoundError(AppError):
    """404 Not Found"""

    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, 404, True, ErrorCode.NOT_FOUND, details)


class ConflictError(AppError):
    """409 Conflict"""

    def __init__(self, message: str = "Resource conflict", details: Optional[Any] = None):
        super().__init__(message, 409, True, ErrorCode.CONFLICT, details)


class ValidationError(AppError):
    """422 Unprocessable Entity"""

    def __init__(self, message: str = "Validation failed", details: Optional[Any] = None):
        super().__init__(message, 422, True, ErrorCode.VALIDATION_ERROR, details)


class RateLimitError(AppError):
    """429 Too Many Requests"""

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Any] = None):
        super().__init__(message, 429, True, ErrorCode.RATE_LIMIT_EXCEEDED, details)


class InternalServerError(AppError):
    """500 Internal Server Error"""

    def __init__(self, message: str = "Internal server error", details: Optional[Any] = None):
        super().__init__(message, 500, True, ErrorCode.INTERNAL_ERROR, details)


class ExternalAPIError(AppError):
    """502 Bad Gateway, raised when an upstream provider fails"""

    def __init__(self, message: str = "External API error", details: Optional[Any] = None):
        super().__init__(message, 502, True, ErrorCode.EXTERNAL_API_ERROR, details)


class ServiceUnavailableError(AppError):
    """503 Service Unavailable"""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        details: Optional[Any] = None,
    ):
        super().__init__(message, 503, True, ErrorCode.SERVICE_UNAVAILABLE, details)


class CircuitOpenError(ServiceUnavailableError):
    """Raised when a circuit breaker rejects a call without attempting it"""

    def __init__(self, name: str, retry_in: float, message: Optional[str] = None):
        super().__init__(
            message or f"Circuit '{name}' is OPEN, retry in {retry_in:.0f}s",
            details={"circuit": name, "retry_in": round(retry_in, 3)},
        )
        self.name = name
        self.retry_in = retry_in
