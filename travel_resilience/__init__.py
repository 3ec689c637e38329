"""Travel platform resilience layer
Typed errors, retries with backoff and circuit breakers for external providers
"""

__version__ = "0.1.0"

from .boundary import ErrorResponse, error_boundary, error_response, not_found_response
from .circuit_breaker import CircuitBreaker, CircuitBreakerRegistry, build_default_registry
from .duffel_client import DuffelAPIError, DuffelClient
from .exceptions import (
    AppError,
    BadRequestError,
    CircuitOpenError,
    ConflictError,
    ExternalAPIError,
    ForbiddenError,
    InternalServerError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from .models import BreakerSnapshot, CircuitState, ErrorCode, RetryOptions
from .normalizer import normalize
from .reporter import report
from .retry import is_retryable, retry_operation

__all__ = [
    "__version__",
    "AppError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "RateLimitError",
    "InternalServerError",
    "ExternalAPIError",
    "ServiceUnavailableError",
    "CircuitOpenError",
    "ErrorCode",
    "CircuitState",
    "BreakerSnapshot",
    "RetryOptions",
    "retry_operation",
    "is_retryable",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "build_default_registry",
    "normalize",
    "report",
    "ErrorResponse",
    "error_response",
    "not_found_response",
    "error_boundary",
    "DuffelClient",
    "DuffelAPIError",
]
