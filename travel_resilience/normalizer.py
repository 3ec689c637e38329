"""Map arbitrary failures onto the application error types"""

from collections.abc import Mapping
from typing import Any, Optional

from .config import DATABASE_ERROR_PREFIXES, GENERIC_ERROR_MESSAGE
from .exceptions import (
    AppError,
    BadRequestError,
    ExternalAPIError,
    InternalServerError,
    ValidationError,
)


def normalize(caught: Any) -> AppError:
    """
    Convert any caught value into an AppError.

    Rules, first match wins:
        1. AppError instances are returned unchanged
        2. Database driver errors (PGRST* codes) -> BadRequestError
        3. Flight provider errors (meta.status) -> ExternalAPIError
        4. Errors named ValidationError -> ValidationError
        5. Anything else -> InternalServerError

    Never raises, whatever it is given.
    """
    if isinstance(caught, AppError):
        return caught

    message = _message_of(caught)

    code = _safe_getattr(caught, "code")
    if isinstance(code, str) and code.startswith(DATABASE_ERROR_PREFIXES):
        return BadRequestError("Database query error", {"original": message})

    status = _provider_status(caught)
    if status:
        return ExternalAPIError(
            f"Duffel API error: {message}",
            {"status": status, "errors": _safe_getattr(caught, "errors")},
        )

    if type(caught).__name__ == "ValidationError":
        return ValidationError(message or "Validation failed", _validation_details(caught))

    return InternalServerError(message or GENERIC_ERROR_MESSAGE)


def _safe_getattr(obj: Any, name: str) -> Any:
    try:
        return getattr(obj, name, None)
    except Exception:
        return None


def _message_of(caught: Any) -> str:
    message = _safe_getattr(caught, "message")
    if isinstance(message, str) and message:
        return message
    if isinstance(caught, BaseException):
        try:
            return str(caught)
        except Exception:
            return ""
    return ""


def _provider_status(caught: Any) -> Optional[Any]:
    meta = _safe_getattr(caught, "meta")
    if meta is None:
        return None
    if isinstance(meta, Mapping):
        return meta.get("status")
    return _safe_getattr(meta, "status")


def _validation_details(caught: Any) -> Any:
    details = _safe_getattr(caught, "details")
    if details is not None:
        return details

    # pydantic exposes its error list through errors()
    errors = _safe_getattr(caught, "errors")
    if callable(errors):
        try:
            return errors()
        except Exception:
            return None
    return errors
