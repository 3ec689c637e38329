"""Log errors at a severity matching their kind"""

import traceback
from typing import Any, Dict, Optional

from loguru import logger

from .exceptions import AppError


def report(error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an error without altering it.

    Operational AppErrors are expected failures and go out at WARNING with
    their code, status and details. Anything else is unexpected and goes out
    at ERROR with its stack trace.

    Args:
        error: The error to report
        context: Optional request context (path, method, user, ip)
    """
    if isinstance(error, AppError) and error.is_operational:
        logger.bind(
            message=error.message,
            code=error.code.value,
            status_code=error.status_code,
            details=error.details,
        ).warning(f"Operational error: {error.message}")
    else:
        logger.bind(message=str(error), stack=format_stack(error)).opt(
            exception=error
        ).error(f"Unexpected error: {error}")

    if context:
        logger.bind(**context).error(
            "Error context: "
            + ", ".join(f"{key}={value}" for key, value in context.items())
        )


def format_stack(error: BaseException) -> str:
    """Formatted traceback of an error, empty if it was never raised"""
    return "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    )
