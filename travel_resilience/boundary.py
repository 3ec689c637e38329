"""Turn failures escaping a request handler into error responses"""

import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import orjson

from .config import is_development
from .normalizer import normalize
from .reporter import format_stack, report


@dataclass(frozen=True)
class ErrorResponse:
    """HTTP status plus JSON body sent back to the client"""

    status_code: int
    body: Dict[str, Any]

    def json(self) -> bytes:
        return orjson.dumps(self.body, default=str)


def error_response(
    error: BaseException,
    *,
    development: Optional[bool] = None,
    context: Optional[Dict[str, Any]] = None,
) -> ErrorResponse:
    """
    Normalize, report and serialize a failure.

    Body shape: ``{"success": false, "error": {message, code, details?}}``,
    plus ``stack`` in development mode.

    Args:
        error: The failure that escaped the handler
        development: Include the stack trace; defaults to APP_ENV=development
        context: Request context logged alongside the error
    """
    app_error = normalize(error)
    report(app_error, context)

    if development is None:
        development = is_development()

    body: Dict[str, Any] = {"success": False, "error": app_error.to_dict()}
    if development:
        # The stack of the original failure, not of the wrapper built above
        body["stack"] = format_stack(error)

    return ErrorResponse(status_code=app_error.status_code, body=body)


def not_found_response(method: str, path: str) -> ErrorResponse:
    """Response for requests that matched no route"""
    return ErrorResponse(
        status_code=404,
        body={
            "success": False,
            "error": {
                "message": f"Route not found: {method} {path}",
                "code": "ROUTE_NOT_FOUND",
            },
        },
    )


def error_boundary(
    handler: Callable[..., Awaitable[Any]],
) -> Callable[..., Awaitable[Any]]:
    """
    Wrap an async handler so any failure it raises becomes an ErrorResponse.

    A ``context`` keyword, when the caller passes one, is forwarded to the
    reporter and not to the handler.
    """

    @functools.wraps(handler)
    async def wrapper(*args, context: Optional[Dict[str, Any]] = None, **kwargs):
        try:
            return await handler(*args, **kwargs)
        except Exception as e:
            return error_response(e, context=context)

    return wrapper
