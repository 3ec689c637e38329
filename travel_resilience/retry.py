"""Retry logic with exponential backoff"""

import asyncio
import errno
import socket
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

import httpx
from loguru import logger

from .models import RetryOptions

T = TypeVar("T")

# How far down the __cause__/__context__ chain to look for an identifier
_MAX_CHAIN_DEPTH = 5

# getaddrinfo failures, named the way resolvers report them
_GAI_ERRORS = {
    getattr(socket, "EAI_AGAIN", None): "EAI_AGAIN",
    getattr(socket, "EAI_NONAME", None): "ENOTFOUND",
}


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
    *,
    on_retry: Optional[Callable[[int, BaseException], Awaitable[Any]]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **overrides,
) -> T:
    """
    Run an async operation, retrying transient failures with exponential backoff.

    The operation is attempted at most ``max_retries + 1`` times. A failure
    that is not retryable propagates immediately; when attempts run out the
    last failure propagates unchanged.

    Args:
        operation: Zero-argument coroutine function to execute
        options: Retry configuration, defaults to RetryOptions()
        on_retry: Optional callback awaited before each retry: on_retry(attempt, error)
        sleep: Coroutine used to wait between attempts
        **overrides: Individual RetryOptions fields replacing those in options
    """
    if options is None:
        options = RetryOptions(**overrides)
    elif overrides:
        options = RetryOptions(
            **{
                "max_retries": options.max_retries,
                "retry_delay": options.retry_delay,
                "backoff_multiplier": options.backoff_multiplier,
                "retryable_errors": options.retryable_errors,
                **overrides,
            }
        )

    current_delay = options.retry_delay
    attempt = 0

    while True:
        try:
            result = await operation()
        except Exception as e:
            if attempt >= options.max_retries or not is_retryable(
                e, options.retryable_errors
            ):
                raise

            logger.bind(
                attempt=attempt + 1,
                max_retries=options.max_retries,
                error=str(e),
                delay=current_delay,
            ).warning(
                f"⚠️ Retry attempt {attempt + 1}/{options.max_retries} after error: "
                f"{e} (waiting {current_delay:.2f}s)"
            )

            if on_retry:
                await on_retry(attempt, e)

            await sleep(current_delay)
            current_delay *= options.backoff_multiplier
            attempt += 1
            continue

        if attempt > 0:
            logger.success(f"✓ Recovered after {attempt} retries")
        return result


def is_retryable(error: BaseException, retryable_errors: Iterable[str]) -> bool:
    """
    Decide whether a failure is transient.

    True when its identifier is listed in retryable_errors, when it carries
    an HTTP status >= 500, or when it is a timeout.
    """
    identifier = error_identifier(error)
    if identifier is not None and identifier in frozenset(retryable_errors):
        return True

    status = error_status(error)
    if status is not None and status >= 500:
        return True

    return is_timeout(error)


def error_identifier(error: BaseException) -> Optional[str]:
    """
    Transient-error identifier of a failure (e.g. ``ECONNRESET``).

    Uses a string ``code`` attribute when present, otherwise the errno name
    of an OSError. Chained causes are searched so that an httpx transport
    error wrapping a socket error is recognised.
    """
    current: Optional[BaseException] = error
    for _ in range(_MAX_CHAIN_DEPTH):
        if current is None:
            break

        code = getattr(current, "code", None)
        if isinstance(code, str) and code:
            return code

        if isinstance(current, socket.gaierror) and current.errno in _GAI_ERRORS:
            return _GAI_ERRORS[current.errno]

        if isinstance(current, OSError) and current.errno is not None:
            name = errno.errorcode.get(current.errno)
            if name:
                return name

        current = current.__cause__ or current.__context__

    return None


def error_status(error: BaseException) -> Optional[int]:
    """HTTP status carried by a failure, if any"""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code

    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    return None


def is_timeout(error: BaseException) -> bool:
    """True for asyncio, builtin and httpx timeouts"""
    return isinstance(error, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException))
