"""
Resilience wrappers for async units of work.

with_retry: bounded retry with a fixed backoff.
with_timeout: bounded wait that raises OperationTimeout instead of hanging.

Both are plain decorators and compose; ResiliencePolicy applies them
together (timeout per attempt, retries around it).

Usage:
    @with_retry(max_retries=3, backoff_seconds=1.0)
    @with_timeout(5.0)
    async def fetch():
        ...
"""

import asyncio
import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar

from bounty_audit.config import Settings
from bounty_audit.exceptions import NotFound, OperationTimeout, ValidationFailure
from bounty_audit.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Never retried: repeating the call cannot change the answer
FAIL_FAST: Tuple[Type[BaseException], ...] = (ValidationFailure, NotFound)


def with_retry(
    max_retries: int = 3,
    backoff_seconds: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Retry an async callable up to max_retries extra times, sleeping backoff_seconds between tries."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except FAIL_FAST:
                    raise
                except retry_on as exc:
                    if attempt >= max_retries:
                        raise
                    attempt += 1
                    logger.warning(
                        "Retry %d/%d for %s: %s",
                        attempt, max_retries, getattr(func, "__qualname__", func), exc,
                    )
                    await asyncio.sleep(backoff_seconds)

        return wrapper

    return decorator


def with_timeout(
    seconds: float,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Fail with OperationTimeout when the wrapped call runs longer than `seconds`."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=seconds)
            except asyncio.TimeoutError as exc:
                name = getattr(func, "__qualname__", repr(func))
                raise OperationTimeout(
                    f"Operation timed out: {name}",
                    {"timeout_seconds": seconds},
                ) from exc

        return wrapper

    return decorator


@dataclass(frozen=True)
class ResiliencePolicy:
    """Retry + timeout settings applied to one class of I/O call."""

    max_retries: int = 3
    backoff_seconds: float = 1.0
    timeout_seconds: float = 5.0

    @classmethod
    def from_settings(cls, settings: Settings, timeout_seconds: float | None = None) -> "ResiliencePolicy":
        return cls(
            max_retries=settings.max_retries,
            backoff_seconds=settings.retry_backoff_seconds,
            timeout_seconds=timeout_seconds if timeout_seconds is not None else settings.io_timeout_seconds,
        )

    def wrap(self, func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        timed = with_timeout(self.timeout_seconds)(func)
        return with_retry(self.max_retries, self.backoff_seconds)(timed)

    async def run(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Call func(*args, **kwargs) under this policy."""
        return await self.wrap(func)(*args, **kwargs)
