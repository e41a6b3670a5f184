"""Bounded retry helpers — stdlib only.

``retry`` is a decorator with exponential backoff for network calls;
``call_with_retry`` runs a callable with linear backoff (``base_delay * attempt``)
for browser actions, where a slow element usually needs a little more time,
not an exponentially growing one.
"""
from __future__ import annotations

import functools
import logging
import random
import time
from typing import Any, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable:
    """Decorator: retries the wrapped function with exponential backoff."""

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_exc: BaseException | None = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    last_exc = exc
                    if attempt == max_attempts:
                        logger.error(
                            "%s failed after %d attempts: %s",
                            fn.__qualname__,
                            max_attempts,
                            exc,
                        )
                        raise
                    delay = min(
                        base_delay * (backoff_factor ** (attempt - 1)), max_delay
                    )
                    if jitter:
                        delay *= 0.5 + random.random()
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__,
                        attempt,
                        max_attempts,
                        exc,
                        delay,
                    )
                    time.sleep(delay)
            raise last_exc  # type: ignore[misc]

        return wrapper

    return decorator


def call_with_retry(
    fn: Callable[[], T],
    *,
    max_attempts: int,
    base_delay: float,
    label: str = "",
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """Call *fn* up to *max_attempts* times, sleeping ``base_delay * attempt`` between tries."""
    attempts = max(1, max_attempts)
    name = label or getattr(fn, "__qualname__", "action")
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retryable as exc:
            if attempt == attempts:
                logger.error("%s failed after %d attempts: %s", name, attempts, exc)
                raise
            delay = base_delay * attempt
            logger.warning(
                "%s attempt %d/%d failed (%s), retrying in %.1fs",
                name, attempt, attempts, exc, delay,
            )
            time.sleep(delay)
    raise RuntimeError("unreachable")  # pragma: no cover
