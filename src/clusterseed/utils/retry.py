# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import time
import functools
from typing import Callable

from ..errors import ClusterSeedError


class RetryError(ClusterSeedError):
    pass


def retry(
    *,
    attempts: int,
    delay: float,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    on_retry: Callable[[int, Exception], None] | None = None,
):
    """
    Retry decorator for connection-level operations.

    attempts: total number of tries (1 means no retry)
    delay: seconds between attempts
    retry_on: exception types to retry
    on_retry: callback(attempt, exception), called after each failed attempt
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            last_exc = None
            for attempt in range(1, attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retry_on as exc:
                    last_exc = exc
                    if on_retry:
                        on_retry(attempt, exc)
                    if attempt == attempts:
                        break
                    time.sleep(delay)
            raise RetryError(f"{fn.__name__} failed after {attempts} attempts: {last_exc}") from last_exc
        return wrapper
    return decorator
