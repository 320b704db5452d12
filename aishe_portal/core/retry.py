# aishe_portal/core/retry.py

import asyncio
from dataclasses import dataclass
from functools import wraps
from typing import Callable

from loguru import logger
from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from aishe_portal.core.config import settings


def is_db_timeout(exc: BaseException) -> bool:
    """True for pool checkout timeouts and driver errors reporting a timeout."""
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, PoolTimeoutError)):
        return True
    if isinstance(exc, DBAPIError):
        text = str(exc.orig if exc.orig is not None else exc).lower()
        return "timeout" in text or "timed out" in text
    return False


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 2
    delay: float = 2.0
    retry_on: Callable[[BaseException], bool] = is_db_timeout


db_retry = RetryPolicy(
    attempts=settings.DB_RETRY_ATTEMPTS,
    delay=settings.DB_RETRY_DELAY_SECONDS,
    retry_on=is_db_timeout,
)


def with_retry(policy: RetryPolicy = db_retry):
    """
    Retry an async call site while `policy.retry_on` accepts the error.

    When the first positional argument is an AsyncSession it is rolled back
    between attempts so the next attempt starts on a clean transaction.
    Once attempts are exhausted the last error propagates.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            attempts = max(1, policy.attempts)
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if attempt >= attempts or not policy.retry_on(e):
                        raise
                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{attempts} timed out: {e}. "
                        f"Retrying in {policy.delay:.1f}s..."
                    )
                    if args and isinstance(args[0], AsyncSession):
                        await args[0].rollback()
                    await asyncio.sleep(policy.delay)

        return wrapper

    return decorator
