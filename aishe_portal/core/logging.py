# aishe_portal/core/logging.py

import sys
import time

from fastapi import Request
from loguru import logger

from aishe_portal.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging() -> None:
    logger.remove()
    logger.add(
        sys.stdout,
        format=LOG_FORMAT,
        level="INFO" if settings.is_production else "DEBUG",
        colorize=True,
        backtrace=not settings.is_production,
        diagnose=not settings.is_production,
    )


async def request_logging_middleware(request: Request, call_next):
    if settings.is_production or request.url.path == "/health":
        return await call_next(request)

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.debug(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response
