from slowapi import Limiter
from slowapi.util import get_remote_address
from loguru import logger

from aishe_portal.core.config import settings


# ----------------------------------------------------------------
# 1. CLIENT IP IDENTIFICATION (behind proxies)
# ----------------------------------------------------------------
def get_real_ip(request):
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # leftmost entry is the client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


# ----------------------------------------------------------------
# 2. LIMITER (Redis storage when configured, memory otherwise)
# ----------------------------------------------------------------
def build_limiter() -> Limiter:
    if settings.REDIS_URL:
        logger.info("Initializing rate limiter with Redis storage")
        return Limiter(
            key_func=get_real_ip,
            storage_uri=settings.REDIS_URL,
            strategy="fixed-window",
            storage_options={"socket_connect_timeout": 5, "retry_on_timeout": True},
            enabled=settings.RATE_LIMIT_ENABLED,
        )

    logger.info("REDIS_URL not set. Using in-memory rate limiting.")
    return Limiter(key_func=get_real_ip, enabled=settings.RATE_LIMIT_ENABLED)


limiter = build_limiter()
