# aishe_portal/core/database.py

import asyncio
import ssl
from typing import AsyncGenerator

from loguru import logger
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import NullPool
from sqlalchemy import text

from aishe_portal.core.config import settings
from aishe_portal.core.retry import with_retry

DATABASE_URL = settings.database_url


# ----------------------------------------------------
# SSL (managed MySQL/Postgres hosts with self-signed certs)
# ----------------------------------------------------
def make_ssl():
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _engine_options(url: str) -> dict:
    # SQLite (tests) gets no pool; everything else a bounded, queueing pool
    if settings.TESTING or url.startswith("sqlite"):
        return {"poolclass": NullPool}

    connect_args = {"timeout": settings.DB_CONNECT_TIMEOUT}
    if settings.DB_SSL:
        connect_args["ssl"] = make_ssl()

    return {
        "connect_args": connect_args,
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": 0,
        "pool_timeout": settings.DB_CONNECT_TIMEOUT,
    }


# ----------------------------------------------------
# Engine
# ----------------------------------------------------
engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    **_engine_options(DATABASE_URL),
)


# ----------------------------------------------------
# Sessions
# ----------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# ----------------------------------------------------
# Create tables
# ----------------------------------------------------
async def init_db():
    # Register every table on the metadata before create_all
    from aishe_portal.models import app_setting, password_reset, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


# ----------------------------------------------------
# Connection probes
# ----------------------------------------------------
@with_retry()
async def ping():
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def test_connection(retries: int = 3, delay: float = 5.0) -> bool:
    for attempt in range(1, retries + 1):
        try:
            logger.info(f"Testing database connection (attempt {attempt}/{retries})...")
            await ping()
            logger.success("Database connection OK")
            return True
        except Exception as e:
            logger.error(f"Database connection attempt {attempt} failed: {e}")
            if attempt == retries:
                logger.error(
                    f"All database connection attempts failed "
                    f"(host={settings.DB_HOST}, port={settings.DB_PORT}, db={settings.DB_NAME})"
                )
                return False
            logger.info(f"Waiting {delay:.0f} seconds before retry...")
            await asyncio.sleep(delay)
    return False
