from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.config.settings import settings
from src.shared.utils import LOG_LEVEL, get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _create_engine(database_url: str) -> AsyncEngine:
    engine_kwargs = {
        "echo": LOG_LEVEL == "DEBUG",
        "pool_pre_ping": True,  # Validate connections before using them
    }

    if database_url.startswith("postgresql+asyncpg"):
        engine_kwargs.update(
            pool_size=settings.DB_POOL_SIZE,  # Number of permanent connections
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            # asyncpg-specific settings
            connect_args={
                "command_timeout": settings.DB_COMMAND_TIMEOUT,
                "server_settings": {
                    "jit": "off",
                    "application_name": "payment_webhooks",
                },
            },
        )

    return create_async_engine(database_url, **engine_kwargs)


def get_engine() -> Optional[AsyncEngine]:
    """Lazily build the engine; None when DATABASE_URL is not configured."""
    global _engine

    if _engine is None:
        if not settings.DATABASE_URL:
            logger.warning("DATABASE_URL is not set; database access is disabled")
            return None
        _engine = _create_engine(settings.DATABASE_URL)
    return _engine


def get_session_factory() -> Optional[async_sessionmaker[AsyncSession]]:
    global _session_factory

    if _session_factory is None:
        engine = get_engine()
        if engine is None:
            return None
        _session_factory = async_sessionmaker(
            engine, expire_on_commit=False, class_=AsyncSession
        )
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
