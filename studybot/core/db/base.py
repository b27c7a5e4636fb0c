from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from studybot.core.config import settings

from datetime import datetime, timezone
from typing import AsyncIterator
import logging


Base = declarative_base()


connection_string = settings.resolved_database_url

_engine_kwargs: dict = {"pool_pre_ping": True}
if connection_string.startswith("sqlite"):
    # aiosqlite connections must not be shared across event loops
    _engine_kwargs = {"poolclass": NullPool}

engine = create_async_engine(
    connection_string,
    echo=False,
    **_engine_kwargs,
)

async_session_maker = async_sessionmaker(
    engine,
    expire_on_commit=False,
)


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp; all DateTime columns store UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Session rolled back due to error: {e}")
            raise
