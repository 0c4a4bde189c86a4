"""Database configuration for quarry."""

from collections.abc import Callable

import structlog
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


class Database:
    """Own the async engine and its session factory."""

    def __init__(self, db_url: str) -> None:
        """Initialize the database."""
        self.db_url = db_url
        self.log = structlog.get_logger(__name__)
        self._engine = create_async_engine(db_url, echo=False)
        # Records outlive the session that loaded them
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def session_factory(self) -> Callable[[], AsyncSession]:
        """Get the session factory."""
        return self._session_factory

    async def create_all(self, metadata: MetaData) -> None:
        """Create every table in the metadata that does not exist yet."""
        async with self._engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        self.log.debug("Created tables", tables=sorted(metadata.tables))

    async def close(self) -> None:
        """Dispose of the engine."""
        await self._engine.dispose()
