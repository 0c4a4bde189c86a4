"""SQLAlchemy implementation of the store."""

from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quarry.domain.entities import FieldKind
from quarry.domain.errors import ConfigurationError, PersistenceError
from quarry.infrastructure.sqlalchemy.query import QueryBuilder
from quarry.infrastructure.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork


def create_sqlalchemy_store(
    session_factory: Callable[[], AsyncSession], model_type: type
) -> "SqlAlchemyStore":
    """Create a store for a mapped class."""
    return SqlAlchemyStore(session_factory=session_factory, model_type=model_type)


class SqlAlchemyStore:
    """Store that runs each round trip in its own unit of work."""

    def __init__(
        self, session_factory: Callable[[], AsyncSession], model_type: type
    ) -> None:
        """Initialize the store."""
        self.session_factory = session_factory
        self.model_type = model_type
        self.log = structlog.get_logger(__name__)

    async def count(self, query: QueryBuilder) -> int:
        """Count the records matching a query."""
        async with SqlAlchemyUnitOfWork(self.session_factory) as session:
            stmt = query.apply(select(self.model_type), self.model_type)
            count_stmt = select(func.count()).select_from(stmt.subquery())
            return (await session.scalar(count_stmt)) or 0

    async def fetch(self, query: QueryBuilder) -> Sequence[Any]:
        """Fetch the records matching a query."""
        async with SqlAlchemyUnitOfWork(self.session_factory) as session:
            stmt = query.apply(select(self.model_type), self.model_type)
            return list((await session.scalars(stmt)).all())

    async def fetch_one(self, query: QueryBuilder) -> Any | None:
        """Fetch the single record matching a query, if any."""
        async with SqlAlchemyUnitOfWork(self.session_factory) as session:
            stmt = query.apply(select(self.model_type), self.model_type)
            return (await session.scalars(stmt)).one_or_none()

    async def insert(self, record: Any) -> Any:
        """Insert a new record."""
        async with SqlAlchemyUnitOfWork(self.session_factory) as session:
            session.add(record)
            await self._flush(session, "insert")
            await session.refresh(record)
            self.log.debug("Inserted record", model=self.model_type.__name__)
            return record

    async def update(self, record: Any, changes: Mapping[str, Any]) -> Any:
        """Apply changes to a record and persist it."""
        async with SqlAlchemyUnitOfWork(self.session_factory) as session:
            merged = await session.merge(record)
            for key, value in changes.items():
                setattr(merged, key, value)
            await self._flush(session, "update")
            await session.refresh(merged)
            self.log.debug(
                "Updated record",
                model=self.model_type.__name__,
                fields=sorted(changes),
            )
            return merged

    async def remove(self, record: Any) -> None:
        """Physically remove a record."""
        async with SqlAlchemyUnitOfWork(self.session_factory) as session:
            merged = await session.merge(record)
            await session.delete(merged)
            await session.flush()
            self.log.debug("Removed record", model=self.model_type.__name__)

    def now(self, kind: FieldKind) -> datetime:
        """Get the current time in the representation of a field kind."""
        match kind:
            case FieldKind.DATE_NO_ZONE:
                return datetime.now(UTC).replace(tzinfo=None, microsecond=0)
            case FieldKind.DATE_UTC:
                return datetime.now(UTC)
            case _:
                msg = f"Cannot generate a timestamp for field kind {kind.value}"
                raise ConfigurationError(msg)

    async def _flush(self, session: AsyncSession, operation: str) -> None:
        try:
            await session.flush()
        except IntegrityError as e:
            msg = f"Store rejected {operation} of {self.model_type.__name__}"
            raise PersistenceError(msg, errors=[str(e.orig)]) from e
