"""Store protocol consumed by the pagination engine and repositories."""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol

from quarry.domain.entities import FieldKind
from quarry.infrastructure.sqlalchemy.query import QueryBuilder


class Store(Protocol):
    """Persistence backend the engine reads and writes through."""

    async def count(self, query: QueryBuilder) -> int:
        """Count the records matching a query."""
        ...

    async def fetch(self, query: QueryBuilder) -> Sequence[Any]:
        """Fetch the records matching a query."""
        ...

    async def fetch_one(self, query: QueryBuilder) -> Any | None:
        """Fetch the single record matching a query, if any."""
        ...

    async def insert(self, record: Any) -> Any:
        """Insert a new record."""
        ...

    async def update(self, record: Any, changes: Mapping[str, Any]) -> Any:
        """Apply changes to a record and persist it."""
        ...

    async def remove(self, record: Any) -> None:
        """Physically remove a record."""
        ...

    def now(self, kind: FieldKind) -> datetime:
        """Get the current time in the representation of a field kind."""
        ...
