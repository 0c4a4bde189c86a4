"""Paginate an entity through a store."""

from typing import Any

import structlog

from quarry.domain.entities import Criteria, EntityDescriptor, Page, PaginationConfig
from quarry.domain.protocols import Store
from quarry.domain.services.query_composer import QueryComposer
from quarry.infrastructure.sqlalchemy.query import QueryBuilder


class PaginationService:
    """Count the filtered set and fetch one page of it."""

    def __init__(self, composer: QueryComposer | None = None) -> None:
        """Initialize the pagination service."""
        self._composer = composer or QueryComposer()
        self.log = structlog.get_logger(__name__)

    async def paginate(
        self,
        criteria: Criteria,
        config: PaginationConfig,
        descriptor: EntityDescriptor,
        store: Store,
    ) -> Page[Any]:
        """Build one page of results.

        The count and the fetch are two separate round trips, count first.
        They are not isolated from each other, so concurrent writes can make
        the total disagree with the page contents.
        """
        filtered = self._composer.filtered(QueryBuilder(), criteria, config, descriptor)

        total = await store.count(filtered)
        results = await store.fetch(self._composer.paginated(filtered, criteria))

        self.log.debug(
            "Paginated",
            entity=descriptor.name,
            page=criteria.page,
            size=criteria.size,
            total=total,
        )
        return Page(total=total, results=list(results))
