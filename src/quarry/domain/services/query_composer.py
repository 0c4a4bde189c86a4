"""Compose request criteria into a query.

The stages run in a fixed order: visibility, search, range, filter, sort and
finally limit/offset. The first four produce the filtered query that is both
counted and fetched; sort and limit/offset are only ever layered on for the
fetch.
"""

from collections.abc import Mapping

from quarry.domain.entities import Criteria, EntityDescriptor, PaginationConfig
from quarry.domain.errors import ValidationError
from quarry.domain.services.soft_delete import SoftDeleteGuard
from quarry.infrastructure.sqlalchemy.query import (
    FilterCriteria,
    FilterOperator,
    QueryBuilder,
    escape_like,
    is_scalar,
)


class QueryComposer:
    """Apply criteria to a query in the composition order."""

    def __init__(self, guard: SoftDeleteGuard | None = None) -> None:
        """Initialize the query composer."""
        self._guard = guard or SoftDeleteGuard()

    def compose(
        self,
        base: QueryBuilder,
        criteria: Criteria,
        config: PaginationConfig,
        descriptor: EntityDescriptor,
    ) -> QueryBuilder:
        """Build the full fetch query for one page."""
        return self.paginated(
            self.filtered(base, criteria, config, descriptor), criteria
        )

    def filtered(
        self,
        base: QueryBuilder,
        criteria: Criteria,
        config: PaginationConfig,
        descriptor: EntityDescriptor,
    ) -> QueryBuilder:
        """Build the filtered query: visibility, search, range and filter."""
        query = self.visibility(base, descriptor)
        query = self.search(query, criteria.search_term, config.search.on)
        query = self.range(query, _pick(criteria.request, config.range.on))
        return self.filter(query, _pick(criteria.request, config.filter.on))

    def paginated(self, filtered: QueryBuilder, criteria: Criteria) -> QueryBuilder:
        """Layer sort, limit and offset onto a filtered query."""
        query = self.sort(filtered, criteria.sort_by)
        return self.limit_offset(query, criteria.size, criteria.offset)

    def visibility(
        self, query: QueryBuilder, descriptor: EntityDescriptor
    ) -> QueryBuilder:
        """Hide soft deleted rows."""
        return self._guard.apply_visibility(query, descriptor)

    def search(
        self, query: QueryBuilder, term: str | None, columns: tuple[str, ...]
    ) -> QueryBuilder:
        """Match the term as a substring of any search column."""
        if not term or not columns:
            return query
        pattern = f"%{escape_like(term)}%"
        return query.any_of(
            *(FilterCriteria(column, FilterOperator.ILIKE, pattern) for column in columns)
        )

    def range(self, query: QueryBuilder, ranges: Mapping[str, object]) -> QueryBuilder:
        """Apply inclusive after/before bounds per column."""
        for column, bounds in ranges.items():
            if not isinstance(bounds, Mapping):
                continue
            after = bounds.get("after")
            if after not in (None, ""):
                _require_scalar(column, after)
                query = query.filter(column, FilterOperator.GTE, after)
            before = bounds.get("before")
            if before not in (None, ""):
                _require_scalar(column, before)
                query = query.filter(column, FilterOperator.LTE, before)
        return query

    def filter(
        self, query: QueryBuilder, filters: Mapping[str, object]
    ) -> QueryBuilder:
        """Apply membership for list values and equality otherwise."""
        for column, value in filters.items():
            if isinstance(value, list | tuple):
                for item in value:
                    _require_scalar(column, item)
                query = query.filter(column, FilterOperator.IN, value)
            else:
                _require_scalar(column, value)
                query = query.filter(column, FilterOperator.EQ, value)
        return query

    def sort(self, query: QueryBuilder, sort_by: str | None) -> QueryBuilder:
        """Order by the sort column, descending when prefixed with '-'."""
        if sort_by is None:
            return query
        return query.sort(sort_by.removeprefix("-"), descending=sort_by.startswith("-"))

    def limit_offset(
        self, query: QueryBuilder, size: int | None, offset: int | None
    ) -> QueryBuilder:
        """Limit to one page, skipping the earlier pages."""
        limit = size if size is not None and size >= 1 else None
        offset = offset if offset is not None and offset >= 1 else None
        if limit is None and offset is None:
            return query
        return query.paginate(limit, offset=offset)


def _pick(request: Mapping[str, object], columns: tuple[str, ...]) -> dict[str, object]:
    return {column: request[column] for column in columns if column in request}


def _require_scalar(column: str, value: object) -> None:
    if not is_scalar(value):
        msg = f"Invalid value {value!r} for field {column}"
        raise ValidationError(msg)
