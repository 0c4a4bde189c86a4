"""Composable query values rendered onto SQLAlchemy statements."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, Select, or_

from quarry.domain.errors import ValidationError
from quarry.infrastructure.sqlalchemy.entities import is_timezone_aware

_TRUE_VALUES = {"true", "t", "1", "yes"}
_FALSE_VALUES = {"false", "f", "0", "no"}


class Query(ABC):
    """Base query object applied to a select statement."""

    @abstractmethod
    def apply(self, stmt: Select, model_type: type) -> Select:
        """Apply this query's criteria to a SQLAlchemy Select statement."""


class FilterOperator(Enum):
    """SQL filter operators."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "ge"
    LT = "lt"
    LTE = "le"
    IN = "in_"
    LIKE = "like"
    ILIKE = "ilike"
    IS_NULL = "is_null"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def is_scalar(value: Any) -> bool:
    """Check that a value can be bound as a single SQL parameter."""
    return not isinstance(value, Mapping | list | tuple | set)


def coerce_value(column: Any, value: Any) -> Any:
    """Coerce a raw request string to the Python type of a column."""
    if not isinstance(value, str):
        return value

    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    try:
        if python_type is str:
            return value
        if python_type is bool:
            lowered = value.lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(value)
        if python_type is datetime:
            parsed = datetime.fromisoformat(value)
            if parsed.tzinfo is None and is_timezone_aware(column.type):
                parsed = parsed.replace(tzinfo=UTC)
            return parsed
        if python_type is date:
            return date.fromisoformat(value)
        return python_type(value)
    except (ValueError, TypeError, ArithmeticError) as e:
        msg = f"Invalid value {value!r} for field {column.key}"
        raise ValidationError(msg) from e


@dataclass(frozen=True)
class FilterCriteria:
    """Filter criteria for a query."""

    field: str
    operator: FilterOperator
    value: Any = None

    def condition(self, model_type: type) -> ColumnElement[bool]:  # noqa: C901
        """Build the SQL condition for this criterion."""
        column = getattr(model_type, self.field)

        value = self.value
        if self.operator == FilterOperator.IN:
            value = [coerce_value(column, item) for item in value]
        elif self.operator not in (FilterOperator.LIKE, FilterOperator.ILIKE):
            value = coerce_value(column, value)

        match self.operator:
            case FilterOperator.EQ:
                return column == value
            case FilterOperator.NE:
                return column != value
            case FilterOperator.GT:
                return column > value
            case FilterOperator.GTE:
                return column >= value
            case FilterOperator.LT:
                return column < value
            case FilterOperator.LTE:
                return column <= value
            case FilterOperator.IN:
                return column.in_(value)
            case FilterOperator.LIKE:
                return column.like(value, escape="\\")
            case FilterOperator.ILIKE:
                return column.ilike(value, escape="\\")
            case FilterOperator.IS_NULL:
                return column.is_(None)

    def apply(self, model_type: type, stmt: Select) -> Select:
        """Apply filter to statement."""
        return stmt.where(self.condition(model_type))


@dataclass(frozen=True)
class AnyOfCriteria:
    """Group of filter criteria joined with OR."""

    criteria: tuple[FilterCriteria, ...]

    def apply(self, model_type: type, stmt: Select) -> Select:
        """Apply the OR group to statement."""
        return stmt.where(or_(*(c.condition(model_type) for c in self.criteria)))


@dataclass(frozen=True)
class SortCriteria:
    """Sort criteria for a query."""

    field: str
    descending: bool = False

    def apply(self, model_type: type, stmt: Select) -> Select:
        """Apply sort to statement."""
        column = getattr(model_type, self.field)
        return stmt.order_by(column.desc() if self.descending else column.asc())


@dataclass(frozen=True)
class PaginationCriteria:
    """Pagination criteria for a query.

    A limit below one means no limit and an offset below one means no offset.
    """

    limit: int | None = None
    offset: int | None = None

    def apply(self, stmt: Select) -> Select:
        """Apply pagination to statement."""
        if self.limit is not None and self.limit >= 1:
            stmt = stmt.limit(self.limit)
        if self.offset is not None and self.offset >= 1:
            stmt = stmt.offset(self.offset)
        return stmt


@dataclass(frozen=True)
class QueryBuilder(Query):
    """Composable query builder for constructing database queries.

    Builders are immutable: every method returns a new builder layered on the
    current one, so a partially built query can be shared safely.
    """

    filters: tuple[FilterCriteria | AnyOfCriteria, ...] = ()
    sorts: tuple[SortCriteria, ...] = ()
    pagination: PaginationCriteria | None = None

    def filter(
        self, field: str, operator: FilterOperator, value: Any = None
    ) -> "QueryBuilder":
        """Add a filter criterion."""
        if operator == FilterOperator.IN:
            value = tuple(value)
        return replace(
            self, filters=(*self.filters, FilterCriteria(field, operator, value))
        )

    def any_of(self, *criteria: FilterCriteria) -> "QueryBuilder":
        """Add a group of criteria of which at least one must hold."""
        if not criteria:
            return self
        return replace(self, filters=(*self.filters, AnyOfCriteria(tuple(criteria))))

    def sort(self, field: str, *, descending: bool = False) -> "QueryBuilder":
        """Add a sort criterion."""
        return replace(self, sorts=(*self.sorts, SortCriteria(field, descending)))

    def paginate(
        self, limit: int | None = None, *, offset: int | None = None
    ) -> "QueryBuilder":
        """Add pagination."""
        return replace(self, pagination=PaginationCriteria(limit, offset))

    def apply(self, stmt: Select, model_type: type) -> Select:
        """Apply all criteria to the statement."""
        for filter_criteria in self.filters:
            stmt = filter_criteria.apply(model_type, stmt)

        for sort_criteria in self.sorts:
            stmt = sort_criteria.apply(model_type, stmt)

        if self.pagination:
            stmt = self.pagination.apply(stmt)

        return stmt
