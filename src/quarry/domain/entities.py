"""Domain entities for pagination and query composition."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

RecordType = TypeVar("RecordType")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class FieldKind(Enum):
    """Declared kind of an entity field, as far as timestamps are concerned."""

    DATE_NO_ZONE = "date_no_zone"
    DATE_UTC = "date_utc"
    OTHER = "other"


@dataclass(frozen=True)
class EntityDescriptor:
    """Static description of an entity's queryable surface.

    Attributes:
        name: Entity name, used in logs and routes.
        model: The record type that the store reads and writes.
        fields: Known field names mapped to their declared kind.
        soft_delete: Name of the soft delete timestamp field, if any.
        id_field: Name of the identifying field.
        schema: Optional pydantic model validating attributes on save.

    """

    name: str
    model: type
    fields: Mapping[str, FieldKind]
    soft_delete: str | None = None
    id_field: str = "id"
    schema: type[BaseModel] | None = None

    @property
    def soft_delete_enabled(self) -> bool:
        """Whether deletes on this entity are soft."""
        return self.soft_delete is not None

    def field_kind(self, name: str) -> FieldKind:
        """Get the declared kind of a field."""
        return self.fields.get(name, FieldKind.OTHER)

    def with_soft_delete(self, soft_delete: str | None) -> "EntityDescriptor":
        """Return a copy of this descriptor using another soft delete field."""
        return replace(self, soft_delete=soft_delete)

    def dump(self, record: Any) -> dict[str, Any]:
        """Read the known fields of a record into a dict."""
        return {name: getattr(record, name) for name in self.fields}


@dataclass(frozen=True)
class SizeOptions:
    """Result set size limits."""

    default: int = DEFAULT_PAGE_SIZE
    max: int = MAX_PAGE_SIZE


@dataclass(frozen=True)
class SortOptions:
    """Sortable columns and the default sort."""

    default: str | None = None
    on: tuple[str, ...] = ()


@dataclass(frozen=True)
class ColumnOptions:
    """Columns a capability is allowed on."""

    on: tuple[str, ...] = ()


@dataclass(frozen=True)
class PaginationConfig:
    """Per-entity pagination capabilities."""

    size: SizeOptions = field(default_factory=SizeOptions)
    sort: SortOptions = field(default_factory=SortOptions)
    filter: ColumnOptions = field(default_factory=ColumnOptions)
    search: ColumnOptions = field(default_factory=ColumnOptions)
    range: ColumnOptions = field(default_factory=ColumnOptions)


class PaginationConfigBuilder:
    """Assemble a PaginationConfig from partial declarations.

    Each declaration replaces only its own group and returns a new builder, so
    the last declaration of a group wins:

        config = (
            PaginationConfigBuilder()
            .size(default=24, max=100)
            .sort(on=["name", "inserted_at"], default="-inserted_at")
            .filter(on=["status"])
            .search(on=["name"])
            .range(on=["inserted_at"])
            .build()
        )
    """

    def __init__(self, config: PaginationConfig | None = None) -> None:
        """Initialize the builder."""
        self._config = config or PaginationConfig()

    def size(
        self, *, default: int = DEFAULT_PAGE_SIZE, max: int = MAX_PAGE_SIZE  # noqa: A002
    ) -> "PaginationConfigBuilder":
        """Declare the default and maximum page size."""
        return self._with(size=SizeOptions(default=default, max=max))

    def sort(
        self, *, on: Sequence[str] = (), default: str | None = None
    ) -> "PaginationConfigBuilder":
        """Declare sortable columns and the default sort."""
        return self._with(sort=SortOptions(default=default, on=tuple(on)))

    def filter(self, *, on: Sequence[str] = ()) -> "PaginationConfigBuilder":
        """Declare columns that may be filtered on."""
        return self._with(filter=ColumnOptions(on=tuple(on)))

    def search(self, *, on: Sequence[str] = ()) -> "PaginationConfigBuilder":
        """Declare columns searched by the free text term."""
        return self._with(search=ColumnOptions(on=tuple(on)))

    def range(self, *, on: Sequence[str] = ()) -> "PaginationConfigBuilder":
        """Declare columns that accept after/before bounds."""
        return self._with(range=ColumnOptions(on=tuple(on)))

    def build(self) -> PaginationConfig:
        """Build the pagination config."""
        return self._config

    def _with(self, **groups: Any) -> "PaginationConfigBuilder":
        return PaginationConfigBuilder(replace(self._config, **groups))


@dataclass(frozen=True)
class Criteria:
    """Validated, normalized representation of one page request."""

    page: int = 1
    size: int = DEFAULT_PAGE_SIZE
    search_term: str | None = None
    sort_by: str | None = None
    request: Mapping[str, Any] = field(default_factory=dict)

    @property
    def descending(self) -> bool:
        """Whether the sort carries the descending marker."""
        return self.sort_by is not None and self.sort_by.startswith("-")

    @property
    def sort_column(self) -> str | None:
        """The sort column without its direction marker."""
        if self.sort_by is None:
            return None
        return self.sort_by.removeprefix("-")

    @property
    def offset(self) -> int:
        """Number of rows skipped before this page."""
        return (self.page - 1) * self.size


def _empty_links() -> dict[str, str | None]:
    return {"prev": None, "self": None, "next": None}


@dataclass
class Page(Generic[RecordType]):
    """One page of results and the total size of the filtered set."""

    total: int = 0
    results: list[RecordType] = field(default_factory=list)
    links: dict[str, str | None] = field(default_factory=_empty_links)
