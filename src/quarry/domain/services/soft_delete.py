"""Soft delete visibility and delete strategy."""

from typing import Any

import structlog

from quarry.domain.entities import EntityDescriptor, FieldKind
from quarry.domain.errors import ConfigurationError
from quarry.domain.protocols import Store
from quarry.infrastructure.sqlalchemy.query import (
    FilterCriteria,
    FilterOperator,
    QueryBuilder,
)

TIMESTAMP_KINDS = (FieldKind.DATE_NO_ZONE, FieldKind.DATE_UTC)


class SoftDeleteGuard:
    """Decide what reads can see and how deletes happen."""

    def __init__(self) -> None:
        """Initialize the guard."""
        self.log = structlog.get_logger(__name__)

    def is_enabled(self, descriptor: EntityDescriptor) -> bool:
        """Check whether soft delete is configured for an entity."""
        return descriptor.soft_delete_enabled

    def visibility_predicate(
        self, descriptor: EntityDescriptor
    ) -> FilterCriteria | None:
        """Get the predicate hiding soft deleted rows, if soft delete is on."""
        if descriptor.soft_delete is None:
            return None
        return FilterCriteria(descriptor.soft_delete, FilterOperator.IS_NULL)

    def apply_visibility(
        self, query: QueryBuilder, descriptor: EntityDescriptor
    ) -> QueryBuilder:
        """Restrict a query to rows that are not soft deleted."""
        predicate = self.visibility_predicate(descriptor)
        if predicate is None:
            return query
        return query.filter(predicate.field, predicate.operator)

    async def delete(
        self, record: Any, descriptor: EntityDescriptor, store: Store
    ) -> Any | None:
        """Delete a record, physically or by stamping its soft delete field.

        The timestamp kind is resolved here rather than at registration, so a
        soft delete field that is not a datetime only fails once a delete is
        attempted.
        """
        if descriptor.soft_delete is None:
            await store.remove(record)
            return None

        kind = descriptor.field_kind(descriptor.soft_delete)
        if kind not in TIMESTAMP_KINDS:
            msg = (
                f"Failed to determine the timestamp type of "
                f"{descriptor.name}.{descriptor.soft_delete}"
            )
            raise ConfigurationError(msg)

        self.log.debug(
            "Soft deleting record", entity=descriptor.name, kind=kind.value
        )
        return await store.update(record, {descriptor.soft_delete: store.now(kind)})
