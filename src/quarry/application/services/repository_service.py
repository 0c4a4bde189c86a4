"""Record-level operations for one registered entity."""

from collections.abc import Mapping
from typing import Any

import pydantic
import structlog

from quarry.domain.entities import Criteria, EntityDescriptor, Page, PaginationConfig
from quarry.domain.errors import NotFoundError, PersistenceError, ValidationError
from quarry.domain.protocols import Store
from quarry.domain.services.criteria_parser import CriteriaParser
from quarry.domain.services.pagination_service import PaginationService
from quarry.domain.services.query_composer import QueryComposer
from quarry.domain.services.soft_delete import SoftDeleteGuard
from quarry.infrastructure.sqlalchemy.query import (
    FilterOperator,
    QueryBuilder,
    coerce_value,
    is_scalar,
)


class RepositoryService:
    """Read, write and paginate one entity through its store.

    Every read applies the soft delete visibility predicate when the entity
    has soft delete enabled, and deletes go through the same guard.
    """

    def __init__(
        self,
        store: Store,
        descriptor: EntityDescriptor,
        config: PaginationConfig,
    ) -> None:
        """Initialize the repository service."""
        self.store = store
        self.descriptor = descriptor
        self.config = config
        self._guard = SoftDeleteGuard()
        self._parser = CriteriaParser()
        self._pagination = PaginationService(QueryComposer(self._guard))
        self.log = structlog.get_logger(__name__)

    def criteria(self, params: Mapping[str, Any]) -> Criteria:
        """Parse request parameters for this entity."""
        return self._parser.parse(params, self.config)

    async def paginate(self, params: Mapping[str, Any] | Criteria) -> Page[Any]:
        """Get one page of visible records."""
        if isinstance(params, Criteria):
            criteria = params
        elif isinstance(params, Mapping):
            criteria = self.criteria(params)
        else:
            raise ValidationError("paginate expects request parameters or criteria")
        return await self._pagination.paginate(
            criteria, self.config, self.descriptor, self.store
        )

    async def list_all(self) -> list[Any]:
        """Get every visible record."""
        query = self._guard.apply_visibility(QueryBuilder(), self.descriptor)
        return list(await self.store.fetch(query))

    async def get(self, record_id: Any) -> Any | None:
        """Get a visible record by id, or None if there is none."""
        if record_id is None:
            return None
        if isinstance(record_id, bool) or not isinstance(record_id, int | str):
            raise ValidationError(f"Invalid id {record_id!r}")

        query = self._guard.apply_visibility(QueryBuilder(), self.descriptor).filter(
            self.descriptor.id_field, FilterOperator.EQ, record_id
        )
        return await self.store.fetch_one(query)

    async def get_or_raise(self, record_id: Any) -> Any:
        """Get a visible record by id, raising if there is none."""
        record = await self.get(record_id)
        if record is None:
            raise NotFoundError(f"{self.descriptor.name} {record_id} not found")
        return record

    async def save(self, existing: Any | None, attributes: Mapping[str, Any]) -> Any:
        """Insert a new record, or update an existing one."""
        if not isinstance(attributes, Mapping):
            raise ValidationError("attributes must be a mapping")

        values = self._validate(existing, attributes)
        if existing is None:
            return await self.store.insert(self.descriptor.model(**values))
        return await self.store.update(existing, values)

    async def delete(self, record: Any) -> Any | None:
        """Delete a record, softly if the entity is configured for it."""
        if not isinstance(record, self.descriptor.model):
            raise ValidationError(f"Expected a {self.descriptor.name} record")
        return await self._guard.delete(record, self.descriptor, self.store)

    def _validate(
        self, existing: Any | None, attributes: Mapping[str, Any]
    ) -> dict[str, Any]:
        fields = self.descriptor.fields
        schema = self.descriptor.schema
        if schema is None:
            values = dict(attributes)
        else:
            current = {} if existing is None else self.descriptor.dump(existing)
            try:
                validated = schema.model_validate({**current, **attributes})
            except pydantic.ValidationError as e:
                msg = f"Invalid {self.descriptor.name} attributes"
                errors = e.errors(
                    include_url=False, include_context=False, include_input=False
                )
                raise PersistenceError(msg, errors=list(errors)) from e
            dumped = validated.model_dump()
            values = {key: dumped[key] for key in attributes if key in dumped}

        ignored = sorted(str(key) for key in values if key not in fields)
        if ignored:
            self.log.debug(
                "Ignoring unknown attributes", entity=self.descriptor.name, keys=ignored
            )
        values = {key: value for key, value in values.items() if key in fields}
        if schema is None:
            values = self._coerce(values)
        return values

    def _coerce(self, values: dict[str, Any]) -> dict[str, Any]:
        """Convert raw values to the column types, as a schema would."""
        coerced: dict[str, Any] = {}
        errors: list[dict[str, Any]] = []
        for key, value in values.items():
            if not is_scalar(value):
                errors.append({"loc": [key], "msg": "Expected a single value"})
                continue
            try:
                coerced[key] = coerce_value(getattr(self.descriptor.model, key), value)
            except ValidationError as e:
                errors.append({"loc": [key], "msg": str(e)})
        if errors:
            msg = f"Invalid {self.descriptor.name} attributes"
            raise PersistenceError(msg, errors=errors)
        return coerced
