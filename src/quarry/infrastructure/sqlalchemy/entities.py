"""SQLAlchemy entities and descriptor resolution."""

from datetime import UTC
from typing import Any

from pydantic import BaseModel
from sqlalchemy import DateTime, TypeDecorator, inspect
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeEngine

from quarry.domain.entities import EntityDescriptor, FieldKind
from quarry.domain.errors import ConfigurationError


# See <https://docs.sqlalchemy.org/en/20/core/custom_types.html#store-timezone-aware-timestamps-as-timezone-naive-utc>
# And [this issue](https://github.com/sqlalchemy/sqlalchemy/issues/1985)
class TZDateTime(TypeDecorator):
    """Timezone-aware datetime type."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> Any:  # noqa: ARG002
        """Process bind param."""
        if value is not None:
            if not value.tzinfo or value.tzinfo.utcoffset(value) is None:
                raise TypeError("tzinfo is required")
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value: Any, dialect: Any) -> Any:  # noqa: ARG002
        """Process result value."""
        if value is not None:
            value = value.replace(tzinfo=UTC)
        return value


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models."""


def is_timezone_aware(column_type: TypeEngine) -> bool:
    """Check whether a column type stores timezone-aware datetimes."""
    if isinstance(column_type, TZDateTime):
        return True
    return isinstance(column_type, DateTime) and bool(column_type.timezone)


def field_kind_for(column_type: TypeEngine) -> FieldKind:
    """Resolve the field kind of a column type."""
    if is_timezone_aware(column_type):
        return FieldKind.DATE_UTC
    if isinstance(column_type, DateTime):
        return FieldKind.DATE_NO_ZONE
    return FieldKind.OTHER


def descriptor_from_model(
    model: type,
    *,
    soft_delete: str | None = None,
    schema: type[BaseModel] | None = None,
    name: str | None = None,
) -> EntityDescriptor:
    """Build an entity descriptor from a mapped class.

    Field kinds are resolved here, once, from the mapped column types.
    """
    mapper = inspect(model, raiseerr=False)
    if mapper is None:
        raise ConfigurationError(f"{model!r} is not a mapped class")

    fields = {
        attribute.key: field_kind_for(attribute.columns[0].type)
        for attribute in mapper.column_attrs
    }

    primary_key = [
        mapper.get_property_by_column(column).key for column in mapper.primary_key
    ]
    if len(primary_key) != 1:
        raise ConfigurationError(
            f"{model.__name__} must have exactly one primary key column"
        )

    return EntityDescriptor(
        name=name or getattr(model, "__tablename__", model.__name__),
        model=model,
        fields=fields,
        soft_delete=soft_delete,
        id_field=primary_key[0],
        schema=schema,
    )
