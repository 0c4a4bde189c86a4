"""Register entities and build their repository services."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from quarry.application.services.repository_service import RepositoryService
from quarry.domain.entities import (
    EntityDescriptor,
    PaginationConfig,
    PaginationConfigBuilder,
)
from quarry.domain.errors import ConfigurationError
from quarry.domain.protocols import Store
from quarry.infrastructure.sqlalchemy.entities import descriptor_from_model
from quarry.infrastructure.sqlalchemy.store import create_sqlalchemy_store


def create_repository(
    store: Store | None,
    descriptor: EntityDescriptor | None,
    *,
    soft_delete: str | None = None,
    pagination: PaginationConfig | PaginationConfigBuilder | None = None,
) -> RepositoryService:
    """Register an entity against a store.

    Args:
        store: The store the entity is read from and written to.
        descriptor: The entity descriptor.
        soft_delete: Soft delete field, overriding the descriptor's.
        pagination: Pagination capabilities; defaults apply when omitted.

    Raises:
        ConfigurationError: If the store or the descriptor is missing.

    """
    if store is None or descriptor is None:
        raise ConfigurationError(
            "A store and an entity descriptor are required to register an entity"
        )

    if soft_delete is not None:
        descriptor = descriptor.with_soft_delete(soft_delete)

    if pagination is None:
        config = PaginationConfigBuilder().build()
    elif isinstance(pagination, PaginationConfigBuilder):
        config = pagination.build()
    else:
        config = pagination

    return RepositoryService(store=store, descriptor=descriptor, config=config)


def create_sqlalchemy_repository(
    session_factory: Callable[[], AsyncSession],
    model: type[Any],
    *,
    soft_delete: str | None = None,
    pagination: PaginationConfig | PaginationConfigBuilder | None = None,
    schema: type[BaseModel] | None = None,
) -> RepositoryService:
    """Register a mapped class backed by a SQLAlchemy session factory."""
    return create_repository(
        create_sqlalchemy_store(session_factory, model),
        descriptor_from_model(model, soft_delete=soft_delete, schema=schema),
        pagination=pagination,
    )
