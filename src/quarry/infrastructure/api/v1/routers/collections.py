"""Collection router for a registered entity."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, HTTPException, Response

from quarry.application.services.repository_service import RepositoryService
from quarry.domain.errors import PersistenceError, ValidationError
from quarry.infrastructure.api.v1.query_params import RequestParamsDep
from quarry.infrastructure.api.v1.schemas.page import PageResponse


def _raise_not_found_error(detail: str) -> None:
    """Raise record not found error."""
    raise HTTPException(status_code=404, detail=detail)


def create_collection_router(
    repository: RepositoryService,
    *,
    prefix: str,
    tags: list[str] | None = None,
) -> APIRouter:
    """Create list, get, create, update and delete routes for an entity."""
    descriptor = repository.descriptor
    router = APIRouter(
        prefix=prefix,
        tags=tags or [descriptor.name],
        responses={
            422: {"description": "Invalid request"},
        },
    )

    async def _get_visible(record_id: str) -> Any:
        try:
            record = await repository.get(record_id)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        if record is None:
            _raise_not_found_error(f"{descriptor.name} not found")
        return record

    @router.get("", summary=f"List {descriptor.name}")
    async def list_records(params: RequestParamsDep) -> PageResponse:
        """Get one page of records."""
        try:
            page = await repository.paginate(params)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return PageResponse.from_page(page, descriptor)

    @router.get(
        "/{record_id}",
        summary=f"Get {descriptor.name}",
        responses={404: {"description": "Record not found"}},
    )
    async def get_record(record_id: str) -> dict[str, Any]:
        """Get a record by id."""
        return descriptor.dump(await _get_visible(record_id))

    @router.post("", status_code=201, summary=f"Create {descriptor.name}")
    async def create_record(
        attributes: Annotated[dict[str, Any], Body()],
    ) -> dict[str, Any]:
        """Create a record."""
        try:
            record = await repository.save(None, attributes)
        except PersistenceError as e:
            raise HTTPException(status_code=422, detail=e.errors or str(e)) from e
        return descriptor.dump(record)

    @router.patch(
        "/{record_id}",
        summary=f"Update {descriptor.name}",
        responses={404: {"description": "Record not found"}},
    )
    async def update_record(
        record_id: str,
        attributes: Annotated[dict[str, Any], Body()],
    ) -> dict[str, Any]:
        """Update a record."""
        existing = await _get_visible(record_id)
        try:
            record = await repository.save(existing, attributes)
        except PersistenceError as e:
            raise HTTPException(status_code=422, detail=e.errors or str(e)) from e
        return descriptor.dump(record)

    @router.delete(
        "/{record_id}",
        status_code=204,
        summary=f"Delete {descriptor.name}",
        responses={404: {"description": "Record not found"}},
    )
    async def delete_record(record_id: str) -> Response:
        """Delete a record."""
        await repository.delete(await _get_visible(record_id))
        return Response(status_code=204)

    return router
