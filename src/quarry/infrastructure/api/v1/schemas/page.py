"""Response schemas for paginated collections."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from quarry.domain.entities import EntityDescriptor, Page


class PageLinks(BaseModel):
    """Navigation links of a page. Reserved, always empty for now."""

    model_config = ConfigDict(populate_by_name=True)

    prev: str | None = None
    self_: str | None = Field(default=None, alias="self")
    next: str | None = None


class PageResponse(BaseModel):
    """One page of a collection."""

    model_config = ConfigDict(populate_by_name=True)

    links: PageLinks = Field(default_factory=PageLinks, alias="_links")
    total: int = 0
    results: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_page(cls, page: Page[Any], descriptor: EntityDescriptor) -> "PageResponse":
        """Build the response for a page of records."""
        return cls(
            links=PageLinks.model_validate(page.links),
            total=page.total,
            results=[descriptor.dump(record) for record in page.results],
        )
