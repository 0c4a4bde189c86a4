"""Parse raw request parameters into pagination criteria."""

import re
from collections.abc import Mapping
from typing import Any

from quarry.domain.entities import Criteria, PaginationConfig, SortOptions
from quarry.domain.errors import ValidationError

_INTEGER = re.compile(r"[+-]?\d+")
# Largest offset a 64-bit SQL INTEGER can hold
_MAX_OFFSET = 2**63 - 1


class CriteriaParser:
    """Turn string-keyed request parameters into a validated Criteria."""

    def parse(self, raw_params: Mapping[str, Any], config: PaginationConfig) -> Criteria:
        """Parse request parameters against a pagination config.

        Args:
            raw_params: Request parameters, as decoded from the query string.
            config: The pagination capabilities of the entity.

        Returns:
            The criteria for this request.

        Raises:
            ValidationError: If the parameters are not a mapping, if the page
                or size is not an integer, if the page is out of range, or if
                q is not a string.

        """
        if not isinstance(raw_params, Mapping):
            raise ValidationError("Request parameters must be a mapping")

        page = self._parse_page(raw_params.get("page"))
        size = self._parse_size(raw_params.get("size"), config)
        if size >= 1 and (page - 1) * size > _MAX_OFFSET:
            raise ValidationError(f"page {page} is out of range")

        return Criteria(
            page=page,
            size=size,
            search_term=self._parse_search_term(raw_params.get("q")),
            sort_by=self._parse_sort_by(raw_params.get("sort_by"), config.sort),
            request=raw_params,
        )

    def _parse_page(self, value: Any) -> int:
        if value is None:
            return 1
        page = _to_integer("page", value)
        if page < 1:
            raise ValidationError(f"page must be at least 1, got {page}")
        return page

    def _parse_size(self, value: Any, config: PaginationConfig) -> int:
        if value is None:
            return config.size.default
        # Only the upper bound is clamped.
        return min(_to_integer("size", value), config.size.max)

    def _parse_search_term(self, value: Any) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError(f"q must be a string, got {value!r}")
        return value or None

    def _parse_sort_by(self, value: Any, sort: SortOptions) -> str | None:
        if value is None:
            return sort.default
        if not isinstance(value, str):
            return None
        if value.removeprefix("-") not in sort.on:
            return None
        return value


def _to_integer(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER.fullmatch(value):
        try:
            return int(value)
        except ValueError as e:
            # Exceeds the interpreter's integer string conversion limit
            raise ValidationError(f"{name} is out of range") from e
    raise ValidationError(f"{name} must be an integer, got {value!r}")


def parse_criteria(raw_params: Mapping[str, Any], config: PaginationConfig) -> Criteria:
    """Parse request parameters with a default parser."""
    return CriteriaParser().parse(raw_params, config)
