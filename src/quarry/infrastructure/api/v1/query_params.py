"""Query parameters for the API."""

import re
from collections.abc import Iterable
from typing import Annotated, Any

from fastapi import Depends, Request

_BRACKETED = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")


def decode_query_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Decode query string pairs into nested request parameters.

    ``created_at[after]=2024-01-01`` becomes ``{"created_at": {"after":
    "2024-01-01"}}`` and ``status[]=a&status[]=b`` becomes ``{"status": ["a",
    "b"]}``. A plain key given more than once keeps its last value.
    """
    params: dict[str, Any] = {}
    for key, value in items:
        match = _BRACKETED.match(key)
        if match is None:
            params[key] = value
            continue

        name, brackets = match.groups()
        path = [name, *re.findall(r"\[([^\[\]]*)\]", brackets)]
        _assign(params, path, value)
    return params


def _assign(target: dict[str, Any], path: list[str], value: str) -> None:
    head, *rest = path
    if not rest:
        target[head] = value
        return

    if rest == [""]:
        existing = target.get(head)
        if not isinstance(existing, list):
            existing = []
            target[head] = existing
        existing.append(value)
        return

    child = target.get(head)
    if not isinstance(child, dict):
        child = {}
        target[head] = child
    _assign(child, rest, value)


def get_request_params(request: Request) -> dict[str, Any]:
    """Get the decoded request parameters."""
    return decode_query_params(request.query_params.multi_items())


RequestParamsDep = Annotated[dict[str, Any], Depends(get_request_params)]
