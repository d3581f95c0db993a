"""Pagination headers for list endpoints.

A paged result is described to clients through ``X-*`` headers and an RFC
8288 ``Link`` header whose anchors repeat the request query with only the
``page`` parameter replaced.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

from fastapi import Request, Response
from pydantic import BaseModel, ConfigDict, Field, model_validator

PAGE_PARAM = "page"

type QueryItems = Mapping[str, str] | Iterable[tuple[str, str]]


class ResultEnvelope[T](BaseModel):
    """One page of results and the counts needed to navigate the rest."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    items: list[T] = Field(default_factory=list)
    page: int = Field(ge=1)
    per_page: int = Field(ge=1)
    total: int = Field(ge=0)

    @model_validator(mode="after")
    def check_page_size(self) -> "ResultEnvelope[T]":
        """Reject pages holding more items than ``per_page``."""
        if len(self.items) > self.per_page:
            msg = f"Page holds {len(self.items)} items, more than per_page={self.per_page}"
            raise ValueError(msg)
        return self

    @property
    def total_pages(self) -> int:
        """Number of pages needed to hold ``total`` items."""
        return math.ceil(self.total / self.per_page)


@dataclass(frozen=True)
class Navigation:
    """Headers describing a page, plus the ``Link`` header value if any."""

    headers: dict[str, str] = field(default_factory=dict)
    link: str | None = None


def _query_items(query_params: QueryItems) -> list[tuple[str, str]]:
    if isinstance(query_params, Mapping):
        return [(str(key), str(value)) for key, value in query_params.items()]
    return [(str(key), str(value)) for key, value in query_params]


def page_url(url: str, query_params: QueryItems, page: int) -> str:
    """``url`` with the query cloned and ``page`` set to ``page``.

    Parameters keep their order and repeated keys are preserved; the page
    parameter takes the position of its first occurrence, or goes last.
    """
    items: list[tuple[str, str]] = []
    page_set = False
    for key, value in _query_items(query_params):
        if key != PAGE_PARAM:
            items.append((key, value))
        elif not page_set:
            items.append((PAGE_PARAM, str(page)))
            page_set = True
    if not page_set:
        items.append((PAGE_PARAM, str(page)))
    return f"{url}?{urlencode(items)}"


def build_navigation(
    result: ResultEnvelope[Any], url: str, query_params: QueryItems
) -> Navigation:
    """Describe a page of results for the client.

    Args:
        result: The page being returned.
        url: Absolute URL of the request, without query string.
        query_params: Query parameters of the request.

    Returns:
        Navigation: ``X-Page``, ``X-Per-Page``, ``X-Total`` and
            ``X-Total-Pages`` headers, ``X-Prev-Page`` / ``X-Next-Page`` when
            such pages exist, and the ``Link`` value when there is at least
            one page.
    """
    page = result.page
    total_pages = result.total_pages
    has_prev = page > 1
    has_next = page < total_pages

    headers: dict[str, str] = {}
    if has_prev:
        headers["X-Prev-Page"] = str(page - 1)
    if has_next:
        headers["X-Next-Page"] = str(page + 1)
    headers["X-Page"] = str(page)
    headers["X-Per-Page"] = str(result.per_page)
    headers["X-Total"] = str(result.total)
    headers["X-Total-Pages"] = str(total_pages)

    if total_pages == 0:
        return Navigation(headers=headers)

    anchors = [
        (1, "first"),
        (total_pages, "last"),
    ]
    if has_prev:
        anchors.append((page - 1, "prev"))
    if has_next:
        anchors.append((page + 1, "next"))
    link = ", ".join(
        f'<{page_url(url, query_params, target)}>; rel="{rel}"'
        for target, rel in anchors
    )
    return Navigation(headers=headers, link=link)


def set_pagination_headers(
    request: Request, response: Response, result: ResultEnvelope[Any]
) -> None:
    """Set the navigation headers of ``result`` on ``response``."""
    url = str(request.url.replace(query=""))
    navigation = build_navigation(result, url, request.query_params.multi_items())
    response.headers.update(navigation.headers)
    if navigation.link is not None:
        response.headers["Link"] = navigation.link
