"""Page-token protocol and page-shape normalization.

Wiz collections come back in three shapes:

  EDGES  {"edges": [{"node": {...}}, ...], "pageInfo": {...}}
  NODES  {"nodes": [{...}, ...], "pageInfo": {...}}
  FLAT   [{...}, ...]                        (no pagination at all)

normalize_page() turns each of them into a list of raw records plus a
PageInfo, so resource builders never look at the shape. A FLAT payload is
always a single, complete page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger("wiz_access.pagination")

PAGE_SIZE = 100


class PageShape(str, Enum):
    EDGES = "edges"
    NODES = "nodes"
    FLAT = "flat"


@dataclass(frozen=True)
class PageInfo:
    has_next_page: bool = False
    end_cursor: str = ""

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PageInfo":
        data = data or {}
        has_next = bool(data.get("hasNextPage"))
        cursor = data.get("endCursor") or ""
        # A next page without a cursor cannot be requested; treat as the end
        if has_next and not cursor:
            logger.warning("pageInfo.hasNextPage set without endCursor, stopping")
            has_next = False
        return cls(has_next_page=has_next, end_cursor=cursor)


def detect_shape(payload: Any) -> Optional[PageShape]:
    if isinstance(payload, list):
        return PageShape.FLAT
    if isinstance(payload, dict):
        if "edges" in payload:
            return PageShape.EDGES
        if "nodes" in payload:
            return PageShape.NODES
    return None


def normalize_page(
    payload: Any, shape: Optional[PageShape] = None
) -> tuple[list[dict], PageInfo]:
    """Return (records, page_info) for one page of any supported shape.

    `shape` is the shape the endpoint is documented to return. When the
    payload turns out to have another recognised shape, that one wins. A
    missing payload (null collection) is an empty, complete page.
    """
    if payload is None:
        return [], PageInfo()

    actual = detect_shape(payload)
    if actual is None:
        raise ValueError(f"unrecognised page payload of type {type(payload).__name__}")
    if shape is not None and actual is not shape:
        logger.debug("Expected %s page shape, got %s", shape.value, actual.value)

    if actual is PageShape.FLAT:
        return [r for r in payload if r is not None], PageInfo()

    page_info = PageInfo.from_dict(payload.get("pageInfo"))
    if actual is PageShape.EDGES:
        records = [
            edge["node"]
            for edge in payload.get("edges") or []
            if edge and edge.get("node") is not None
        ]
    else:
        records = [n for n in payload.get("nodes") or [] if n is not None]
    return records, page_info


def page_cursor(page_token: Optional[str]) -> Optional[str]:
    """Upstream cursor for an incoming page token; None means first page."""
    return page_token or None


def next_page_token(page_info: PageInfo) -> str:
    """Outgoing page token; empty when there are no more pages."""
    if page_info.has_next_page:
        return page_info.end_cursor
    return ""
