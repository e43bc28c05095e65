from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple


@dataclass(frozen=True)
class Session:
    """Per-conversation pagination state (query, page, visible messages)."""

    query: str
    current_page: int = 1
    total_pages: int = 0
    pending_message_ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ImageRef:
    """One search hit; url is None when the provider gave no usable image."""

    url: str | None = None


@dataclass
class SearchResult:
    total_hits: int
    items: List[ImageRef] = field(default_factory=list)


@dataclass(frozen=True)
class InlineButton:
    text: str
    callback_data: str


class NavAction(str, Enum):
    """Callback tokens carried by the pagination buttons."""

    PREV = "<"
    NEXT = ">"


def count_pages(total_hits: int, page_size: int) -> int:
    """Number of result pages for total_hits, rounded up."""
    if total_hits <= 0:
        return 0
    return -(-total_hits // page_size)
