import logging
from typing import Any, Dict

import httpx

from ..models import ImageRef, SearchResult
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Pixabay answers 400 with this text once page * per_page passes totalHits.
_OUT_OF_RANGE_MARKER = "out of valid range"


class SearchError(Exception):
    """Raised when the image provider cannot be reached or answers garbage."""


def _hit_to_image(hit: Dict[str, Any]) -> ImageRef:
    """Pick the best full-size URL a hit exposes."""
    url = hit.get("fullHDURL") or hit.get("largeImageURL")
    return ImageRef(url=str(url) if url else None)


class PixabaySearchClient:
    """Keyword image search against the Pixabay REST API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        api_url: str = "https://pixabay.com/api/",
        image_type: str = "photo",
        per_page: int = 5,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._api_url = api_url
        self._image_type = image_type
        self._per_page = per_page

    @property
    def per_page(self) -> int:
        return self._per_page

    async def search(self, query: str, page: int) -> SearchResult:
        """Fetch one page of hits for query.

        Args:
            query: Free-text keyword; sent lowercased.
            page: 1-based page number, each page holds ``per_page`` hits.

        Returns:
            SearchResult: total accessible hits and this page's images. A page
                past the end of the result set comes back empty.

        Raises:
            SearchError: on transport failure or an unusable response.
        """
        params = {
            "key": self._api_key,
            "image_type": self._image_type,
            "q": query.lower(),
            "page": page,
            "per_page": self._per_page,
        }
        try:
            response = await self._http.get(self._api_url, params=params)
        except httpx.HTTPError as e:
            raise SearchError(f"Pixabay request failed: {e}") from e

        if response.status_code == 400 and _OUT_OF_RANGE_MARKER in response.text:
            logger.info("Pixabay page %s out of range for %r", page, query)
            return SearchResult(total_hits=0, items=[])

        try:
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise SearchError(
                f"Pixabay returned HTTP {e.response.status_code}"
            ) from e
        except ValueError as e:
            raise SearchError(f"Pixabay returned invalid JSON: {e}") from e

        try:
            hits = data.get("hits") or []
            return SearchResult(
                total_hits=int(data.get("totalHits", 0)),
                items=[_hit_to_image(hit) for hit in hits],
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise SearchError(f"Unexpected Pixabay payload: {e}") from e


def get_search_client(
    http_client: httpx.AsyncClient, settings: Settings | None = None
) -> PixabaySearchClient:
    """Build the search client from settings around a shared HTTP client."""
    settings = settings or get_settings()
    return PixabaySearchClient(
        http_client=http_client,
        api_key=settings.pixabay_access_key,
        api_url=settings.pixabay_api_url,
        image_type=settings.pixabay_image_type,
        per_page=settings.page_size,
    )
