from typing import Any, Callable, Dict, List

import httpx
import pytest

from pixabot.models import ImageRef
from pixabot.services.pixabay import PixabaySearchClient, SearchError, get_search_client


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> PixabaySearchClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PixabaySearchClient(http, api_key="secret", per_page=5)


@pytest.mark.asyncio
async def test_search_sends_provider_params() -> None:
    """search lowercases the keyword and asks for one page of per_page photos."""
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"total": 0, "totalHits": 0, "hits": []})

    client = make_client(handler)
    await client.search("Cats", 2)

    assert len(seen) == 1
    params = seen[0].url.params
    assert seen[0].url.host == "pixabay.com"
    assert params["key"] == "secret"
    assert params["image_type"] == "photo"
    assert params["q"] == "cats"
    assert params["page"] == "2"
    assert params["per_page"] == "5"


@pytest.mark.asyncio
async def test_search_parses_hits() -> None:
    """fullHDURL wins, largeImageURL is the fallback, otherwise the ref is empty."""
    payload: Dict[str, Any] = {
        "total": 4000,
        "totalHits": 12,
        "hits": [
            {"id": 1, "fullHDURL": "https://cdn/1_1920.jpg", "largeImageURL": "https://cdn/1_1280.jpg"},
            {"id": 2, "largeImageURL": "https://cdn/2_1280.jpg"},
            {"id": 3},
        ],
    }
    client = make_client(lambda request: httpx.Response(200, json=payload))
    result = await client.search("cats", 1)

    assert result.total_hits == 12
    assert result.items == [
        ImageRef("https://cdn/1_1920.jpg"),
        ImageRef("https://cdn/2_1280.jpg"),
        ImageRef(None),
    ]


@pytest.mark.asyncio
async def test_search_page_out_of_range_is_empty() -> None:
    client = make_client(
        lambda request: httpx.Response(400, text='[ERROR 400] "page" is out of valid range.')
    )
    result = await client.search("cats", 9)
    assert result.total_hits == 0
    assert result.items == []


@pytest.mark.asyncio
async def test_search_http_error() -> None:
    client = make_client(lambda request: httpx.Response(500, text="oops"))
    with pytest.raises(SearchError):
        await client.search("cats", 1)


@pytest.mark.asyncio
async def test_search_bad_key() -> None:
    client = make_client(lambda request: httpx.Response(400, text="[ERROR 400] Invalid or missing API key"))
    with pytest.raises(SearchError):
        await client.search("cats", 1)


@pytest.mark.asyncio
async def test_search_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(SearchError):
        await client.search("cats", 1)


@pytest.mark.asyncio
async def test_search_invalid_json() -> None:
    client = make_client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(SearchError):
        await client.search("cats", 1)


@pytest.mark.asyncio
async def test_search_unexpected_payload() -> None:
    client = make_client(lambda request: httpx.Response(200, json=["not", "an", "object"]))
    with pytest.raises(SearchError):
        await client.search("cats", 1)


def test_get_search_client_uses_settings(settings) -> None:
    settings.page_size = 7
    client = get_search_client(httpx.AsyncClient(), settings)
    assert isinstance(client, PixabaySearchClient)
    assert client.per_page == 7
