from __future__ import annotations

import json

import pytest

from article_harvester.config import ProviderSettings
from article_harvester.engine import Aborted, CancellationToken, FetchError, FetchResponse
from article_harvester.providers import QiitaProvider
from article_harvester.providers.qiita import QIITA_ITEMS_URL


def _page(page: int, size: int) -> list[dict]:
    return [
        {
            "url": f"https://qiita.com/u/items/{page}-{index}",
            "title": f"Item {page}-{index}",
            "created_at": f"2024-0{page}-01T00:00:00+09:00",
            "likes_count": index,
        }
        for index in range(size)
    ]


def _json_route(pages: dict[int, list[dict]]):
    def route(request):
        records = pages.get(request.params["page"], [])
        return FetchResponse(url=request.url, status_code=200, text=json.dumps(records))

    return route


def _provider(fetcher, **settings) -> QiitaProvider:
    return QiitaProvider(fetcher, ProviderSettings(delay_range=(0, 0), **settings))


@pytest.mark.asyncio
async def test_pagination_stops_at_target(stub_fetcher) -> None:
    fetcher = stub_fetcher(_json_route({1: _page(1, 100), 2: _page(2, 100), 3: _page(3, 100)}))

    items = await _provider(fetcher).discover(["python", "async"], 250, CancellationToken())

    assert len(fetcher.requests) == 3
    assert len(items) == 250
    assert [request.params["page"] for request in fetcher.requests] == [1, 2, 3]
    assert fetcher.requests[0].url == QIITA_ITEMS_URL
    assert fetcher.requests[0].params["query"] == "python async"
    assert fetcher.requests[0].params["per_page"] == 100
    assert items[0].discovery_rank == 1
    assert items[149].discovery_rank == 150


@pytest.mark.asyncio
async def test_pagination_stops_on_empty_page(stub_fetcher) -> None:
    fetcher = stub_fetcher(_json_route({1: _page(1, 100), 2: _page(2, 30)}))

    items = await _provider(fetcher).discover(["python"], 500, CancellationToken())

    assert len(items) == 130
    assert len(fetcher.requests) == 3


@pytest.mark.asyncio
async def test_fetch_failure_keeps_collected_items(stub_fetcher) -> None:
    def route(request):
        if request.params["page"] == 2:
            return FetchError("Unexpected status 429", url=request.url, status_code=429)
        return FetchResponse(url=request.url, status_code=200, text=json.dumps(_page(1, 10)))

    fetcher = stub_fetcher(route)

    items = await _provider(fetcher, page_size=10).discover(["python"], 50, CancellationToken())

    assert len(items) == 10


@pytest.mark.asyncio
async def test_undecodable_page_ends_discovery(stub_fetcher) -> None:
    fetcher = stub_fetcher(lambda request: FetchResponse(url=request.url, status_code=200, text="<html>"))

    assert await _provider(fetcher).discover(["python"], 10, CancellationToken()) == []


@pytest.mark.asyncio
async def test_cancellation_truncates_discovery(stub_fetcher) -> None:
    token = CancellationToken()

    def route(request):
        if request.params["page"] == 1:
            token.cancel()
        return FetchResponse(url=request.url, status_code=200, text=json.dumps(_page(1, 5)))

    fetcher = stub_fetcher(route)

    items = await _provider(fetcher, page_size=5).discover(["python"], 20, token)

    assert len(items) == 5
    assert len(fetcher.requests) == 1


@pytest.mark.asyncio
async def test_access_token_sent_as_bearer(stub_fetcher) -> None:
    fetcher = stub_fetcher(_json_route({}))

    await _provider(fetcher, access_token="secret").discover(["python"], 10, CancellationToken())

    assert fetcher.requests[0].headers == {"Authorization": "Bearer secret"}


@pytest.mark.asyncio
async def test_enrich_projects_record_fields(stub_fetcher) -> None:
    fetcher = stub_fetcher(_json_route({1: _page(1, 3)}))
    provider = _provider(fetcher)
    items = await provider.discover(["python"], 3, CancellationToken())

    enriched = await provider.enrich(items, CancellationToken())

    assert [item.url for item in enriched] == [item.url for item in items]
    assert enriched[2].like_count == 2
    assert enriched[0].published_at == "2024-01-01T00:00:00+09:00"
    assert all(item.view_count is None for item in enriched)
    assert len(fetcher.requests) == 1


@pytest.mark.asyncio
async def test_enrich_raises_when_cancelled(stub_fetcher) -> None:
    fetcher = stub_fetcher(_json_route({1: _page(1, 2)}))
    provider = _provider(fetcher)
    items = await provider.discover(["python"], 2, CancellationToken())
    token = CancellationToken()
    token.cancel()

    with pytest.raises(Aborted):
        await provider.enrich(items, token)


@pytest.mark.asyncio
async def test_pauses_only_between_pages(stub_fetcher, monkeypatch: pytest.MonkeyPatch) -> None:
    fetcher = stub_fetcher(_json_route({1: _page(1, 100), 2: _page(2, 100), 3: _page(3, 100)}))
    token = CancellationToken()
    pauses: list[float] = []

    async def record_sleep(seconds: float) -> None:
        pauses.append(seconds)

    monkeypatch.setattr(token, "sleep", record_sleep)

    items = await QiitaProvider(fetcher).discover(["python"], 300, token)

    assert len(items) == 300
    assert [request.params["page"] for request in fetcher.requests] == [1, 2, 3]
    assert pauses == [0.6, 0.6]
