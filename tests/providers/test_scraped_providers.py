from __future__ import annotations

import asyncio
import json

import pytest

from article_harvester.config import ProviderSettings
from article_harvester.engine import Aborted, CancellationToken, FetchError, FetchResponse
from article_harvester.models import DiscoveredItem
from article_harvester.providers import NoteProvider, ZennProvider
from article_harvester.providers.search_engine import DUCKDUCKGO_HTML_URL

RESULTS = """
<html><body>
  <div class="result"><a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fzenn.dev%2Fa%2Farticles%2F1">One</a></div>
  <div class="result"><a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fzenn.dev%2Fb%2Farticles%2F2">Two</a></div>
  <div class="result"><a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fzenn.dev%2Fc%2Farticles%2F3">Three</a></div>
</body></html>
"""

LD_ARTICLE = (
    '<html><head><script type="application/ld+json">'
    + json.dumps(
        {
            "@type": "Article",
            "datePublished": "2024-01-01T00:00:00Z",
            "interactionStatistic": {
                "interactionType": "https://schema.org/LikeAction",
                "userInteractionCount": 42,
            },
        }
    )
    + "</script></head><body></body></html>"
)

ZENN_MARKUP = """
<html><body>
  <time datetime="2024-06-01T10:00:00+09:00">2024/06/01</time>
  <button class="Like_container__x1"><span>18</span></button>
</body></html>
"""

NOTE_MARKUP = """
<html><body>
  <time datetime="2024-07-07T07:07:07+09:00">7月7日</time>
  <div>スキ 1,234</div>
</body></html>
"""


def _ok(request, text: str) -> FetchResponse:
    return FetchResponse(url=request.url, status_code=200, text=text)


def _zenn(fetcher) -> ZennProvider:
    return ZennProvider(fetcher, ProviderSettings(site="zenn.dev", delay_range=(0, 0)))


def _items(*urls: str, source_id: str = "zenn") -> list[DiscoveredItem]:
    return [DiscoveredItem(url=url, source_id=source_id, discovery_rank=i + 1) for i, url in enumerate(urls)]


@pytest.mark.asyncio
async def test_discover_runs_site_search(stub_fetcher) -> None:
    fetcher = stub_fetcher(lambda request: _ok(request, RESULTS))

    items = await _zenn(fetcher).discover(["react", "hooks"], 2, CancellationToken())

    assert [item.url for item in items] == ["https://zenn.dev/a/articles/1", "https://zenn.dev/b/articles/2"]
    assert all(item.source_id == "zenn" for item in items)
    assert fetcher.requests[0].url == DUCKDUCKGO_HTML_URL
    assert fetcher.requests[0].params == {"q": "site:zenn.dev react hooks"}


@pytest.mark.asyncio
async def test_discover_failure_returns_empty(stub_fetcher) -> None:
    fetcher = stub_fetcher(lambda request: FetchError("blocked", url=request.url, status_code=403))

    assert await _zenn(fetcher).discover(["react"], 5, CancellationToken()) == []


@pytest.mark.asyncio
async def test_discover_cancelled_returns_empty(stub_fetcher) -> None:
    fetcher = stub_fetcher(lambda request: _ok(request, RESULTS))
    token = CancellationToken()
    token.cancel()

    assert await _zenn(fetcher).discover(["react"], 5, token) == []
    assert fetcher.requests == []


@pytest.mark.asyncio
async def test_enrich_prefers_structured_data(stub_fetcher) -> None:
    fetcher = stub_fetcher(lambda request: _ok(request, LD_ARTICLE))

    enriched = await _zenn(fetcher).enrich(_items("https://zenn.dev/a/articles/1"), CancellationToken())

    assert enriched[0].published_at == "2024-01-01T00:00:00Z"
    assert enriched[0].like_count == 42


@pytest.mark.asyncio
async def test_zenn_markup_fallback(stub_fetcher) -> None:
    fetcher = stub_fetcher(lambda request: _ok(request, ZENN_MARKUP))

    enriched = await _zenn(fetcher).enrich(_items("https://zenn.dev/a/articles/1"), CancellationToken())

    assert enriched[0].published_at == "2024-06-01T10:00:00+09:00"
    assert enriched[0].like_count == 18


@pytest.mark.asyncio
async def test_note_markup_fallback(stub_fetcher) -> None:
    fetcher = stub_fetcher(lambda request: _ok(request, NOTE_MARKUP))
    provider = NoteProvider(fetcher, ProviderSettings(delay_range=(0, 0)))

    enriched = await provider.enrich(_items("https://note.com/x/n/1", source_id="note"), CancellationToken())

    assert provider.site == "note.com"
    assert enriched[0].published_at == "2024-07-07T07:07:07+09:00"
    assert enriched[0].like_count == 1234


@pytest.mark.asyncio
async def test_enrich_failure_degrades_single_item(stub_fetcher) -> None:
    def route(request):
        if request.url.endswith("/2"):
            return FetchError("gone", url=request.url, status_code=404)
        return _ok(request, LD_ARTICLE)

    fetcher = stub_fetcher(route)
    items = _items("https://zenn.dev/a/articles/1", "https://zenn.dev/b/articles/2", "https://zenn.dev/c/articles/3")

    enriched = await _zenn(fetcher).enrich(items, CancellationToken())

    assert [item.url for item in enriched] == [item.url for item in items]
    assert enriched[0].like_count == 42
    assert enriched[1].like_count is None and enriched[1].published_at is None
    assert enriched[2].like_count == 42


@pytest.mark.asyncio
async def test_enrich_propagates_cancellation(stub_fetcher) -> None:
    token = CancellationToken()

    def route(request):
        token.cancel()
        return _ok(request, LD_ARTICLE)

    fetcher = stub_fetcher(route)

    with pytest.raises(Aborted):
        await _zenn(fetcher).enrich(_items("https://zenn.dev/1", "https://zenn.dev/2"), token)
    assert len(fetcher.requests) == 1


class _SerialPageFetcher:
    """Answers every page with structured data and tracks concurrent requests."""

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, request, cancellation):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.urls.append(request.url)
        await asyncio.sleep(0)
        self.in_flight -= 1
        return _ok(request, LD_ARTICLE)


@pytest.mark.asyncio
async def test_enrich_pauses_between_items_in_order(monkeypatch: pytest.MonkeyPatch) -> None:
    fetcher = _SerialPageFetcher()
    token = CancellationToken()
    pauses: list[float] = []

    async def record_sleep(seconds: float) -> None:
        pauses.append(seconds)

    monkeypatch.setattr(token, "sleep", record_sleep)
    urls = ["https://zenn.dev/a/articles/1", "https://zenn.dev/b/articles/2", "https://zenn.dev/c/articles/3"]

    enriched = await ZennProvider(fetcher).enrich(_items(*urls), token)

    assert fetcher.urls == urls
    assert fetcher.max_in_flight == 1
    assert [item.url for item in enriched] == urls
    assert len(pauses) == 2
    assert all(0.3 <= pause <= 0.5 for pause in pauses)
