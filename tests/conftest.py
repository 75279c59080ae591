"""Shared fixtures: isolated harvester home, fake providers and stub fetchers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

import pytest
import structlog

from article_harvester.config import ConfigLocator, ConfigRepository, HarvesterConfig, ProviderSettings
from article_harvester.engine import CancellationToken, FetchRequest, FetchResponse
from article_harvester.models import DiscoveredItem, EnrichedItem
from article_harvester.providers import Provider


@pytest.fixture(autouse=True)
def harvester_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("ARTICLE_HARVESTER_HOME", str(tmp_path))
    monkeypatch.delenv("QIITA_ACCESS_TOKEN", raising=False)
    return tmp_path


@pytest.fixture
def temp_config_repository(harvester_home: Path) -> Iterable[ConfigRepository]:
    locator = ConfigLocator(project_root=harvester_home)
    yield ConfigRepository(locator)


@pytest.fixture
def harvester_config() -> HarvesterConfig:
    return HarvesterConfig(
        providers={
            "qiita": ProviderSettings(enabled=True, page_size=100, delay_range=(0, 0)),
            "zenn": ProviderSettings(enabled=True, site="zenn.dev", delay_range=(0, 0)),
            "note": ProviderSettings(enabled=False, site="note.com", delay_range=(0, 0)),
        }
    )


class FakeProvider(Provider):
    """In-memory provider with scripted discovery and enrichment behaviour."""

    def __init__(
        self,
        provider_id: str,
        urls: Sequence[str] = (),
        *,
        source_id: str | None = None,
        discover_error: Exception | None = None,
        enrich_error: Exception | None = None,
        enrich_short: bool = False,
        ignore_quota: bool = False,
        on_discover: Callable[[CancellationToken], Any] | None = None,
        on_enrich: Callable[[CancellationToken], Any] | None = None,
    ) -> None:
        self.id = provider_id
        self.display_name = provider_id.title()
        super().__init__(fetcher=None, logger=structlog.get_logger("tests").bind(provider=provider_id))
        self.urls = list(urls)
        self.source_id = source_id or provider_id
        self.discover_error = discover_error
        self.enrich_error = enrich_error
        self.enrich_short = enrich_short
        self.ignore_quota = ignore_quota
        self.on_discover = on_discover
        self.on_enrich = on_enrich
        self.discover_calls: list[tuple[list[str], int]] = []
        self.enrich_calls: list[list[str]] = []

    async def discover(self, tokens, max_discover, cancellation):
        self.discover_calls.append((list(tokens), max_discover))
        if self.on_discover is not None:
            await self.on_discover(cancellation)
        if self.discover_error is not None:
            raise self.discover_error
        urls = self.urls if self.ignore_quota else self.urls[:max_discover]
        return [
            DiscoveredItem(url=url, source_id=self.source_id, title=f"{self.id} {index}", discovery_rank=index + 1)
            for index, url in enumerate(urls)
        ]

    async def enrich(self, items, cancellation):
        self.enrich_calls.append([item.url for item in items])
        if self.on_enrich is not None:
            await self.on_enrich(cancellation)
        if self.enrich_error is not None:
            raise self.enrich_error
        enriched = [
            EnrichedItem.from_discovered(
                item, published_at=f"2024-01-{index + 1:02d}T00:00:00Z", like_count=index
            )
            for index, item in enumerate(items)
        ]
        return enriched[:-1] if self.enrich_short else enriched


@pytest.fixture
def fake_provider() -> Callable[..., FakeProvider]:
    return FakeProvider


class StubFetcher:
    """Duck-typed fetcher answering from a routing function; records every request."""

    def __init__(self, route: Callable[[FetchRequest], FetchResponse | Exception]) -> None:
        self.route = route
        self.requests: list[FetchRequest] = []

    async def fetch(self, request: FetchRequest, cancellation: CancellationToken) -> FetchResponse:
        cancellation.raise_if_cancelled()
        self.requests.append(request)
        outcome = self.route(request)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def stub_fetcher() -> Callable[..., StubFetcher]:
    return StubFetcher
