"""Search-engine backed discovery shared by the HTML-scraped providers."""

from __future__ import annotations

from typing import Sequence

from ..engine import (
    Aborted,
    ArticleMetadata,
    CancellationToken,
    FetchError,
    FetchRequest,
    RateLimitedFetcher,
)
from ..engine.parser import extract_structured_data, parse_search_results
from ..models import DiscoveredItem, EnrichedItem
from .base import Provider

DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"


async def site_search(
    fetcher: RateLimitedFetcher,
    site: str,
    tokens: Sequence[str],
    max_results: int,
    source_id: str,
    cancellation: CancellationToken,
) -> list[DiscoveredItem]:
    """Run a ``site:`` restricted query against DuckDuckGo's no-JS result page."""

    query = f"site:{site} {' '.join(tokens)}".strip()
    response = await fetcher.fetch(
        FetchRequest(url=DUCKDUCKGO_HTML_URL, params={"q": query}),
        cancellation,
    )
    return parse_search_results(response.text, source_id=source_id, max_results=max_results)


class ScrapedProvider(Provider):
    """Discover through a site search, enrich by scraping each article page.

    Enrichment is deliberately sequential: one page at a time, in input
    order, with a randomised politeness pause between pages.
    """

    default_site: str = ""
    default_delay_range = (0.3, 0.5)

    @property
    def site(self) -> str:
        return self.settings.site or self.default_site

    async def discover(
        self,
        tokens: Sequence[str],
        max_discover: int,
        cancellation: CancellationToken,
    ) -> list[DiscoveredItem]:
        if max_discover <= 0:
            return []
        self.logger.info("discover_started", site=self.site, tokens=list(tokens))
        try:
            items = await site_search(
                RateLimitedFetcher(self.fetcher, self.delay_range),
                self.site,
                tokens,
                max_discover,
                self.id,
                cancellation,
            )
        except Aborted:
            self.logger.info("discover_cancelled", collected=0)
            return []
        except FetchError as exc:
            self.logger.error("search_failed", site=self.site, status=exc.status_code, error=str(exc))
            return []
        self.logger.info("discover_finished", collected=len(items))
        return items[:max_discover]

    async def enrich(
        self,
        items: Sequence[DiscoveredItem],
        cancellation: CancellationToken,
    ) -> list[EnrichedItem]:
        limiter = RateLimitedFetcher(self.fetcher, self.delay_range)
        self.logger.info("enrich_started", count=len(items))
        enriched: list[EnrichedItem] = []
        for item in items:
            cancellation.raise_if_cancelled()
            enriched.append(await self._enrich_item(limiter, item, cancellation))
        self.logger.info(
            "enrich_finished",
            count=len(enriched),
            with_metadata=sum(1 for entry in enriched if entry.has_metadata),
        )
        return enriched

    async def _enrich_item(
        self,
        limiter: RateLimitedFetcher,
        item: DiscoveredItem,
        cancellation: CancellationToken,
    ) -> EnrichedItem:
        try:
            response = await limiter.fetch(FetchRequest(url=item.url), cancellation)
            metadata = self.extract_metadata(response.text)
        except Aborted:
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("enrich_item_failed", url=item.url, error=str(exc))
            return EnrichedItem.from_discovered(item)
        return EnrichedItem.from_discovered(
            item,
            published_at=metadata.published_at,
            like_count=metadata.like_count,
        )

    def extract_metadata(self, html: str) -> ArticleMetadata:
        metadata = extract_structured_data(html)
        if metadata.complete:
            return metadata
        return metadata.merge(self.fallback_metadata(html))

    def fallback_metadata(self, html: str) -> ArticleMetadata:
        """Markup-specific extraction used when structured data is missing."""

        return ArticleMetadata()


__all__ = ["DUCKDUCKGO_HTML_URL", "ScrapedProvider", "site_search"]
