"""Qiita provider backed by the public v2 items API."""

from __future__ import annotations

import math
from typing import Any, Sequence

from ..engine import Aborted, CancellationToken, FetchError, FetchRequest, RateLimitedFetcher
from ..models import DiscoveredItem, EnrichedItem
from .base import Provider

QIITA_ITEMS_URL = "https://qiita.com/api/v2/items"
# Hard limit of the remote API
MAX_PAGE_SIZE = 100


class QiitaProvider(Provider):
    """Paginate the keyword query endpoint; enrichment reuses the page records."""

    id = "qiita"
    display_name = "Qiita"
    default_delay_range = (0.6, 0.6)

    @property
    def page_size(self) -> int:
        return min(self.settings.page_size, MAX_PAGE_SIZE)

    async def discover(
        self,
        tokens: Sequence[str],
        max_discover: int,
        cancellation: CancellationToken,
    ) -> list[DiscoveredItem]:
        if max_discover <= 0:
            return []
        query = " ".join(tokens)
        per_page = self.page_size
        max_pages = math.ceil(max_discover / per_page)
        pager = RateLimitedFetcher(self.fetcher, self.delay_range)
        found: list[DiscoveredItem] = []
        page = 1
        self.logger.info(
            "discover_started", query=query, target=max_discover, max_pages=max_pages
        )
        try:
            while len(found) < max_discover and page <= max_pages:
                response = await pager.fetch(
                    FetchRequest(
                        url=QIITA_ITEMS_URL,
                        params={"query": query, "page": page, "per_page": per_page},
                        headers=self._auth_headers(),
                    ),
                    cancellation,
                )
                try:
                    records = response.json()
                except ValueError as exc:
                    self.logger.error("page_decode_failed", page=page, error=str(exc))
                    break
                if not isinstance(records, list) or not records:
                    break
                for index, record in enumerate(records):
                    if len(found) >= max_discover:
                        break
                    item = self._to_item(record, rank=(page - 1) * per_page + index + 1)
                    if item is not None:
                        found.append(item)
                self.logger.debug(
                    "page_fetched", page=page, received=len(records), collected=len(found)
                )
                page += 1
        except Aborted:
            self.logger.info("discover_cancelled", collected=len(found))
        except FetchError as exc:
            self.logger.error(
                "page_fetch_failed", page=page, status=exc.status_code, error=str(exc)
            )
        self.logger.info("discover_finished", collected=len(found))
        return found[:max_discover]

    async def enrich(
        self,
        items: Sequence[DiscoveredItem],
        cancellation: CancellationToken,
    ) -> list[EnrichedItem]:
        enriched: list[EnrichedItem] = []
        for item in items:
            cancellation.raise_if_cancelled()
            record = item.provider_payload if isinstance(item.provider_payload, dict) else {}
            created_at = record.get("created_at")
            enriched.append(
                EnrichedItem.from_discovered(
                    item,
                    published_at=created_at if isinstance(created_at, str) else None,
                    like_count=record.get("likes_count"),
                    # The items endpoint never reports views
                    view_count=None,
                )
            )
        return enriched

    def _auth_headers(self) -> dict[str, str] | None:
        if not self.settings.access_token:
            return None
        return {"Authorization": f"Bearer {self.settings.access_token}"}

    def _to_item(self, record: Any, *, rank: int) -> DiscoveredItem | None:
        if not isinstance(record, dict):
            return None
        url = record.get("url")
        if not isinstance(url, str) or not url:
            return None
        title = record.get("title")
        return DiscoveredItem(
            url=url,
            source_id=self.id,
            title=title if isinstance(title, str) else None,
            discovery_rank=rank,
            provider_payload=record,
        )


__all__ = ["QiitaProvider", "QIITA_ITEMS_URL", "MAX_PAGE_SIZE"]
