"""Zenn provider: site search discovery plus article page scraping."""

from __future__ import annotations

from ..engine import ArticleMetadata
from ..engine.parser import extract_selector_count, extract_time_marker
from .search_engine import ScrapedProvider

LIKE_SELECTOR = '[class^="Like_container"]'


class ZennProvider(ScrapedProvider):
    id = "zenn"
    display_name = "Zenn"
    default_site = "zenn.dev"

    def fallback_metadata(self, html: str) -> ArticleMetadata:
        # Class names carry a build hash suffix, hence the prefix match
        return ArticleMetadata(
            published_at=extract_time_marker(html),
            like_count=extract_selector_count(html, LIKE_SELECTOR),
        )


__all__ = ["ZennProvider"]
