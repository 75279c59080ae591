"""note provider: site search discovery plus article page scraping."""

from __future__ import annotations

import re

from ..engine import ArticleMetadata
from ..engine.parser import extract_text_count, extract_time_marker
from .search_engine import ScrapedProvider

# note labels its like counter "スキ" followed by the number
LIKE_PATTERN = re.compile(r"スキ\s*([0-9,]+)")


class NoteProvider(ScrapedProvider):
    id = "note"
    display_name = "note"
    default_site = "note.com"

    def fallback_metadata(self, html: str) -> ArticleMetadata:
        return ArticleMetadata(
            published_at=extract_time_marker(html),
            like_count=extract_text_count(html, LIKE_PATTERN),
        )


__all__ = ["NoteProvider"]
