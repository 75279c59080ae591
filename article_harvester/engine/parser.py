"""DOM and JSON-LD parsing helpers."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterator
from urllib.parse import parse_qs, urlparse

from selectolax.parser import HTMLParser

from ..models import DiscoveredItem

LD_JSON_SELECTOR = 'script[type="application/ld+json"]'
REDIRECT_PARAM = "uddg"


@dataclass(slots=True)
class ArticleMetadata:
    """Fields an enrichment strategy managed to extract from a page."""

    published_at: str | None = None
    like_count: int | None = None

    @property
    def complete(self) -> bool:
        return self.published_at is not None and self.like_count is not None

    def merge(self, other: "ArticleMetadata") -> "ArticleMetadata":
        """Fill only the fields still missing, keeping earlier strategies first."""

        return ArticleMetadata(
            published_at=self.published_at if self.published_at is not None else other.published_at,
            like_count=self.like_count if self.like_count is not None else other.like_count,
        )


def parse_search_results(html: str, *, source_id: str, max_results: int) -> list[DiscoveredItem]:
    """Parse a DuckDuckGo HTML result page into discovered items.

    The anchor of each row points at a redirect; the real target lives in its
    ``uddg`` query parameter. Rows without a resolvable target or title are
    skipped but still consume a rank position.
    """

    parser = HTMLParser(html)
    items: list[DiscoveredItem] = []
    for index, row in enumerate(parser.css(".result")):
        if len(items) >= max_results:
            break
        anchor = row.css_first("a.result__a")
        if anchor is None:
            continue
        title = anchor.text(separator=" ", strip=True)
        target = resolve_redirect(anchor.attributes.get("href"))
        if not target or not title:
            continue
        snippet_node = row.css_first(".result__snippet")
        snippet = snippet_node.text(separator=" ", strip=True) if snippet_node else None
        items.append(
            DiscoveredItem(
                url=target,
                source_id=source_id,
                title=title,
                snippet=snippet or None,
                discovery_rank=index + 1,
            )
        )
    return items


def resolve_redirect(href: str | None) -> str | None:
    if not href:
        return None
    href = href.strip()
    parsed = urlparse(href)
    values = parse_qs(parsed.query).get(REDIRECT_PARAM)
    if values and values[0]:
        return values[0]
    # Some result rows link to the target directly
    if parsed.scheme in ("http", "https") and "duckduckgo.com" not in (parsed.hostname or ""):
        return href
    return None


def extract_structured_data(html: str) -> ArticleMetadata:
    """Read publication date and like count from embedded JSON-LD blocks."""

    parser = HTMLParser(html)
    metadata = ArticleMetadata()
    for node in parser.css(LD_JSON_SELECTOR):
        raw = node.text(deep=True)
        if not raw or not raw.strip():
            continue
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            continue
        for entry in _iter_ld_entries(payload):
            metadata = metadata.merge(_metadata_from_ld(entry))
            if metadata.complete:
                return metadata
    return metadata


def _iter_ld_entries(payload: Any) -> Iterator[dict[str, Any]]:
    if isinstance(payload, list):
        for element in payload:
            yield from _iter_ld_entries(element)
    elif isinstance(payload, dict):
        yield payload
        graph = payload.get("@graph")
        if isinstance(graph, list):
            yield from _iter_ld_entries(graph)


def _metadata_from_ld(entry: dict[str, Any]) -> ArticleMetadata:
    published = entry.get("datePublished") or entry.get("dateCreated")
    like_count: int | None = None
    stats = entry.get("interactionStatistic")
    if isinstance(stats, dict):
        stats = [stats]
    if isinstance(stats, list):
        for stat in stats:
            if not isinstance(stat, dict):
                continue
            if "LikeAction" not in _interaction_type(stat.get("interactionType")):
                continue
            like_count = parse_count(stat.get("userInteractionCount"))
            if like_count is not None:
                break
    return ArticleMetadata(
        published_at=published if isinstance(published, str) and published.strip() else None,
        like_count=like_count,
    )


def _interaction_type(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("@type") or value.get("@id") or "")
    return str(value or "")


def extract_time_marker(html: str) -> str | None:
    node = HTMLParser(html).css_first("time[datetime]")
    if node is None:
        return None
    value = (node.attributes.get("datetime") or "").strip()
    return value or None


def extract_selector_count(html: str, selector: str) -> int | None:
    node = HTMLParser(html).css_first(selector)
    if node is None:
        return None
    inner = node.css_first("span")
    target = inner if inner is not None else node
    return parse_count(target.text(strip=True))


def extract_text_count(html: str, pattern: str | re.Pattern[str]) -> int | None:
    parser = HTMLParser(html)
    root = parser.body or parser.root
    if root is None:
        return None
    match = re.search(pattern, root.text(separator=" "))
    if not match:
        return None
    return parse_count(match.group(1))


def parse_count(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value >= 0 else None
    text = str(value).replace(",", "").strip()
    if not text.isdigit():
        return None
    return int(text)


__all__ = [
    "ArticleMetadata",
    "extract_selector_count",
    "extract_structured_data",
    "extract_text_count",
    "extract_time_marker",
    "parse_count",
    "parse_search_results",
    "resolve_redirect",
]
