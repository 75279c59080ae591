"""Sorting and rendering of search results for the terminal."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Sequence

from rich.table import Table

from ..models import EnrichedItem

SORT_KEYS = ("latest", "likes")
_MISSING = float("-inf")


def published_timestamp(item: EnrichedItem) -> float:
    """Epoch seconds of ``published_at``; missing or unparsable sorts lowest."""

    value = (item.published_at or "").strip()
    if not value:
        return _MISSING
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return _MISSING
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def sort_items(
    items: Iterable[EnrichedItem], key: str = "latest", descending: bool = True
) -> list[EnrichedItem]:
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key '{key}', expected one of {', '.join(SORT_KEYS)}")
    ordered = list(items)
    if key == "latest":
        ordered.sort(key=published_timestamp, reverse=descending)
        return ordered
    # Recency first so the stable likes pass keeps newest-first among equal counts
    ordered.sort(key=published_timestamp, reverse=True)
    ordered.sort(
        key=lambda item: item.like_count if item.like_count is not None else -1,
        reverse=descending,
    )
    return ordered


def select_top(items: Sequence[EnrichedItem], limit: int | None) -> list[EnrichedItem]:
    if limit is None:
        return list(items)
    if limit < 0:
        raise ValueError("limit must not be negative")
    return list(items[:limit])


def join_urls(items: Iterable[EnrichedItem]) -> str:
    return "\n".join(item.url for item in items)


def _format_date(item: EnrichedItem) -> str:
    stamp = published_timestamp(item)
    if stamp == _MISSING:
        return "-"
    return datetime.fromtimestamp(stamp, tz=timezone.utc).strftime("%Y-%m-%d")


def render_table(items: Sequence[EnrichedItem], title: str | None = None) -> Table:
    table = Table(title=title, show_lines=False, expand=True)
    table.add_column("#", justify="right", style="dim", no_wrap=True)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Published", no_wrap=True)
    table.add_column("Likes", justify="right", style="green")
    table.add_column("URL", style="blue", overflow="fold")
    for index, item in enumerate(items, start=1):
        table.add_row(
            str(index),
            item.source_id,
            item.title or "-",
            _format_date(item),
            "-" if item.like_count is None else str(item.like_count),
            item.url,
        )
    return table


__all__ = [
    "SORT_KEYS",
    "join_urls",
    "published_timestamp",
    "render_table",
    "select_top",
    "sort_items",
]
