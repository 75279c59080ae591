"""Per-run URL deduplication."""

from __future__ import annotations

from typing import Iterable

from ..models import DiscoveredItem


class UrlDeduplicator:
    """Keep the first item seen for each URL; later duplicates are dropped.

    URLs are compared exactly as given, without normalisation. Instances hold
    state for a single run and must not be shared between runs.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._items: list[DiscoveredItem] = []
        self.dropped = 0

    def add(self, item: DiscoveredItem) -> bool:
        if item.url in self._seen:
            self.dropped += 1
            return False
        self._seen.add(item.url)
        self._items.append(item)
        return True

    def extend(self, items: Iterable[DiscoveredItem]) -> list[DiscoveredItem]:
        return [item for item in items if self.add(item)]

    @property
    def items(self) -> list[DiscoveredItem]:
        return list(self._items)

    def __contains__(self, url: object) -> bool:
        return url in self._seen

    def __len__(self) -> int:
        return len(self._items)


__all__ = ["UrlDeduplicator"]
