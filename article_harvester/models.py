"""Value types flowing through discovery and enrichment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class DiscoveredItem:
    """Candidate result produced by a provider's discovery step."""

    url: str
    source_id: str
    title: str | None = None
    snippet: str | None = None
    # 1-based position in the provider's own ordering; never used for dedup
    discovery_rank: int | None = None
    # Provider-owned data carried into enrichment, opaque to the engine
    provider_payload: Any = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "source_id": self.source_id,
            "title": self.title,
            "snippet": self.snippet,
            "discovery_rank": self.discovery_rank,
        }


@dataclass(frozen=True, slots=True)
class EnrichedItem(DiscoveredItem):
    """A discovered item plus publication and popularity metadata."""

    published_at: str | None = None
    like_count: int | None = None
    view_count: int | None = None

    @classmethod
    def from_discovered(
        cls,
        item: DiscoveredItem,
        *,
        published_at: str | None = None,
        like_count: int | None = None,
        view_count: int | None = None,
    ) -> "EnrichedItem":
        return cls(
            url=item.url,
            source_id=item.source_id,
            title=item.title,
            snippet=item.snippet,
            discovery_rank=item.discovery_rank,
            provider_payload=item.provider_payload,
            published_at=published_at or None,
            like_count=_non_negative(like_count),
            view_count=_non_negative(view_count),
        )

    @property
    def has_metadata(self) -> bool:
        return any(
            value is not None for value in (self.published_at, self.like_count, self.view_count)
        )

    def to_dict(self) -> dict[str, Any]:
        data = DiscoveredItem.to_dict(self)
        data.update(
            {
                "published_at": self.published_at,
                "like_count": self.like_count,
                "view_count": self.view_count,
            }
        )
        return data


def _non_negative(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


__all__ = ["DiscoveredItem", "EnrichedItem"]
