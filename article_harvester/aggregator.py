"""Aggregation engine: concurrent discovery, URL dedup, grouped enrichment."""

from __future__ import annotations

import asyncio
import math
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Sequence

import structlog

from .engine import Aborted, CancellationToken, UrlDeduplicator
from .logging_conf import configure_logging
from .models import DiscoveredItem, EnrichedItem
from .providers import Provider


@dataclass(slots=True)
class TaskOutcome:
    """Settled result of one provider task: either a value or the error it raised."""

    provider_id: str
    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def aborted(self) -> bool:
        return isinstance(self.error, Aborted)

    @classmethod
    async def capture(
        cls, provider_id: str, call: Callable[..., Awaitable[Any]], *args: Any
    ) -> "TaskOutcome":
        try:
            return cls(provider_id, value=await call(*args))
        except Exception as exc:  # noqa: BLE001
            return cls(provider_id, error=exc)


@dataclass(slots=True)
class RunSummary:
    providers: int = 0
    quota: int = 0
    discovered: int = 0
    unique: int = 0
    enriched: int = 0
    degraded_groups: int = 0
    failed_providers: int = 0
    returned: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class Aggregator:
    """Run one keyword search across a set of providers.

    Every run owns its deduplicator and summary; the only failure that
    leaves :meth:`run` is :class:`Aborted`.
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or configure_logging().bind(component="aggregator")
        self.last_summary: RunSummary | None = None

    async def run(
        self,
        tokens: Sequence[str],
        providers: Sequence[Provider],
        max_total: int,
        cancellation: CancellationToken,
    ) -> list[EnrichedItem]:
        cancellation.raise_if_cancelled()
        if isinstance(max_total, bool) or not isinstance(max_total, int) or max_total < 1:
            raise ValueError(f"max_total must be a positive integer, got {max_total!r}")
        providers = list(providers)
        if not providers:
            self.last_summary = RunSummary()
            return []

        tokens = list(tokens)
        quota = math.ceil(max_total / len(providers))
        summary = RunSummary(providers=len(providers), quota=quota)
        registry: dict[str, Provider] = {}
        for provider in providers:
            registry.setdefault(provider.id, provider)
        self.logger.info(
            "run_started", tokens=tokens, providers=list(registry), max_total=max_total, quota=quota
        )

        discovered = await self._discover(tokens, providers, quota, cancellation, summary)
        cancellation.raise_if_cancelled()

        groups: dict[str, list[DiscoveredItem]] = {}
        for item in discovered:
            if item.source_id not in registry:
                self.logger.warning("unknown_source_dropped", url=item.url, source_id=item.source_id)
                continue
            groups.setdefault(item.source_id, []).append(item)

        enriched = await self._enrich(groups, registry, cancellation, summary)
        cancellation.raise_if_cancelled()

        result = enriched[:max_total]
        summary.returned = len(result)
        self.last_summary = summary
        self.logger.info("run_completed", **summary.as_dict())
        return result

    async def _discover(
        self,
        tokens: list[str],
        providers: list[Provider],
        quota: int,
        cancellation: CancellationToken,
        summary: RunSummary,
    ) -> list[DiscoveredItem]:
        dedup = UrlDeduplicator()
        aborted: Aborted | None = None
        tasks = [
            asyncio.ensure_future(
                TaskOutcome.capture(provider.id, provider.discover, tokens, quota, cancellation)
            )
            for provider in providers
        ]
        try:
            # Merge happens here, one settled task at a time
            for settled in asyncio.as_completed(tasks):
                outcome = await settled
                if outcome.aborted:
                    aborted = aborted or outcome.error
                    continue
                items = self._discovered_items(outcome, quota, summary)
                summary.discovered += len(items)
                dedup.extend(items)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        if aborted is not None:
            raise aborted
        summary.unique = len(dedup)
        self.logger.info(
            "discovery_merged", discovered=summary.discovered, unique=summary.unique, dropped=dedup.dropped
        )
        return dedup.items

    def _discovered_items(
        self, outcome: TaskOutcome, quota: int, summary: RunSummary
    ) -> list[DiscoveredItem]:
        if not outcome.ok:
            summary.failed_providers += 1
            self.logger.error(
                "discover_failed", provider=outcome.provider_id, error=repr(outcome.error)
            )
            return []
        value = outcome.value or []
        if not isinstance(value, (list, tuple)):
            summary.failed_providers += 1
            self.logger.error(
                "discover_failed",
                provider=outcome.provider_id,
                error=f"discover returned {type(value).__name__}",
            )
            return []
        items = [entry for entry in value if _valid_item(entry)]
        if len(items) < len(value):
            self.logger.warning(
                "discover_malformed_dropped",
                provider=outcome.provider_id,
                dropped=len(value) - len(items),
            )
        if len(items) > quota:
            self.logger.warning(
                "discover_over_quota", provider=outcome.provider_id, returned=len(items), quota=quota
            )
            items = items[:quota]
        self.logger.info("discover_succeeded", provider=outcome.provider_id, count=len(items))
        return items

    async def _enrich(
        self,
        groups: dict[str, list[DiscoveredItem]],
        registry: dict[str, Provider],
        cancellation: CancellationToken,
        summary: RunSummary,
    ) -> list[EnrichedItem]:
        source_ids = [source_id for source_id, items in groups.items() if items]
        outcomes = await asyncio.gather(
            *(
                TaskOutcome.capture(
                    source_id, registry[source_id].enrich, list(groups[source_id]), cancellation
                )
                for source_id in source_ids
            )
        )
        for outcome in outcomes:
            if outcome.aborted:
                raise outcome.error
        cancellation.raise_if_cancelled()

        enriched: list[EnrichedItem] = []
        for outcome in outcomes:
            enriched.extend(self._enriched_items(outcome, groups[outcome.provider_id], summary))
        summary.enriched = sum(1 for item in enriched if item.has_metadata)
        return enriched

    def _enriched_items(
        self, outcome: TaskOutcome, items: list[DiscoveredItem], summary: RunSummary
    ) -> list[EnrichedItem]:
        if outcome.ok:
            result = outcome.value
            if not isinstance(result, (list, tuple)):
                error = f"enrich returned {type(result).__name__}"
            elif len(result) != len(items):
                error = f"enrich returned {len(result)} items for {len(items)} inputs"
            elif not all(_matches(entry, item) for entry, item in zip(result, items)):
                error = "enrich returned items that do not match its inputs"
            else:
                return [
                    entry if isinstance(entry, EnrichedItem) else EnrichedItem.from_discovered(entry)
                    for entry in result
                ]
        else:
            error = repr(outcome.error)
        summary.degraded_groups += 1
        self.logger.error("enrich_failed", provider=outcome.provider_id, count=len(items), error=error)
        return [EnrichedItem.from_discovered(item) for item in items]


def _valid_item(entry: Any) -> bool:
    return (
        isinstance(entry, DiscoveredItem)
        and isinstance(entry.url, str)
        and bool(entry.url)
        and isinstance(entry.source_id, str)
    )


def _matches(entry: Any, item: DiscoveredItem) -> bool:
    # Enrichment may add metadata only; url and source stay fixed per position
    return (
        isinstance(entry, DiscoveredItem)
        and entry.url == item.url
        and entry.source_id == item.source_id
    )


async def run_search(
    tokens: Sequence[str],
    providers: Sequence[Provider],
    max_total: int,
    cancellation: CancellationToken,
    *,
    logger: structlog.BoundLogger | None = None,
) -> list[EnrichedItem]:
    """Single-call form of :meth:`Aggregator.run`."""

    return await Aggregator(logger=logger).run(tokens, providers, max_total, cancellation)


__all__ = ["Aggregator", "RunSummary", "TaskOutcome", "run_search"]
