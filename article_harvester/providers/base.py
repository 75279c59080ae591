"""Provider contract: the plugin boundary of the harvester."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import structlog

from ..config import ProviderSettings
from ..engine import CancellationToken, Fetcher
from ..logging_conf import provider_logger
from ..models import DiscoveredItem, EnrichedItem


class Provider(ABC):
    """Discover and enrich items from one external content source.

    Implementations keep no state between runs; the fetcher they receive is
    scoped to the run that built them.
    """

    id: str = ""
    display_name: str = ""
    # Pause between consecutive requests when the settings leave it unset
    default_delay_range: tuple[float, float] = (0.0, 0.0)

    def __init__(
        self,
        fetcher: Fetcher,
        settings: ProviderSettings | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.settings = settings or ProviderSettings()
        self.logger = logger or provider_logger(self.id)

    @property
    def delay_range(self) -> tuple[float, float]:
        return self.settings.delay_range or self.default_delay_range

    @abstractmethod
    async def discover(
        self,
        tokens: Sequence[str],
        max_discover: int,
        cancellation: CancellationToken,
    ) -> list[DiscoveredItem]:
        """Return at most ``max_discover`` items matching every token.

        Cancellation truncates: stop issuing requests and return what has
        been collected so far.
        """

    @abstractmethod
    async def enrich(
        self,
        items: Sequence[DiscoveredItem],
        cancellation: CancellationToken,
    ) -> list[EnrichedItem]:
        """Return one enriched item per input, in input order.

        Raises ``Aborted`` when cancellation fires mid-enrichment.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"


__all__ = ["Provider"]
