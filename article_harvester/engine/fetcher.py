"""Async HTTP fetching with cancellation and politeness delays."""

from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from typing import Any, Dict

import httpx
import structlog

from ..config import HttpConfig
from ..infra import UserAgentPool
from .cancellation import CancellationToken


@dataclass(slots=True)
class FetchRequest:
    """Input for the fetcher."""

    url: str
    params: dict[str, Any] | None = None
    headers: dict[str, str] | None = None
    timeout: float | None = None


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.text)


class FetchError(RuntimeError):
    """Transport failure or non-success HTTP status."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class Fetcher:
    """Issue outbound requests for providers; one instance per run.

    Requests are never retried: a failed call surfaces as :class:`FetchError`
    and the calling provider decides how to degrade.
    """

    def __init__(
        self,
        http_config: HttpConfig | None = None,
        ua_pool: UserAgentPool | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.http_config = http_config or HttpConfig()
        self.ua_pool = ua_pool
        self.logger = logger or structlog.get_logger("article_harvester.fetcher")
        self._client = httpx.AsyncClient(
            follow_redirects=self.http_config.follow_redirects,
            timeout=self.http_config.timeout,
            headers={"User-Agent": self.http_config.default_user_agent()},
        )

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch(self, request: FetchRequest, cancellation: CancellationToken) -> FetchResponse:
        cancellation.raise_if_cancelled()
        headers = dict(request.headers or {})
        if self.ua_pool is not None:
            ua = self.ua_pool.get()
            if ua:
                headers.setdefault("User-Agent", ua)
        try:
            response = await cancellation.guard(
                self._client.request(
                    "GET",
                    request.url,
                    params=request.params,
                    headers=headers,
                    timeout=request.timeout or self.http_config.timeout,
                )
            )
        except httpx.HTTPError as exc:
            self.logger.warning("fetch_error", url=request.url, error=str(exc))
            raise FetchError(f"Request failed: {exc}", url=request.url) from exc
        if self._is_failure(response):
            self.logger.warning("fetch_status", url=request.url, status=response.status_code)
            raise FetchError(
                f"Unexpected status {response.status_code}",
                url=request.url,
                status_code=response.status_code,
            )
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
        )

    @staticmethod
    def _is_failure(response: Any) -> bool:
        status_code = getattr(response, "status_code", 0)
        return not 200 <= status_code < 400


class RateLimitedFetcher:
    """Space consecutive requests to one source by a random or fixed delay.

    The first request goes out immediately; every following request waits a
    delay drawn from ``delay_range`` first. Waiting observes the cancellation
    token, so a pending delay settles as ``Aborted`` instead of completing.
    """

    def __init__(self, fetcher: Fetcher, delay_range: tuple[float, float] = (0.0, 0.0)) -> None:
        self.fetcher = fetcher
        self.delay_range = delay_range
        self._requests = 0

    def next_delay(self) -> float:
        low, high = self.delay_range
        if high <= 0:
            return 0.0
        if low == high:
            return low
        return random.uniform(low, high)

    async def pause(self, cancellation: CancellationToken) -> None:
        await cancellation.sleep(self.next_delay())

    async def fetch(self, request: FetchRequest, cancellation: CancellationToken) -> FetchResponse:
        if self._requests:
            await self.pause(cancellation)
        self._requests += 1
        return await self.fetcher.fetch(request, cancellation)


__all__ = ["Fetcher", "FetchError", "FetchRequest", "FetchResponse", "RateLimitedFetcher"]
