"""Cooperative per-run cancellation threaded through every suspension point."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

T = TypeVar("T")


class Aborted(Exception):
    """Raised when the run's cancellation token has been triggered."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or "Aborted")
        self.reason = reason


class CancellationToken:
    """Shared signal observed by the engine, providers and fetch helpers.

    A token belongs to exactly one run. Waiting operations (timers, network
    calls) register against it through :meth:`sleep` and :meth:`guard` so a
    trigger settles them promptly with :class:`Aborted`.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Aborted(self.reason)

    async def sleep(self, seconds: float) -> None:
        """Politeness delay that resolves early as :class:`Aborted` on trigger."""

        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise Aborted(self.reason)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first."""

        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()
        if work in done:
            return work.result()
        # Let the cancelled request unwind before reporting the abort
        await asyncio.gather(work, return_exceptions=True)
        raise Aborted(self.reason)


__all__ = ["Aborted", "CancellationToken"]
