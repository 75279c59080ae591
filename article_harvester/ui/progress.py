"""Terminal activity indicator shown while a search is in flight."""

from __future__ import annotations

from rich.console import Console
from rich.status import Status


class ProgressActivity:
    """Indeterminate activity indicator using Rich Status spinner."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)
        # Spinners only make sense on an interactive terminal
        self.enabled = enabled and self.console.is_terminal
        self._status: Status | None = None

    @property
    def active(self) -> bool:
        return self._status is not None

    def start(self, message: str) -> None:
        if not self.enabled or self._status is not None:
            return
        self._status = self.console.status(message)
        self._status.start()

    def update(self, message: str) -> None:
        if self._status is not None:
            self._status.update(message)

    def close(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def __enter__(self) -> "ProgressActivity":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ProgressActivity"]
