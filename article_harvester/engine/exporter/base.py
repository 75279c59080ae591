"""Exporter Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable


class BaseExporter(ABC):
    """Uniform exporter contract for search result records."""

    @abstractmethod
    def export(self, record: dict) -> None:
        """Persist a single record."""

    def export_many(self, records: Iterable[dict]) -> int:
        written = 0
        for record in records:
            self.export(record)
            written += 1
        return written

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""

    def __enter__(self) -> "BaseExporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.flush()
        self.close()


__all__ = ["BaseExporter"]
