"""File based exporter supporting JSONL/CSV/TXT."""

from __future__ import annotations

import csv
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .base import BaseExporter

FORMATS = ("jsonl", "csv", "txt")
_SUFFIX_FORMATS = {".jsonl": "jsonl", ".json": "jsonl", ".csv": "csv", ".txt": "txt"}


def format_for_path(path: Path, default: str = "jsonl") -> str:
    """Guess the export format from a file suffix."""

    return _SUFFIX_FORMATS.get(path.suffix.lower(), default)


class FileExporter(BaseExporter):
    """Write item records to a local file.

    ``txt`` output is a plain URL list, one per line, ready to paste
    elsewhere. When ``path`` is omitted the file name is derived from
    ``name`` and the run tag inside ``output_dir``.
    """

    def __init__(
        self,
        output_dir: Path,
        name: str,
        fmt: str = "jsonl",
        run_tag: str | None = None,
        *,
        path: Path | None = None,
    ) -> None:
        if fmt not in FORMATS:
            raise ValueError(f"Unsupported export format '{fmt}', expected one of {', '.join(FORMATS)}")
        self.output_dir = output_dir
        self.name = name
        self.format = fmt
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        if path is None:
            slug = re.sub(r"[^0-9A-Za-z_-]+", "_", name.strip()).strip("_") or "search"
            path = self.output_dir / f"{slug}-{self.run_tag}.{self.format}"
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", encoding="utf-8", newline="")
        self._csv_writer: Optional[csv.DictWriter] = None
        self.count = 0

    def export(self, record: dict) -> None:
        if self.format == "jsonl":
            json.dump(record, self._file, ensure_ascii=False)
            self._file.write("\n")
        elif self.format == "csv":
            if not self._csv_writer:
                self._csv_writer = csv.DictWriter(
                    self._file, fieldnames=list(record.keys()), extrasaction="ignore"
                )
                self._csv_writer.writeheader()
            self._csv_writer.writerow(
                {key: "" if value is None else value for key, value in record.items()}
            )
        else:  # txt
            url = record.get("url")
            if not url:
                return
            self._file.write(f"{url}\n")
        self.count += 1

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


__all__ = ["FORMATS", "FileExporter", "format_for_path"]
