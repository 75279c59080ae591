from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest

from article_harvester.engine.exporter import FileExporter, format_for_path
from article_harvester.models import DiscoveredItem, EnrichedItem


def _records() -> list[dict]:
    items = [
        EnrichedItem.from_discovered(
            DiscoveredItem(url="https://qiita.com/a", source_id="qiita", title="Async tips"),
            published_at="2024-01-01T00:00:00Z",
            like_count=12,
        ),
        EnrichedItem.from_discovered(DiscoveredItem(url="https://zenn.dev/b", source_id="zenn")),
    ]
    return [item.to_dict() for item in items]


def test_jsonl_export(tmp_path: Path) -> None:
    exporter = FileExporter(tmp_path, "python async", "jsonl", run_tag="20240101-000000")
    with exporter:
        assert exporter.export_many(_records()) == 2

    assert exporter.path.name == "python_async-20240101-000000.jsonl"
    lines = exporter.path.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[0])["like_count"] == 12
    assert json.loads(lines[1])["published_at"] is None


def test_csv_export_writes_header_and_blanks(tmp_path: Path) -> None:
    exporter = FileExporter(tmp_path, "search", "csv")
    with exporter:
        exporter.export_many(_records())

    rows = list(csv.DictReader(exporter.path.open(encoding="utf-8")))
    assert rows[0]["url"] == "https://qiita.com/a"
    assert rows[0]["like_count"] == "12"
    assert rows[1]["title"] == ""
    assert list(rows[0])[:2] == ["url", "source_id"]


def test_txt_export_is_url_list(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "urls.txt"
    exporter = FileExporter(tmp_path, "ignored", "txt", path=target)
    with exporter:
        exporter.export_many(_records())

    assert target.read_text(encoding="utf-8") == "https://qiita.com/a\nhttps://zenn.dev/b\n"


def test_unknown_format_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        FileExporter(tmp_path, "search", "xml")


def test_format_for_path() -> None:
    assert format_for_path(Path("out.csv")) == "csv"
    assert format_for_path(Path("out.JSON")) == "jsonl"
    assert format_for_path(Path("out.txt")) == "txt"
    assert format_for_path(Path("out")) == "jsonl"
