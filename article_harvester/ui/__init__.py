"""User interaction helpers."""

from .listing import join_urls, render_table, select_top, sort_items
from .progress import ProgressActivity

__all__ = [
    "ProgressActivity",
    "join_urls",
    "render_table",
    "select_top",
    "sort_items",
]
