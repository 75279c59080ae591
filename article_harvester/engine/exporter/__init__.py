"""Exporter SPI and implementations."""

from .base import BaseExporter
from .file_exporter import FORMATS, FileExporter, format_for_path

__all__ = ["BaseExporter", "FORMATS", "FileExporter", "format_for_path"]
