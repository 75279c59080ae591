"""Content source providers."""

from .base import Provider
from .note import NoteProvider
from .qiita import QiitaProvider
from .registry import PROVIDER_TYPES, UnknownProviderError, build_registry, resolve_providers
from .search_engine import ScrapedProvider, site_search
from .zenn import ZennProvider

__all__ = [
    "NoteProvider",
    "PROVIDER_TYPES",
    "Provider",
    "QiitaProvider",
    "ScrapedProvider",
    "UnknownProviderError",
    "ZennProvider",
    "build_registry",
    "resolve_providers",
    "site_search",
]
