"""Engine components: cancellation → fetch → parse → dedup."""

from .cancellation import Aborted, CancellationToken
from .dedup import UrlDeduplicator
from .fetcher import FetchError, FetchRequest, FetchResponse, Fetcher, RateLimitedFetcher
from .parser import ArticleMetadata

__all__ = [
    "Aborted",
    "ArticleMetadata",
    "CancellationToken",
    "FetchError",
    "FetchRequest",
    "FetchResponse",
    "Fetcher",
    "RateLimitedFetcher",
    "UrlDeduplicator",
]
