"""Lookup of provider implementations keyed by id."""

from __future__ import annotations

from typing import Iterable, Mapping

from ..config import HarvesterConfig
from ..engine import Fetcher
from .base import Provider
from .note import NoteProvider
from .qiita import QiitaProvider
from .zenn import ZennProvider

PROVIDER_TYPES: dict[str, type[Provider]] = {
    QiitaProvider.id: QiitaProvider,
    ZennProvider.id: ZennProvider,
    NoteProvider.id: NoteProvider,
}


class UnknownProviderError(ValueError):
    """Raised when a provider id has no registered implementation."""

    def __init__(self, provider_id: str) -> None:
        known = ", ".join(sorted(PROVIDER_TYPES))
        super().__init__(f"Unknown provider '{provider_id}' (known: {known})")
        self.provider_id = provider_id


def build_registry(fetcher: Fetcher, config: HarvesterConfig) -> dict[str, Provider]:
    """Instantiate every known provider for one run."""

    return {
        provider_id: provider_cls(fetcher, config.settings_for(provider_id))
        for provider_id, provider_cls in PROVIDER_TYPES.items()
    }


def resolve_providers(registry: Mapping[str, Provider], ids: Iterable[str]) -> list[Provider]:
    providers: list[Provider] = []
    for provider_id in ids:
        provider = registry.get(provider_id)
        if provider is None:
            raise UnknownProviderError(provider_id)
        if provider not in providers:
            providers.append(provider)
    return providers


__all__ = ["PROVIDER_TYPES", "UnknownProviderError", "build_registry", "resolve_providers"]
