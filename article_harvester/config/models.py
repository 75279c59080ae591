"""Pydantic models describing harvester configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


def _coerce_delay_range(value: Any) -> tuple[float, float] | None:
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        value = (value, value)
    if isinstance(value, (list, tuple)) and len(value) == 2:
        low, high = float(value[0]), float(value[1])
        if low < 0 or high < 0:
            raise ValueError("Delay range values must be non-negative")
        if high < low:
            raise ValueError("Delay range upper bound must be >= lower bound")
        return (low, high)
    raise ValueError("Delay range expects a number or a two-item list")


class HttpConfig(BaseModel):
    """Outbound HTTP client settings shared by every provider."""

    timeout: float = 15.0
    follow_redirects: bool = True
    user_agent_list: list[str] | Path | None = None

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be > 0")
        return value

    @model_validator(mode="after")
    def _apply_user_agents(self) -> "HttpConfig":
        if isinstance(self.user_agent_list, Path):
            if not self.user_agent_list.exists():
                raise ValueError(f"UA file not found: {self.user_agent_list}")
            content = self.user_agent_list.read_text(encoding="utf-8").splitlines()
            self.user_agent_list = [line.strip() for line in content if line.strip()]
        return self

    def default_user_agent(self) -> str:
        agents = self.user_agent_list if isinstance(self.user_agent_list, list) else []
        # Prefer a desktop UA; several sources serve reduced markup to mobile agents
        return next((ua for ua in agents if "Windows NT" in ua), agents[0] if agents else DEFAULT_USER_AGENT)


class ProviderSettings(BaseModel):
    """Per-provider knobs: politeness delays, paging and credentials."""

    enabled: bool = True
    page_size: int = 100
    # Pause between consecutive outbound requests, seconds; None uses the provider default
    delay_range: tuple[float, float] | None = None
    # Site restriction used by search-engine backed providers
    site: str | None = None
    access_token: str | None = None

    @field_validator("delay_range", mode="before")
    @classmethod
    def _coerce_delay(cls, value: Any) -> tuple[float, float] | None:
        return _coerce_delay_range(value)

    @field_validator("page_size")
    @classmethod
    def _positive_page_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("page_size must be >= 1")
        return value


def _default_providers() -> dict[str, ProviderSettings]:
    return {
        "qiita": ProviderSettings(enabled=True, page_size=100, delay_range=(0.6, 0.6)),
        "zenn": ProviderSettings(enabled=False, site="zenn.dev", delay_range=(0.3, 0.5)),
        "note": ProviderSettings(enabled=False, site="note.com", delay_range=(0.3, 0.5)),
    }


class HarvesterConfig(BaseModel):
    """Top level configuration document."""

    http: HttpConfig = Field(default_factory=HttpConfig)
    providers: dict[str, ProviderSettings] = Field(default_factory=_default_providers)
    default_max_total: int = 500
    outputs_dir: Path = Field(default=Path("data/outputs"))

    @field_validator("default_max_total")
    @classmethod
    def _positive_total(cls, value: int) -> int:
        if value < 1:
            raise ValueError("default_max_total must be >= 1")
        return value

    @field_validator("outputs_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _fill_missing_providers(self) -> "HarvesterConfig":
        for provider_id, settings in _default_providers().items():
            self.providers.setdefault(provider_id, settings)
        return self

    def settings_for(self, provider_id: str) -> ProviderSettings:
        return self.providers.get(provider_id) or ProviderSettings()

    def enabled_provider_ids(self) -> list[str]:
        return [pid for pid, settings in self.providers.items() if settings.enabled]


__all__ = [
    "DEFAULT_USER_AGENT",
    "HarvesterConfig",
    "HttpConfig",
    "ProviderSettings",
]
