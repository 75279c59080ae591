"""Configuration loading helpers for the harvester."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import HarvesterConfig

CONFIG_FILENAME = "config.yaml"
HOME_ENV_VAR = "ARTICLE_HARVESTER_HOME"
QIITA_TOKEN_ENV_VAR = "QIITA_ACCESS_TOKEN"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from the harvester home directory."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV_VAR)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path.cwd()).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.logs_dir = (root / "logs").resolve()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: HarvesterConfig | None = None

    def load(self) -> HarvesterConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            config = HarvesterConfig.model_validate(_read_file(path))
        else:
            config = HarvesterConfig()
        config = self._apply_environment(config)
        if not config.outputs_dir.is_absolute():
            config = config.model_copy(
                update={"outputs_dir": self.locator.project_root / config.outputs_dir}
            )
        self._cache = config
        return config

    def save(self, config: HarvesterConfig) -> Path:
        self.locator.ensure_directories()
        path = self.locator.config_path()
        _write_file(path, config.model_dump(mode="json", exclude_none=True))
        self._cache = None
        return path

    @staticmethod
    def _apply_environment(config: HarvesterConfig) -> HarvesterConfig:
        token = os.environ.get(QIITA_TOKEN_ENV_VAR)
        if not token:
            return config
        qiita = config.settings_for("qiita").model_copy(update={"access_token": token})
        providers = dict(config.providers)
        providers["qiita"] = qiita
        return config.model_copy(update={"providers": providers})


__all__ = [
    "CONFIG_FILENAME",
    "ConfigLocator",
    "ConfigRepository",
    "HOME_ENV_VAR",
    "QIITA_TOKEN_ENV_VAR",
]
