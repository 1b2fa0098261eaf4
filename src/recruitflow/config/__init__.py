"""Configuration management utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import AppConfig, load_config


class ConfigManager:
    """YAML-backed configuration loader validating against ``AppConfig``."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def path_for(self, name: str) -> Path:
        return self._base_path / f"{name}.yaml"

    def load_raw(self, name: str) -> Any:
        """Load a YAML configuration by name without file extension."""
        with self.path_for(name).open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle)

    def load(self, name: str) -> AppConfig:
        return load_config(self.load_raw(name) or {})

    @classmethod
    def load_file(cls, path: str | Path) -> AppConfig:
        path = Path(path)
        return cls(path.parent).load(path.stem)


__all__ = ["ConfigManager", "AppConfig", "load_config"]
