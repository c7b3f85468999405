"""Configuration module for devtrack."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Self

from devtrack.database.connection import DATABASE_FILENAME


def _default_data_dir() -> Path:
    return Path.home() / ".devtrack"


@dataclass
class ScannerConfig:
    max_path_length: int = 4096
    command_timeout: float = 60.0
    recent_commit_limit: int = 10


@dataclass
class AiConfig:
    base_url: str = "https://api.x.ai/v1"
    model: str = "grok-beta"
    api_key: str | None = None
    timeout: float = 60.0
    temperature: float = 0.7
    max_tokens: int = 2048


@dataclass
class Config:
    data_dir: Path = field(default_factory=_default_data_dir)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    ai: AiConfig = field(default_factory=AiConfig)

    @property
    def database_path(self) -> Path:
        return self.data_dir / DATABASE_FILENAME

    @classmethod
    def from_env(cls) -> Self:
        config = cls()
        data_dir = os.environ.get("DEVTRACK_DATA_DIR")
        if data_dir:
            config.data_dir = Path(data_dir).expanduser()
        config.ai.api_key = os.environ.get("DEVTRACK_AI_API_KEY") or None
        config.ai.base_url = os.environ.get("DEVTRACK_AI_BASE_URL", config.ai.base_url)
        config.ai.model = os.environ.get("DEVTRACK_AI_MODEL", config.ai.model)
        return config
