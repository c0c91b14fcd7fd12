"""Application configuration utilities."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, Field

_ENV_OVERRIDES = {
    "NURSERY_EVENT_STORE_URL": "event_store_url",
    "NURSERY_EVENT_STORE_TOKEN": "event_store_token",
    "NURSERY_DATABASE_PATH": "database_path",
}


class AppConfig(BaseModel):
    """Strongly typed configuration loaded from config.json."""

    event_store_url: str = Field(default="http://localhost:8000")
    event_store_token: str = Field(default="")
    event_store_timeout: float = Field(default=15.0, gt=0)
    database_path: str = Field(default="./data/nursery.db")
    page_limit: int = Field(default=1000, ge=1)

    @property
    def resolved_database_path(self) -> Path:
        """Return the absolute path for the SQLite database file."""
        path = Path(self.database_path)
        if path.is_absolute():
            return path
        return (Path(__file__).resolve().parents[1] / path).resolve()


def _config_path() -> Path:
    return Path(__file__).resolve().parents[1] / "config.json"


def load_config() -> AppConfig:
    """Load configuration from config.json, then apply environment overrides.

    A missing config.json is not an error: every field has a default and the
    event store location usually comes from the environment.
    """

    contents: Dict[str, Any] = {}
    config_file = _config_path()
    if config_file.exists():
        contents = json.loads(config_file.read_text())

    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            contents[field_name] = value
    return AppConfig(**contents)


CONFIG = load_config()
