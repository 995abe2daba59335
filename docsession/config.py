"""
docsession Configuration
========================

Pydantic configuration for the session store.
Reads from ~/.docsession/config.json unless another path is given.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".docsession"
CONFIG_FILE = CONFIG_DIR / "config.json"
DATA_FILE = CONFIG_DIR / "sessions.db"
LOG_FILE = CONFIG_DIR / "docsession.log"


class StoreConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    storage_location: str = Field(default=str(DATA_FILE), alias="storageLocation")
    sweep_interval: timedelta | None = Field(default=None, alias="sweepInterval")
    collection: str = "sessions"

    @field_validator("sweep_interval")
    @classmethod
    def _disable_zero_interval(cls, v: timedelta | None) -> timedelta | None:
        if v is None:
            return None
        if v < timedelta(0):
            raise ValueError("sweepInterval must not be negative")
        return v or None

    def save(self, path: str | Path = CONFIG_FILE) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(by_alias=True)
        if self.sweep_interval is not None:
            data["sweepInterval"] = self.sweep_interval.total_seconds()
        path.write_text(json.dumps(data, indent=2))
        logger.info("Config saved to %s", path)

    @classmethod
    def load(cls, path: str | Path = CONFIG_FILE) -> StoreConfig:
        path = Path(path)
        if path.exists():
            try:
                return cls(**json.loads(path.read_text()))
            except Exception as e:
                logger.warning("Config parse error, using defaults: %s", e)
        return cls()


def load_config(path: str | Path = CONFIG_FILE) -> StoreConfig:
    return StoreConfig.load(path)
