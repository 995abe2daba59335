"""
Tests for StoreConfig loading and saving.
"""

import json
from datetime import timedelta

import pytest
from pydantic import ValidationError

from docsession.config import DATA_FILE, StoreConfig, load_config


class TestStoreConfig:
    def test_defaults(self) -> None:
        config = StoreConfig()

        assert config.storage_location == str(DATA_FILE)
        assert config.sweep_interval is None
        assert config.collection == "sessions"

    def test_camel_case_and_snake_case_names(self) -> None:
        camel = StoreConfig(storageLocation="/tmp/a.db", sweepInterval=0.5)
        snake = StoreConfig(storage_location="/tmp/a.db", sweep_interval=0.5)

        assert camel == snake
        assert camel.sweep_interval == timedelta(milliseconds=500)

    def test_zero_interval_disables_sweeping(self) -> None:
        assert StoreConfig(sweepInterval=0).sweep_interval is None

    def test_negative_interval_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StoreConfig(sweepInterval=-5)


class TestLoadSave:
    def test_missing_file_gives_defaults(self, tmp_path) -> None:
        assert load_config(tmp_path / "missing.json") == StoreConfig()

    def test_save_then_load(self, tmp_path) -> None:
        path = tmp_path / "conf" / "config.json"
        config = StoreConfig(storageLocation=str(tmp_path / "s.db"), sweepInterval=60)

        config.save(path)

        saved = json.loads(path.read_text())
        assert saved["storageLocation"] == str(tmp_path / "s.db")
        assert saved["sweepInterval"] == 60.0
        assert load_config(path) == config

    def test_unparseable_file_falls_back_to_defaults(self, tmp_path, caplog) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json")

        assert load_config(path) == StoreConfig()
        assert "Config parse error" in caplog.text
