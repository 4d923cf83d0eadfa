"""Tests for settings loading and store retry behaviour."""

from __future__ import annotations

from pathlib import Path

import pytest

from mealtrack.config import Settings
from mealtrack.db.connection import retry_transient
from mealtrack.errors import TransientStoreError


class TestSettings:
    """Tests for YAML settings."""

    def test_defaults_when_missing(self, tmp_path):
        settings = Settings.load(tmp_path / "nope.yaml")
        assert settings.defaults.user_id == 1
        assert settings.tracking.strict_units is False
        assert settings.logging.level == "WARNING"

    def test_partial_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "tracking:\n  strict_units: true\nlogging:\n  level: debug\n"
            "database:\n  path: /tmp/x/meals.db\n"
        )
        settings = Settings.load(path)
        assert settings.tracking.strict_units is True
        assert settings.logging.level == "DEBUG"
        assert settings.database.path == Path("/tmp/x/meals.db")
        assert settings.store.read_retries == 3

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert Settings.load(path).defaults.output_format == "table"

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "sub" / "config.yaml"
        settings = Settings()
        settings.store.read_retries = 5
        settings.defaults.user_id = 42
        settings.save(path)

        loaded = Settings.load(path)
        assert loaded.store.read_retries == 5
        assert loaded.defaults.user_id == 42


class TestRetryTransient:
    """Tests for read retries."""

    def test_retries_then_succeeds(self):
        calls = []
        sleeps = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise TransientStoreError("database is locked")
            return "ok"

        assert retry_transient(flaky, attempts=3, backoff=0.1, sleep=sleeps.append) == "ok"
        assert len(calls) == 3
        assert sleeps == [0.1, 0.2]

    def test_gives_up(self):
        def always_busy():
            raise TransientStoreError("database is locked")

        with pytest.raises(TransientStoreError) as exc_info:
            retry_transient(always_busy, attempts=2, backoff=0, sleep=lambda s: None)
        assert exc_info.value.retryable

    def test_other_errors_not_retried(self):
        calls = []

        def broken():
            calls.append(1)
            raise ValueError("boom")

        with pytest.raises(ValueError):
            retry_transient(broken, attempts=3, sleep=lambda s: None)
        assert len(calls) == 1


def test_reload_settings_reads_home_config(tmp_path, monkeypatch):
    from mealtrack.config import get_settings, reload_settings

    monkeypatch.setenv("HOME", str(tmp_path))
    config_dir = tmp_path / ".mealtrack"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text("defaults:\n  user_id: 9\n")
    try:
        assert reload_settings().defaults.user_id == 9
        assert get_settings().defaults.user_id == 9
    finally:
        monkeypatch.undo()
        reload_settings()
