"""Tests for configuration loading, validation and the live settings store."""

from __future__ import annotations

import pytest

from justdothething.config.settings import (
    MonitorSettings,
    Settings,
    SettingsStore,
    ValidationError,
    load_settings,
)
from justdothething.domain.models import YellStyle


class TestSettings:
    def test_default_settings(self) -> None:
        settings = Settings()
        assert settings.monitor.check_interval_seconds == 10
        assert settings.monitor.cooldown_seconds == 30
        assert settings.monitor.style is YellStyle.COACH
        assert settings.monitor.use_face_detection is True
        assert settings.server.port == 3000
        assert settings.perception.top_k == 25

    def test_load_settings_missing_file(self, tmp_path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.monitor.check_interval_seconds == 10

    def test_load_settings_from_yaml(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "monitor:\n"
            "  check_interval_seconds: 30\n"
            "  style: drill_sergeant\n"
            "content:\n"
            "  confidence_threshold: 0.7\n"
        )
        settings = load_settings(path)
        assert settings.monitor.check_interval_seconds == 30
        assert settings.monitor.style is YellStyle.DRILL_SERGEANT
        assert settings.content.confidence_threshold == 0.7

    def test_supabase_env_vars_map_to_server(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.supabase_url == "https://example.supabase.co"
        assert settings.server.supabase_anon_key.get_secret_value() == "anon"

    def test_prefixed_env_var_overrides_nested_field(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("JUSTDOTHETHING_SERVER__PORT", "8081")
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.port == 8081


class TestMonitorSettingsValidation:
    @pytest.mark.parametrize("interval", [5, 10, 15, 30, 60, 120, 300])
    def test_allowed_intervals(self, interval: int) -> None:
        assert MonitorSettings(check_interval_seconds=interval).check_interval_seconds == interval

    @pytest.mark.parametrize("field,value", [
        ("check_interval_seconds", 7),
        ("cooldown_seconds", 45),
        ("style", "pirate"),
    ])
    def test_rejects_values_outside_allowed_sets(self, field: str, value: object) -> None:
        with pytest.raises(ValidationError):
            MonitorSettings(**{field: value})


class TestSettingsStore:
    def test_update_notifies_listeners(self) -> None:
        store = SettingsStore()
        seen = []
        store.subscribe(lambda old, new: seen.append((old.cooldown_seconds, new.cooldown_seconds)))
        store.update(cooldown_seconds=60)
        assert store.current.cooldown_seconds == 60
        assert seen == [(30, 60)]

    def test_unchanged_update_is_silent(self) -> None:
        store = SettingsStore()
        seen = []
        store.subscribe(lambda old, new: seen.append(new))
        store.update(cooldown_seconds=30)
        assert seen == []

    def test_invalid_update_keeps_current(self) -> None:
        store = SettingsStore()
        with pytest.raises(ValidationError):
            store.update(check_interval_seconds=7)
        assert store.current.check_interval_seconds == 10

    def test_cancelled_subscription_stops_notifications(self) -> None:
        store = SettingsStore()
        seen = []
        sub = store.subscribe(lambda old, new: seen.append(new))
        sub.cancel()
        sub.cancel()
        store.update(style="friendly")
        assert seen == []
        assert sub.active is False

    def test_failing_listener_does_not_block_others(self) -> None:
        store = SettingsStore()
        seen = []

        def broken(old, new):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda old, new: seen.append(new.style))
        store.update(style="friendly")
        assert seen == [YellStyle.FRIENDLY]
