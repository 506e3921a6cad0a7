"""Settings file tests."""

from datetime import date

import pytest
from pydantic import ValidationError

from src.config import (
    EmailConfig,
    Settings,
    SettingsError,
    load_settings,
    resolve_current_year,
    save_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("EMAILJS_SERVICE_ID", "EMAILJS_TEMPLATE_ID", "EMAILJS_PUBLIC_KEY", "SECRET_SANTA_YEAR"):
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:

    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "settings.yaml")

        assert settings.max_attempts == 1000
        assert settings.years_to_avoid == 2
        assert settings.year_override is None
        assert settings.email.delay_seconds == 0.5

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("", encoding="utf-8")

        assert load_settings(path) == Settings()

    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "settings.yaml"
        settings = Settings(
            years_to_avoid=3,
            year_override=2025,
            email=EmailConfig(service_id="svc", template_id="tpl", public_key="key"),
        )

        save_settings(settings, path)

        assert load_settings(path) == settings

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        save_settings(Settings(email=EmailConfig(service_id="file")), path)
        monkeypatch.setenv("EMAILJS_SERVICE_ID", "env")
        monkeypatch.setenv("SECRET_SANTA_YEAR", "2030")

        settings = load_settings(path)

        assert settings.email.service_id == "env"
        assert settings.year_override == 2030
        assert load_settings(path, apply_env=False).email.service_id == "file"

    def test_year_override_out_of_range(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("year_override: 1999\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            load_settings(path)

    def test_year_env_must_be_a_number(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SECRET_SANTA_YEAR", "next")

        with pytest.raises(SettingsError, match="SECRET_SANTA_YEAR"):
            load_settings(tmp_path / "settings.yaml")

    @pytest.mark.parametrize("value", ["1999", "2101"])
    def test_year_env_out_of_range(self, tmp_path, monkeypatch, value):
        monkeypatch.setenv("SECRET_SANTA_YEAR", value)

        with pytest.raises(SettingsError, match="between 2000 and 2100"):
            load_settings(tmp_path / "settings.yaml")

    def test_invalid_year_env_ignored_without_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SECRET_SANTA_YEAR", "next")

        assert load_settings(tmp_path / "settings.yaml", apply_env=False).year_override is None


class TestResolveCurrentYear:

    def test_calendar_year_by_default(self):
        assert resolve_current_year(Settings(), today=date(2026, 12, 1)) == 2026

    def test_override_wins(self):
        assert resolve_current_year(Settings(year_override=2024), today=date(2026, 1, 1)) == 2024
