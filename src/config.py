"""Configuration management for the Secret Santa organizer."""

import os
from datetime import date
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

# Default paths
DATA_DIR = Path(__file__).parent.parent / "data"
DEFAULT_SETTINGS_PATH = DATA_DIR / "settings.yaml"
DEFAULT_DB_PATH = DATA_DIR / "secret_santa.db"
LOG_PATH = DATA_DIR / "secret_santa.log"

MIN_YEAR = 2000
MAX_YEAR = 2100

# Environment variables that override the settings file
ENV_OVERRIDES = {
    "EMAILJS_SERVICE_ID": ("email", "service_id"),
    "EMAILJS_TEMPLATE_ID": ("email", "template_id"),
    "EMAILJS_PUBLIC_KEY": ("email", "public_key"),
}
YEAR_ENV = "SECRET_SANTA_YEAR"


class EmailConfig(BaseModel):
    """EmailJS credentials and sending behaviour."""

    service_id: str = Field("", description="EmailJS service id")
    template_id: str = Field("", description="EmailJS template id")
    public_key: str = Field("", description="EmailJS public key")
    delay_seconds: float = Field(0.5, ge=0.0, description="Pause between emails")


class Settings(BaseModel):
    """Organizer settings."""

    max_attempts: int = Field(1000, ge=1, description="Shuffles to try before giving up")
    years_to_avoid: int = Field(2, ge=0, description="Years a pairing may not repeat for")
    year_override: Optional[int] = Field(
        None, ge=MIN_YEAR, le=MAX_YEAR, description="Draw year if not the calendar year"
    )
    email: EmailConfig = Field(default_factory=EmailConfig)


class SettingsError(ValueError):
    """Raised when a settings value taken from the environment is invalid."""


def ensure_data_dir() -> None:
    """Ensure the data directory exists."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def _apply_env_overrides(data: dict) -> dict:
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data.setdefault(section, {})[key] = value

    year = os.environ.get(YEAR_ENV)
    if year:
        try:
            data["year_override"] = int(year)
        except ValueError:
            raise SettingsError(f"{YEAR_ENV} must be a year, got {year!r}") from None
        if not MIN_YEAR <= data["year_override"] <= MAX_YEAR:
            raise SettingsError(f"{YEAR_ENV} must be between {MIN_YEAR} and {MAX_YEAR}, got {year}")

    return data


def load_settings(path: Optional[Path] = None, apply_env: bool = True) -> Settings:
    """Load settings from YAML file.

    Args:
        path: Optional path to settings file. Defaults to data/settings.yaml.
        apply_env: Whether environment variables override file values.

    Returns:
        Settings instance. Returns defaults if the file doesn't exist.

    Raises:
        SettingsError: If an environment override is invalid
        ValidationError: If a file value is out of range
    """
    if path is None:
        path = DEFAULT_SETTINGS_PATH

    data = None
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    data = data or {}
    if apply_env:
        data = _apply_env_overrides(data)

    return Settings.model_validate(data)


def save_settings(settings: Settings, path: Optional[Path] = None) -> Path:
    """Save settings to YAML file.

    Args:
        settings: Settings instance to save.
        path: Optional path to save to. Defaults to data/settings.yaml.

    Returns:
        Path where settings were saved.
    """
    if path is None:
        path = DEFAULT_SETTINGS_PATH

    path.parent.mkdir(parents=True, exist_ok=True)

    # Convert to dict, excluding None values for cleaner YAML
    data = settings.model_dump(mode="json", exclude_none=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    return path


def resolve_current_year(settings: Settings, today: Optional[date] = None) -> int:
    """Return the draw year: the override if set, otherwise the calendar year."""
    if settings.year_override is not None:
        return settings.year_override
    return (today or date.today()).year
