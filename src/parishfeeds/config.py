"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (PARISHFEEDS__FACEBOOK__PAGE_TOKEN=...)
  2. parishfeeds.yaml       (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional. Missing credentials or feed URLs never fail
startup; the corresponding feed reports itself disabled instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("parishfeeds")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "settings.db")


def _find_config_file() -> str | None:
    """Return the path of the first parishfeeds.yaml found, or None."""
    candidates = [
        Path("parishfeeds.yaml"),
        Path(platformdirs.user_config_dir("parishfeeds")) / "parishfeeds.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 5000


class AdminSettings(BaseModel):
    # Empty means a random key is generated at startup and logged once.
    auth_key: str = ""


class FacebookSettings(BaseModel):
    page_token: str = ""
    page_slug: str = "wislajawornik"
    graph_url: str = "https://graph.facebook.com/v21.0"
    timeout_seconds: float = 10.0


class YouTubeSettings(BaseModel):
    channel_id: str = "UCYwTmxRhm2hZDWkeEZngc4g"
    feed_url: str = "https://www.youtube.com/feeds/videos.xml"
    channel_title: str = "Parafia EA Wisła Jawornik"
    timeout_seconds: float = 10.0


class CalendarSettings(BaseModel):
    ical_url: str = (
        "https://calendar.google.com/calendar/ical/peajawornik%40gmail.com/public/basic.ics"
    )
    timezone: str = "Europe/Warsaw"
    timeout_seconds: float = 15.0


class VerseSettings(BaseModel):
    api_key: str = ""
    url: str = "https://biblianacodzien.pl/bncd/api/open-node/"
    timeout_seconds: float = 8.0


class StoreSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PARISHFEEDS__SERVER__PORT=9090
        env_prefix="PARISHFEEDS__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    admin: AdminSettings = AdminSettings()
    facebook: FacebookSettings = FacebookSettings()
    youtube: YouTubeSettings = YouTubeSettings()
    calendar: CalendarSettings = CalendarSettings()
    verse: VerseSettings = VerseSettings()
    store: StoreSettings = StoreSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
