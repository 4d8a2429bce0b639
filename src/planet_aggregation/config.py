"""
Configuration management for plnt.

Uses Pydantic for validation and pydantic-settings for environment variable support.
The feed list and planet metadata are read from a YAML file.
"""

import os
import sys
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from planet_aggregation.exceptions import ConfigError
from planet_aggregation.models import FeedConfig

DEFAULT_CONFIG_PATH = "/etc/plnt.yaml"
FALLBACK_CACHE_DIR = "/var/cache"
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def user_cache_dir() -> Optional[Path]:
    """Return the platform user cache directory, or None if it cannot be determined."""
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        return Path(local) if local else None

    if sys.platform == "darwin":
        home = os.environ.get("HOME")
        return Path(home) / "Library" / "Caches" if home else None

    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg)
    home = os.environ.get("HOME")
    return Path(home) / ".cache" if home else None


class CacheConfig(BaseSettings):
    """Feed snapshot cache configuration."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    dir: Optional[str] = Field(default=None, description="Base cache directory")
    subdir: str = Field(default="plnt", description="Directory below the base for snapshots")

    def resolve_dir(self) -> Path:
        """Resolve the base cache directory.

        Priority: configured dir > platform user cache dir > /var/cache.
        """
        if self.dir:
            return Path(self.dir).expanduser()
        return user_cache_dir() or Path(FALLBACK_CACHE_DIR)


class FetcherConfig(BaseSettings):
    """RSS/Atom fetcher configuration."""

    model_config = SettingsConfigDict(env_prefix="FETCHER_")

    timeout_seconds: float = Field(default=30, gt=0, le=300, description="Request timeout")
    user_agent: str = Field(
        default="plnt/0.1.0 (+https://github.com/nnev/plnt)",
        description="User-Agent header",
    )
    follow_redirects: bool = Field(default=True)
    max_workers: int = Field(default=16, ge=1, le=128, description="Maximum concurrent fetches")


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>",
        description="Log format",
    )

    # File logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_path: str = Field(default="logs/plnt.log", description="Log file path")
    rotation: str = Field(default="10 MB", description="Log rotation size")
    retention: str = Field(default="14 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of {list(LOG_LEVELS)}")
        return v


class OutputConfig(BaseSettings):
    """Rendered output configuration."""

    model_config = SettingsConfigDict(env_prefix="OUTPUT_")

    name: str = Field(default="Planet NoName e.V.", description="Planet display name")
    link: str = Field(default="https://planet.example.org/", description="Public planet URL")
    max_items: int = Field(default=30, ge=0, description="Items to render (0=unlimited)")


class FeedSettings(BaseModel):
    """One entry of the feeds mapping in the configuration file."""

    title: str = Field(..., min_length=1, description="Human-readable feed title")
    url: str = Field(..., min_length=1, description="Feed URL")


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PLNT_",
        case_sensitive=False,
    )

    version: str = Field(default="0.1.0", description="Application version")
    app_name: str = Field(default="plnt", description="Application name")

    cache: CacheConfig = Field(default_factory=CacheConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    # Keyed by short name, in file order
    feeds: dict[str, FeedSettings] = Field(default_factory=dict)

    def feed_configs(self) -> list[FeedConfig]:
        """Build the immutable per-feed configurations."""
        return [
            FeedConfig(short_name=short_name, title=feed.title, url=feed.url)
            for short_name, feed in self.feeds.items()
        ]


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def set_config(config: Optional[Config]) -> None:
    """Replace the global configuration instance (None resets it)."""
    global _config
    _config = config


# Top-level YAML keys that map onto nested settings sections.
_SECTION_KEYS = {
    "name": ("output", "name"),
    "link": ("output", "link"),
    "max_items": ("output", "max_items"),
    "cache_dir": ("cache", "dir"),
}

_SECTION_CLASSES = {
    "cache": CacheConfig,
    "fetcher": FetcherConfig,
    "logging": LoggingConfig,
    "output": OutputConfig,
}


def load_config_from_yaml(yaml_path: str) -> Config:
    """Load configuration from a YAML file.

    Besides the nested sections (cache, fetcher, logging, output), the file
    accepts the shorthand top-level keys name, link, max_items and cache_dir.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Config instance loaded from the file.

    Raises:
        ConfigError: If the file is missing or its content is invalid.
    """
    import yaml
    from pydantic import ValidationError

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise ConfigError(f"Configuration file not found: {yaml_path}")

    try:
        with yaml_file.open("r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read configuration file {yaml_path}: {e}") from e

    if not isinstance(config_dict, dict):
        raise ConfigError(f"Configuration file {yaml_path} must contain a mapping")

    sections: dict[str, dict] = {key: {} for key in _SECTION_CLASSES}
    main_config = {}

    for key, value in config_dict.items():
        if key in _SECTION_KEYS:
            section, field = _SECTION_KEYS[key]
            sections[section][field] = value
        elif key in _SECTION_CLASSES:
            if not isinstance(value, dict):
                raise ConfigError(f"Section {key!r} must be a mapping")
            sections[key].update(value)
        else:
            main_config[key] = value

    raw_feeds = main_config.pop("feeds", None) or {}
    if not isinstance(raw_feeds, dict):
        raise ConfigError("'feeds' must be a mapping of short name to {title, url}")

    try:
        # Nested settings are built one by one so env vars can still override them
        for key, config_class in _SECTION_CLASSES.items():
            main_config[key] = config_class(**sections[key])

        main_config["feeds"] = {
            str(short_name): FeedSettings(**(feed or {}))
            for short_name, feed in raw_feeds.items()
        }
        config = Config(**main_config)
        # Validates short names eagerly
        config.feed_configs()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {yaml_path}: {e}") from e

    return config
