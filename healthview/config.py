"""Configuration loader with type-safe dataclasses."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .client import DEFAULT_PAGE_SIZE, DEFAULT_TIMEOUT, DURATIONS
from .preferences import DEFAULT_REFRESH_INTERVAL
from .window import DEFAULT_WINDOW_WIDTH


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


# Minimum refresh interval in seconds.
# The backend aggregates results; polling faster only repeats the same data.
MIN_REFRESH_INTERVAL = 10

# Announcements and auth state change rarely.
MIN_CONFIG_REFRESH_INTERVAL = 60
DEFAULT_CONFIG_REFRESH_INTERVAL = 600

# Upper bound the backend accepts for pageSize.
MAX_PAGE_SIZE = 100

MIN_CHART_WIDTH = 100
DEFAULT_CHART_WIDTH = 800


@dataclass(frozen=True)
class ApiConfig:
    """Configuration for the backend status API."""

    base_url: str
    timeout: int = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigError("API base_url cannot be empty")
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"API base_url must start with http:// or https://, got '{self.base_url}'")
        if self.timeout < 1:
            raise ConfigError(f"API timeout must be at least 1 second, got {self.timeout}")


@dataclass(frozen=True)
class DashboardConfig:
    """Configuration for the dashboard view."""

    max_results: int = DEFAULT_WINDOW_WIDTH  # segments per health bar
    page_size: int = DEFAULT_PAGE_SIZE  # results requested per endpoint
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL  # seconds between status refreshes
    config_refresh_interval: int = DEFAULT_CONFIG_REFRESH_INTERVAL  # seconds between /config refreshes
    dark_mode: bool = False

    def __post_init__(self) -> None:
        if not (1 <= self.max_results <= MAX_PAGE_SIZE):
            raise ConfigError(f"Dashboard max_results must be between 1 and {MAX_PAGE_SIZE}, got {self.max_results}")
        if not (1 <= self.page_size <= MAX_PAGE_SIZE):
            raise ConfigError(f"Dashboard page_size must be between 1 and {MAX_PAGE_SIZE}, got {self.page_size}")
        if self.refresh_interval < MIN_REFRESH_INTERVAL:
            raise ConfigError(
                f"Dashboard refresh_interval must be at least {MIN_REFRESH_INTERVAL} seconds "
                f"(got {self.refresh_interval})"
            )
        if self.config_refresh_interval < MIN_CONFIG_REFRESH_INTERVAL:
            raise ConfigError(
                f"Dashboard config_refresh_interval must be at least {MIN_CONFIG_REFRESH_INTERVAL} seconds "
                f"(got {self.config_refresh_interval})"
            )


@dataclass(frozen=True)
class ChartConfig:
    """Configuration for the response-time chart."""

    width: int = DEFAULT_CHART_WIDTH
    duration: str = "24h"

    def __post_init__(self) -> None:
        if self.width < MIN_CHART_WIDTH:
            raise ConfigError(f"Chart width must be at least {MIN_CHART_WIDTH}, got {self.width}")
        if self.duration not in DURATIONS:
            raise ConfigError(f"Invalid chart duration '{self.duration}'. Must be one of: {DURATIONS}")


@dataclass(frozen=True)
class ViewportConfig:
    """Viewport used for tooltip placement in rendered snapshots."""

    width: int = 1280
    height: int = 800

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ConfigError(f"Viewport must be at least 1x1, got {self.width}x{self.height}")


def _get_default_prefs_path() -> str:
    """Get the default preference store path using XDG-compliant directory.

    Returns ~/.local/share/healthview/prefs.db which is the standard
    location for user-specific data files on Linux/macOS.
    """
    home = Path.home()
    return str(home / ".local" / "share" / "healthview" / "prefs.db")


DEFAULT_PREFS_PATH = _get_default_prefs_path()


@dataclass(frozen=True)
class PreferencesConfig:
    """Configuration for the persisted preference store."""

    path: str = DEFAULT_PREFS_PATH

    def __post_init__(self) -> None:
        if not self.path:
            raise ConfigError("Preferences path cannot be empty")


@dataclass(frozen=True)
class Config:
    """Main configuration container."""

    api: ApiConfig
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    chart: ChartConfig = field(default_factory=ChartConfig)
    viewport: ViewportConfig = field(default_factory=ViewportConfig)
    preferences: PreferencesConfig = field(default_factory=PreferencesConfig)


def _section(data: dict, name: str) -> dict | None:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' section must be a dictionary")
    return value


def _parse_api_config(data: dict | None) -> ApiConfig:
    """Parse API configuration section."""
    if data is None or data.get("base_url") is None:
        raise ConfigError("Configuration must contain 'api.base_url'")

    return ApiConfig(
        base_url=str(data["base_url"]),
        timeout=int(data.get("timeout", DEFAULT_TIMEOUT)),
    )


def _parse_dashboard_config(data: dict | None) -> DashboardConfig:
    """Parse dashboard configuration section."""
    if data is None:
        return DashboardConfig()

    return DashboardConfig(
        max_results=int(data.get("max_results", DEFAULT_WINDOW_WIDTH)),
        page_size=int(data.get("page_size", DEFAULT_PAGE_SIZE)),
        refresh_interval=int(data.get("refresh_interval", DEFAULT_REFRESH_INTERVAL)),
        config_refresh_interval=int(data.get("config_refresh_interval", DEFAULT_CONFIG_REFRESH_INTERVAL)),
        dark_mode=bool(data.get("dark_mode", False)),
    )


def _parse_chart_config(data: dict | None) -> ChartConfig:
    """Parse chart configuration section."""
    if data is None:
        return ChartConfig()

    return ChartConfig(
        width=int(data.get("width", DEFAULT_CHART_WIDTH)),
        duration=str(data.get("duration", "24h")),
    )


def _parse_viewport_config(data: dict | None) -> ViewportConfig:
    if data is None:
        return ViewportConfig()

    return ViewportConfig(
        width=int(data.get("width", 1280)),
        height=int(data.get("height", 800)),
    )


def _parse_preferences_config(data: dict | None) -> PreferencesConfig:
    if data is None:
        return PreferencesConfig()

    return PreferencesConfig(path=str(data.get("path", DEFAULT_PREFS_PATH)))


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Supported overrides:
    - HEALTHVIEW_API_URL: Override api.base_url
    - HEALTHVIEW_API_TIMEOUT: Override api.timeout
    - HEALTHVIEW_MAX_RESULTS: Override dashboard.max_results
    - HEALTHVIEW_PREFS_PATH: Override preferences.path
    - HEALTHVIEW_DARK_MODE: Override dashboard.dark_mode (true/false)
    """
    for section in ("api", "dashboard", "preferences"):
        if config_data.get(section) is None:
            config_data[section] = {}

    api_url = os.environ.get("HEALTHVIEW_API_URL")
    if api_url is not None:
        config_data["api"]["base_url"] = api_url

    api_timeout = os.environ.get("HEALTHVIEW_API_TIMEOUT")
    if api_timeout is not None:
        config_data["api"]["timeout"] = int(api_timeout)

    max_results = os.environ.get("HEALTHVIEW_MAX_RESULTS")
    if max_results is not None:
        config_data["dashboard"]["max_results"] = int(max_results)

    prefs_path = os.environ.get("HEALTHVIEW_PREFS_PATH")
    if prefs_path is not None:
        config_data["preferences"]["path"] = prefs_path

    dark_mode = os.environ.get("HEALTHVIEW_DARK_MODE")
    if dark_mode is not None:
        config_data["dashboard"]["dark_mode"] = dark_mode.lower() in ("true", "1", "yes")

    return config_data


def load_config(config_path: str) -> Config:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary")

    for name in ("api", "dashboard", "chart", "viewport", "preferences"):
        _section(data, name)

    try:
        data = _apply_env_overrides(data)
        return Config(
            api=_parse_api_config(_section(data, "api")),
            dashboard=_parse_dashboard_config(_section(data, "dashboard")),
            chart=_parse_chart_config(_section(data, "chart")),
            viewport=_parse_viewport_config(_section(data, "viewport")),
            preferences=_parse_preferences_config(_section(data, "preferences")),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}")
