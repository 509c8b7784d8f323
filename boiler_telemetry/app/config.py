"""
Configuration management for the boiler telemetry service
"""

import yaml
from typing import Any, Dict, Optional
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

from boiler_telemetry.app.core.telemetry_exceptions import ConfigError
from boiler_telemetry.app.models.register_map import RegisterMapConfig, DEFAULT_REGISTER_MAP, EXTENDED_UNIT_LAYOUT
from boiler_telemetry.app.utilities.telemetry import logger


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    api_title: str = "Boiler Telemetry API"
    api_version: str = "1.0.0"
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Persistence
    connection_config_path: str = "config.json"
    register_map_path: str = "config/register_map.yaml"

    # Polling
    poll_interval: float = 2.0  # seconds
    auto_connect: bool = True
    readings_log_path: Optional[str] = None  # JSON lines output of published readings

    # Logging
    log_level: str = "INFO"
    log_format: str = "json_compact"
    log_file_path: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_prefix="BOILER_", extra="ignore")


settings = Settings()

# Named unit layouts usable from YAML instead of an explicit field list
LAYOUT_PRESETS = {
    "default": DEFAULT_REGISTER_MAP.fields,
    "extended": EXTENDED_UNIT_LAYOUT,
}


def parse_register_map(data: Dict[str, Any]) -> RegisterMapConfig:
    """Build a RegisterMapConfig from the ``register_map`` mapping of a YAML file"""
    options = dict(data)
    layout = options.pop("layout", None)
    if layout is not None and "fields" not in options:
        if layout not in LAYOUT_PRESETS:
            raise ConfigError(f"Unknown register layout '{layout}'. Available: {list(LAYOUT_PRESETS)}")
        options["fields"] = LAYOUT_PRESETS[layout]
        if "words_per_unit" not in options:
            options["words_per_unit"] = len(options["fields"])

    try:
        return RegisterMapConfig(**options)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid register map: {e}") from e


def load_register_map(path: Optional[str] = None) -> RegisterMapConfig:
    """Load the register map from YAML, falling back to the built-in layout"""
    config_file = Path(path or settings.register_map_path)

    if not config_file.exists():
        logger.warning("Register map file not found, using defaults", extra={
            "component": "config",
            "path": str(config_file)
        })
        return DEFAULT_REGISTER_MAP

    try:
        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read register map {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Register map {config_file} must be a mapping")

    register_map = parse_register_map(data.get("register_map", {}) or {})

    logger.info("Register map loaded", extra={
        "component": "config",
        "path": str(config_file),
        "base_address": register_map.base_address,
        "span": register_map.span,
        "unit_count": register_map.unit_count,
        "words_per_unit": register_map.words_per_unit
    })
    return register_map
