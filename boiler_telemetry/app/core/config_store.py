import json
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from boiler_telemetry.app.core.telemetry_exceptions import ConfigError
from boiler_telemetry.app.schemas.connection import ConnectionConfig
from boiler_telemetry.app.utilities.telemetry import logger


class ConfigStore:
    """Persists the last-used connection parameters as a small JSON record"""

    def __init__(self, path: Union[str, Path] = "config.json"):
        self.path = Path(path)

    def load(self) -> ConnectionConfig:
        """Load the stored config, creating a default empty record if none exists"""
        if not self.path.exists():
            logger.info("No stored connection config, creating default", extra={
                "component": "config_store",
                "path": str(self.path)
            })
            self.save(ConnectionConfig())

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read config file {self.path}: {e}") from e

        try:
            config = ConnectionConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config file {self.path}: {e}") from e

        logger.debug("Connection config loaded", extra={
            "component": "config_store",
            "plant_id": config.plant_id,
            "port": config.port
        })
        return config

    def save(self, config: ConnectionConfig) -> None:
        """Overwrite the stored record with ``config``"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(config.to_record(), f, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to write config file {self.path}: {e}") from e

        logger.debug("Connection config saved", extra={
            "component": "config_store",
            "path": str(self.path)
        })
