import json
import logging
import logging.handlers
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union


class LogLevel(Enum):
    CRITICAL = logging.CRITICAL
    ERROR = logging.ERROR
    WARNING = logging.WARNING
    INFO = logging.INFO
    DEBUG = logging.DEBUG

    @classmethod
    def parse(cls, value: Union["LogLevel", str, int]) -> "LogLevel":
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, str):
            return cls[value.upper()]
        return cls(value)


class LogFormat(Enum):
    JSON_COMPACT = "json_compact"
    JSON_PRETTY = "json_pretty"
    STANDARD = "standard"
    DETAILED = "detailed"


# Attributes present on every LogRecord; anything else arrived through `extra`
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "plant_id", "port"
}


class PlantContextFilter(logging.Filter):
    """
    Stamps the plant and serial port of the current connection on each record.

    The connection manager updates the context on connect and clears it on
    disconnect, so log lines can be grouped per plant without every call site
    passing the ids explicitly.
    """

    def __init__(self):
        super().__init__()
        self.plant_id: Optional[str] = None
        self.port: Optional[str] = None

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "plant_id"):
            record.plant_id = self.plant_id
        if not hasattr(record, "port"):
            record.port = self.port
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``indent`` switches to pretty output"""

    def __init__(self, indent: Optional[int] = None):
        super().__init__()
        self.indent = indent

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        plant_id = getattr(record, "plant_id", None)
        port = getattr(record, "port", None)
        if plant_id:
            entry["plant_id"] = plant_id
        if port:
            entry["port"] = port

        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES and not k.startswith("_")}
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        separators = (",", ":") if self.indent is None else None
        return json.dumps(entry, ensure_ascii=False, indent=self.indent, separators=separators, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self, detailed: bool = False):
        location = " - %(module)s:%(funcName)s:%(lineno)d" if detailed else ""
        super().__init__(
            fmt=f"%(asctime)s - %(name)s - %(levelname)s{location} - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )


def create_formatter(format_type: LogFormat) -> logging.Formatter:
    if format_type == LogFormat.JSON_PRETTY:
        return JsonFormatter(indent=2)
    if format_type == LogFormat.STANDARD:
        return TextFormatter()
    if format_type == LogFormat.DETAILED:
        return TextFormatter(detailed=True)
    return JsonFormatter()


@dataclass()
class LoggingConfig:
    level: Union[LogLevel, str] = LogLevel.INFO
    format_type: Union[LogFormat, str] = LogFormat.JSON_COMPACT
    logger_name: str = "boiler_telemetry"
    console: bool = True
    log_file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    capture_warnings: bool = True

    def __post_init__(self):
        self.level = LogLevel.parse(self.level)
        self.format_type = LogFormat(self.format_type)

    @classmethod
    def from_settings(cls, settings) -> "LoggingConfig":
        return cls(
            level=settings.log_level,
            format_type=settings.log_format,
            log_file_path=settings.log_file_path
        )


class LoggingManager:
    """Owns the handlers of the service logger tree"""

    def __init__(self):
        self.context = PlantContextFilter()
        self._config: Optional[LoggingConfig] = None

    def configure(self, config: LoggingConfig) -> logging.Logger:
        self._config = config
        logging.captureWarnings(config.capture_warnings)

        root = logging.getLogger(config.logger_name)
        root.setLevel(config.level.value)
        root.propagate = False

        # Reconfiguring replaces handlers instead of stacking them
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

        formatter = create_formatter(config.format_type)
        handlers = []
        if config.console:
            handlers.append(logging.StreamHandler(sys.stdout))
        if config.log_file_path:
            file_path = Path(config.log_file_path)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.handlers.RotatingFileHandler(
                filename=str(file_path),
                maxBytes=config.max_file_size,
                backupCount=config.backup_count,
                encoding="utf-8"
            ))

        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(self.context)
            root.addHandler(handler)

        return root

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        if self._config is None:
            raise RuntimeError("Logging not configured. Call configure() first.")

        base = self._config.logger_name
        if not name or name == base:
            return logging.getLogger(base)
        if not name.startswith(base + "."):
            name = f"{base}.{name}"
        return logging.getLogger(name)

    def set_level(self, level: Union[LogLevel, str], component: Optional[str] = None) -> None:
        self.get_logger(component).setLevel(LogLevel.parse(level).value)

    def set_context(self, plant_id: Optional[str] = None, port: Optional[str] = None) -> None:
        self.context.plant_id = plant_id or None
        self.context.port = port or None


logging_manager = LoggingManager()


def configure_logging(config: LoggingConfig) -> logging.Logger:
    return logging_manager.configure(config)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging_manager.get_logger(name)


def set_log_level(level: Union[LogLevel, str], component: Optional[str] = None) -> None:
    logging_manager.set_level(level, component)


def set_log_context(plant_id: Optional[str] = None, port: Optional[str] = None) -> None:
    logging_manager.set_context(plant_id, port)
