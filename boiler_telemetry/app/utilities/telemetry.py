"""
Shared service logger.

Modules log through ``logger`` with ``extra={"component": ...}``; the runtime
reconfigures level, format and file output from settings at startup.
"""

import logging
from typing import Optional

from boiler_telemetry.app.utilities.logging_config import (
    LoggingConfig,
    configure_logging,
    get_logger,
    set_log_context,
    set_log_level,
)


def initialize_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    configure_logging(config or LoggingConfig())
    return get_logger()


# Usable on import, before settings are applied
logger = initialize_logging()

__all__ = ["logger", "get_logger", "initialize_logging", "set_log_context", "set_log_level"]
