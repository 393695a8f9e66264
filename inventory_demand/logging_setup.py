# inventory_demand/logging_setup.py
# ---------------------------------
# Responsibility:
# - Configure the package logger once (level and format from settings)

import logging
from typing import Optional

from .config import Settings, settings as default_settings

PACKAGE_LOGGER = "inventory_demand"


def setup_logging(app_settings: Optional[Settings] = None) -> logging.Logger:
    """
    Configure the package logger with a single console handler.

    Calling it again only updates the level and formatter.

    Args:
        app_settings: Settings to read log level/format from (default: global settings)

    Returns:
        logging.Logger: The configured package logger
    """
    app_settings = app_settings or default_settings

    logger = logging.getLogger(PACKAGE_LOGGER)
    level = getattr(logging, app_settings.log_level.upper(), logging.INFO)
    logger.setLevel(level)

    formatter = logging.Formatter(app_settings.log_format)
    handler = next(
        (h for h in logger.handlers if getattr(h, "_inventory_demand", False)),
        None,
    )
    if handler is None:
        handler = logging.StreamHandler()
        handler._inventory_demand = True
        logger.addHandler(handler)
    handler.setFormatter(formatter)

    return logger
