import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from knowthepast.core.config import Settings, settings

APP_LOGGER = "KNOW-THE-PAST"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: Settings = settings, log_directory: str = "logs", log_file: str = "app.log") -> logging.Logger:
    """
    Attach the file and console handlers to the application logger once.
    Component loggers are children of it and propagate their records up,
    so `KNOW-THE-PAST.map` can be raised or silenced on its own.
    """
    root = logging.getLogger(APP_LOGGER)
    root.setLevel(config.LOGGER)
    if root.handlers:
        return root

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    try:
        os.makedirs(log_directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(os.path.abspath(log_directory), log_file),
            backupCount=5, maxBytes=1024 * 1024 * 10, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    except OSError as e:
        root.warning(f"File logging disabled: {str(e)}")

    return root


class ComponentLogger:
    """`log(level, message, extra)` front for one component's logger."""

    def __init__(self, component: Optional[str] = None):
        self.name = f"{APP_LOGGER}.{component}" if component else APP_LOGGER
        self.logger = logging.getLogger(self.name)

    def log(self, level: int, message: str, extra: dict = None):
        if extra:
            message = f"{message} | {extra}"
        self.logger.log(level, message)


def get_logger(component: Optional[str] = None) -> ComponentLogger:
    configure_logging()
    return ComponentLogger(component)


logs = get_logger()
