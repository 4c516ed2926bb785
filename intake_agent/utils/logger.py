"""Logging configuration for the application."""
import logging
import sys
from pathlib import Path
from intake_agent.config.settings import get_settings

settings = get_settings()

LOG_DIR = Path("logs")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_logger(name: str) -> logging.Logger:
    """Get configured logger instance."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(getattr(logging, settings.log_level))
        formatter = logging.Formatter(LOG_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, settings.log_level))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        # File handler only in development
        if settings.app_env == "development":
            LOG_DIR.mkdir(exist_ok=True)
            file_handler = logging.FileHandler(LOG_DIR / "intake_agent.log")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        logger.propagate = False

    return logger
