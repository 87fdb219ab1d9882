import logging
import os
from logging.handlers import RotatingFileHandler

from rgaa_scanner.platform.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _log_file_path() -> str:
    log_dir = os.path.abspath(settings.LOG_DIR)
    os.makedirs(log_dir, exist_ok=True)
    return os.path.join(log_dir, "rgaa_scanner.log")


def configure_logging(level: int = logging.INFO) -> None:
    """Root configuration used by the API process and the Celery worker."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO, which drowns the crawl logs
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str):
    """
    Creates a logger instance that writes to console AND a rotating file.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(_log_file_path(), maxBytes=10_000_000, backupCount=5)
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.INFO)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    # handlers are attached here, don't duplicate records through the root logger
    logger.propagate = False

    return logger
