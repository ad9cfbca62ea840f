"""Per-module file loggers; the terminal is left to the player UI."""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

LOG_PATH = os.getenv(
    "STATIONBAR_LOG_PATH",
    os.path.join(os.path.expanduser("~"), ".cache", "stationbar", "stationbar.log"),
)


def setup_logger(name: str, log_path: str | None = None) -> logging.Logger:
    """Return the logger ``name``, attaching a DEBUG file handler on first use."""
    logger = logging.getLogger(name)
    if log_path is None:
        log_path = LOG_PATH
    if not logger.handlers:
        if os.path.dirname(log_path):
            os.makedirs(os.path.dirname(log_path), exist_ok=True)
        handler = logging.FileHandler(log_path)
        formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
        handler.setFormatter(formatter)
        logger.setLevel(logging.DEBUG)
        logger.addHandler(handler)
        logger.propagate = False
    return logger
