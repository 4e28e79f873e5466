# crowdsafe/config/log.py
import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level=None):
    """Configure root logging once per process (LOG_LEVEL, default INFO)."""
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        level=getattr(logging, name, logging.INFO),
    )
    return logging.getLogger("crowdsafe")
