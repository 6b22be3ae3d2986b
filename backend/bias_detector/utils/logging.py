"""Logging configuration helpers."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service once at startup."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("bias_detector").setLevel(level.upper())
