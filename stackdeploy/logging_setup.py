"""Logging configuration for the command-line entry point."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(level: str = "INFO"):
    """Configure root logging. Unknown level names fall back to INFO."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    # Connection chatter from the HTTP client is rarely useful
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))
