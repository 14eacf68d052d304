"""Logging utilities for the ratebook package."""

from __future__ import annotations

import logging

PACKAGE_LOGGER = "ratebook"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def _configure_package_logger() -> None:
    """Give the ``ratebook`` logger a stream handler unless the host already logs.

    Hosts that configured the root logger before the first call keep full
    control; records simply propagate to their handlers.
    """

    package = logging.getLogger(PACKAGE_LOGGER)
    if package.level == logging.NOTSET:
        package.setLevel(logging.INFO)
    if not package.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package.addHandler(handler)
        package.propagate = False


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Return a logger inside the ``ratebook`` namespace.

    Names outside the namespace are nested under it, so every record the
    package emits goes through the package logger.
    """

    global _configured
    if not _configured:
        _configure_package_logger()
        _configured = True
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
