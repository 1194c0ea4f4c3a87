# src/recordshape/core/__init__.py
"""Core infrastructure: Configuration, Logging."""

from recordshape.core.config import DEFAULT_SETTINGS, EnforcerSettings, load_settings
from recordshape.core.logging import configure_logging, get_logger

__all__ = [
    "DEFAULT_SETTINGS",
    "EnforcerSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
]
