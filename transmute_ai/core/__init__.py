"""
Core utilities and configuration for transmute-ai.

This package provides settings, logging configuration and optional Logfire
monitoring shared by every other subpackage.
"""

from transmute_ai.core.config import Settings, settings
from transmute_ai.core.logging_config import get_logger, setup_logging

__all__ = ["Settings", "get_logger", "settings", "setup_logging"]
