"""
Wouch: Logging Setup

This module provides centralised logging configuration and helper
functions for obtaining namespaced loggers.

Key responsibilities:
- Configure root logging handlers and formats
- Tag every record with the deployment environment
- Keep subject-level DEBUG output out of production
- Provide a helper to obtain module-specific loggers

Engine modules log subject keys and answer outcomes at DEBUG. In the
``production`` environment the effective level never drops below INFO,
whatever ``LOG_LEVEL`` says. An empty ``LOG_FILE`` disables the file
handler so containerised deployments log to stdout only.

External dependencies:
- logging: Python standard library logging framework

Database tables accessed:
- None (logging only)

Thread safety: Thread-safe (logging module is process-global and
thread-safe under normal usage)

Author: Wouch Team
Created: 2025-11-24
Last Modified: 2025-12-08
Status: Development
Version: v0.2.0
"""

# ============================================================================
# Imports
# ============================================================================

from __future__ import annotations

import logging
import sys
from typing import Optional

from wouch.core.config import WouchConfig, get_config

# ============================================================================
# Constants
# ============================================================================

PRODUCTION_ENVIRONMENT = "production"

# Migration tooling is chatty at INFO.
_QUIET_LOGGERS = ("alembic", "sqlalchemy.engine")


# ============================================================================
# Public API
# ============================================================================


def resolve_log_level(config: WouchConfig) -> int:
    """Return the numeric level for ``config``.

    Unknown level names fall back to INFO. Production is floored at INFO.
    """

    level = getattr(logging, config.log_level.upper(), None)
    if not isinstance(level, int):
        level = logging.INFO
    if config.environment.lower() == PRODUCTION_ENVIRONMENT:
        level = max(level, logging.INFO)
    return level


def setup_logging(config: Optional[WouchConfig] = None) -> None:
    """Configure application-wide logging.

    Initialises the root logger and the ``wouch`` namespace logger. It is
    idempotent: calling it multiple times will not attach duplicate
    handlers.

    Args:
        config: Optional configuration object. If omitted, the global
            configuration will be loaded via :func:`get_config`.
    """

    if config is None:
        config = get_config()

    root_logger = logging.getLogger()

    if root_logger.handlers:
        return

    log_level = resolve_log_level(config)

    formatter = logging.Formatter(
        fmt=f"%(asctime)s - {config.environment} - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(log_level)

    wouch_logger = logging.getLogger("wouch")
    wouch_logger.setLevel(log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Return a namespaced logger for the given module.

    Args:
        name: Module-level ``__name__`` or any descriptive logger name.

    Returns:
        A :class:`logging.Logger` instance under the ``wouch`` namespace.
    """

    setup_logging()
    if name == "wouch" or name.startswith("wouch."):
        return logging.getLogger(name)
    return logging.getLogger(f"wouch.{name}")
