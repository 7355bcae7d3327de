"""
Utilities package for the market maker.

This package provides the logging system: a category-aware logger adapter,
JSON and colored formatters, and console/rotating-file handlers.

Example Usage:
    from market_maker.utils import get_logger, setup_logging

    setup_logging({'level': 'DEBUG'})
    logger = get_logger('market_maker.bot')
    logger.log_cycle_event({'event_type': 'started', 'wallet_id': 'w1'})
"""

from .logger import (
    setup_logging,
    get_logger,
    shutdown_logging,
    LoggerAdapter,
    LoggerManager,
    LogCategory,
)

from .log_formatter import (
    JsonFormatter,
    ColoredFormatter,
    CompactFormatter,
)

from .log_handlers import (
    ColoredConsoleHandler,
    SizeRotatingFileHandler,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'shutdown_logging',
    'LoggerAdapter',
    'LoggerManager',
    'LogCategory',
    'JsonFormatter',
    'ColoredFormatter',
    'CompactFormatter',
    'ColoredConsoleHandler',
    'SizeRotatingFileHandler',
]
