"""
Logging system for the market maker.

This module provides structured, category-based logging on top of the
standard library ``logging`` package.

Example Usage:
    from market_maker.utils import get_logger, setup_logging
    from market_maker.config import load_config

    # Setup logging
    config = load_config('config/config.yaml')
    setup_logging(config.logging)

    # Get logger
    logger = get_logger('market_maker.bot')

    # Log with context
    logger.info("Cycle completed", extra={
        'category': 'BOT',
        'data': {'wallet_id': 'w1', 'cycles_completed': 3}
    })

    # Log a swap leg
    logger.log_trade(record.to_dict())
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .log_formatter import (
    JsonFormatter,
    ColoredFormatter,
    CompactFormatter,
)
from .log_handlers import (
    ColoredConsoleHandler,
    SizeRotatingFileHandler,
)


class LogCategory(Enum):
    """Log categories for organizing log output."""
    TRADING = "TRADING"
    BOT = "BOT"
    RECYCLE = "RECYCLE"
    BALANCE = "BALANCE"
    SYSTEM = "SYSTEM"
    GENERAL = "GENERAL"


class LoggerAdapter(logging.LoggerAdapter):
    """
    Custom logger adapter that adds correlation ID and category support.

    Provides convenient methods for logging with context and
    category-specific logging methods.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})
        self._correlation_id = None

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if 'extra' not in kwargs or kwargs['extra'] is None:
            kwargs['extra'] = {}

        if self._correlation_id and 'correlation_id' not in kwargs['extra']:
            kwargs['extra']['correlation_id'] = self._correlation_id

        for key, value in self.extra.items():
            if key not in kwargs['extra']:
                kwargs['extra'][key] = value

        return msg, kwargs

    def bind(self, **extra) -> 'LoggerAdapter':
        """
        Return a child adapter carrying additional default fields.

        Example:
            bot_logger = logger.bind(wallet_id=wallet.id)
            bot_logger.info("Executing buy transaction...")
        """
        merged = dict(self.extra)
        merged.update(extra)
        child = LoggerAdapter(self.logger, merged)
        child._correlation_id = self._correlation_id
        return child

    @contextmanager
    def correlation_context(self, correlation_id: Optional[str] = None):
        """
        Context manager for correlation ID scope.

        Args:
            correlation_id: Correlation ID (generates UUID if None)

        Example:
            with logger.correlation_context():
                logger.info("Executing trade cycle")
                # All logs in this block have the same correlation ID
        """
        old_id = self._correlation_id
        self._correlation_id = correlation_id or str(uuid.uuid4())
        try:
            yield self._correlation_id
        finally:
            self._correlation_id = old_id

    # Category-specific logging methods
    def log_trade(self, trade_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """
        Log a swap leg outcome.

        Args:
            trade_data: Transaction record dictionary
            msg: Optional message
            level: Log level
        """
        if not msg:
            msg = f"Trade: {trade_data.get('type', 'unknown')} {trade_data.get('amount', 'unknown')}"

        self.log(level, msg, extra={
            'category': LogCategory.TRADING.value,
            'trade_data': trade_data
        })

    def log_cycle_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """Log a bot lifecycle or cycle event."""
        if not msg:
            msg = f"Bot: {event_data.get('event_type', 'unknown')}"

        self.log(level, msg, extra={
            'category': LogCategory.BOT.value,
            'cycle_data': event_data
        })

    def log_recycle_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """Log a wallet recycle event."""
        if not msg:
            msg = f"Recycle: {event_data.get('wallet_id', 'unknown')}"

        self.log(level, msg, extra={
            'category': LogCategory.RECYCLE.value,
            'recycle_data': event_data
        })

    def log_balance_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.WARNING) -> None:
        """Log a balance check event, usually a low balance warning."""
        if not msg:
            msg = f"Balance: {event_data.get('balance', 'unknown')}"

        self.log(level, msg, extra={
            'category': LogCategory.BALANCE.value,
            'balance_data': event_data
        })

    def log_system_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """Log a system event."""
        if not msg:
            msg = f"System: {event_data.get('event_type', 'unknown')}"

        self.log(level, msg, extra={
            'category': LogCategory.SYSTEM.value,
            'system_data': event_data
        })


class LoggerManager:
    """
    Manager for the logging system.

    Handles initialization, configuration, and lifecycle of loggers.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Singleton pattern for LoggerManager."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._initialized = True
        self._loggers: Dict[str, LoggerAdapter] = {}
        self._handlers: List[logging.Handler] = []
        self._setup_done = False

    def setup_logging(self, config: Optional[Any] = None) -> None:
        """
        Setup the logging system with configuration.

        Args:
            config: A LoggingSettings model or a plain dictionary with the
                same keys (level, console, colors, file, file_path, json_file)
        """
        if self._setup_done:
            return

        log_config = self._as_dict(config)

        root = logging.getLogger()
        root.setLevel(self._get_log_level(log_config.get('level', 'INFO')))
        root.handlers = []

        if log_config.get('console', True):
            self._setup_console_handler(log_config)

        if log_config.get('file', False):
            self._setup_file_handler(log_config)

        self._setup_done = True

        logger = self.get_logger('market_maker.system')
        logger.log_system_event({
            'event_type': 'logging_initialized',
            'level': log_config.get('level', 'INFO'),
            'console': log_config.get('console', True),
            'file': log_config.get('file', False),
        }, msg="Logging system initialized")

    @staticmethod
    def _as_dict(config: Optional[Any]) -> Dict[str, Any]:
        if config is None:
            return {}
        if hasattr(config, 'model_dump'):
            return config.model_dump(mode='json')
        return dict(config)

    def _get_log_level(self, level: Union[str, int]) -> int:
        """Convert log level string to constant."""
        if isinstance(level, int):
            return level

        levels = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL
        }
        return levels.get(str(level).upper(), logging.INFO)

    def _setup_console_handler(self, config: Dict[str, Any]) -> None:
        handler = ColoredConsoleHandler()
        handler.setFormatter(ColoredFormatter(use_colors=config.get('colors', True)))
        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    def _setup_file_handler(self, config: Dict[str, Any]) -> None:
        handler = SizeRotatingFileHandler(
            filename=config.get('file_path', 'logs/market_maker.log'),
            maxBytes=config.get('max_bytes', 10*1024*1024),
            backupCount=config.get('backup_count', 10)
        )
        if config.get('json_file', True):
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(CompactFormatter())
        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    def get_logger(self, name: str) -> LoggerAdapter:
        if name not in self._loggers:
            self._loggers[name] = LoggerAdapter(logging.getLogger(name))
        return self._loggers[name]

    def shutdown(self) -> None:
        """Close handlers installed by setup_logging."""
        root = logging.getLogger()
        for handler in self._handlers:
            root.removeHandler(handler)
            handler.close()

        self._handlers = []
        self._setup_done = False


# Global logger manager instance
_logger_manager = LoggerManager()


def setup_logging(config: Optional[Any] = None) -> None:
    """
    Setup the logging system.

    Example:
        setup_logging({
            'level': 'INFO',
            'console': True,
            'file': True,
            'file_path': 'logs/market_maker.log',
        })
    """
    _logger_manager.setup_logging(config)


def get_logger(name: str) -> LoggerAdapter:
    """
    Get a logger instance.

    Example:
        logger = get_logger('market_maker.bot')
        logger.info("Bot started")
    """
    return _logger_manager.get_logger(name)


def shutdown_logging() -> None:
    """Shutdown the logging system."""
    _logger_manager.shutdown()
