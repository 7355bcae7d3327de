"""
Log formatters for the market maker.

This module provides custom log formatters for structured logging including:
- JSON format for machine parsing
- Colored console output
- Compact single-line format
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from colorama import Fore, Style


# Standard LogRecord attributes that are never treated as extra data
_STANDARD_ATTRS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'exc_info', 'exc_text', 'stack_info',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage',
    'taskName', 'message', 'asctime', 'correlation_id', 'category',
})


class JsonFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON objects with standardized fields for
    machine parsing and log aggregation systems.

    Example output:
    {
        "timestamp": "2024-01-27T10:30:00.123456+00:00",
        "level": "INFO",
        "logger": "market_maker.bot.cycle_engine",
        "message": "Cycle 3 completed for wallet 7xKXtg2C...",
        "category": "BOT",
        "data": {"wallet_id": "w1", ...}
    }
    """

    def __init__(
        self,
        include_extra: bool = True,
        indent: Optional[int] = None,
        default_fields: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize JSON formatter.

        Args:
            include_extra: Include extra fields from log record
            indent: JSON indentation (None for compact, int for pretty print)
            default_fields: Default fields to include in every log entry
        """
        super().__init__()
        self.include_extra = include_extra
        self.indent = indent
        self.default_fields = default_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        correlation_id = getattr(record, 'correlation_id', None)
        if correlation_id:
            log_data['correlation_id'] = correlation_id

        category = getattr(record, 'category', None)
        if category:
            log_data['category'] = category

        log_data['source'] = {
            'file': record.pathname,
            'line': record.lineno,
            'function': record.funcName
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        if self.include_extra:
            extra_data = extract_extra_fields(record)
            if extra_data:
                log_data['data'] = extra_data

        log_data.update(self.default_fields)

        return json.dumps(log_data, indent=self.indent, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter for human-readable logs.

    Highlights log levels with colorama color codes to make logs easier
    to read in terminal output.
    """

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA,
    }

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
        show_category: bool = True
    ):
        if fmt is None:
            fmt = self._get_default_format(show_category)

        super().__init__(fmt, datefmt)
        self.use_colors = use_colors
        self.show_category = show_category

    def _get_default_format(self, show_category: bool) -> str:
        """Get default format string."""
        if show_category:
            return '%(asctime)s | %(levelname)-8s | %(category)-8s | %(name)s | %(message)s'
        return '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, 'category', None):
            record.category = 'GENERAL'

        formatted = super().format(record)
        if not self.use_colors:
            return formatted

        level_color = self.COLORS.get(record.levelname, Style.RESET_ALL)
        formatted = formatted.replace(
            record.levelname,
            f"{level_color}{record.levelname}{Style.RESET_ALL}",
            1
        )
        if self.show_category:
            formatted = formatted.replace(
                record.category,
                f"{Style.DIM}{record.category}{Style.RESET_ALL}",
                1
            )
        return formatted


class CompactFormatter(logging.Formatter):
    """
    Compact single-line formatter.

    Format: HH:MM:SS LEVEL [CATEGORY] message
    """

    def __init__(self, show_category: bool = True):
        super().__init__(datefmt='%H:%M:%S')
        self.show_category = show_category

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        level = record.levelname[0]
        message = record.getMessage()

        if self.show_category:
            category = getattr(record, 'category', None) or 'GENERAL'
            return f"{timestamp} {level} [{category}] {message}"
        return f"{timestamp} {level} {message}"


def extract_extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Extract non-standard attributes attached through ``extra``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith('_')
    }
