"""
Custom log handlers for the market maker.

This module provides:
- Size-based rotating file handler that creates its directory
- Console handler with colored output
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

from colorama import just_fix_windows_console

from .log_formatter import ColoredFormatter


class SizeRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """
    Size-based rotating file handler.

    Rotates log files when they reach a specified size.

    Example:
        handler = SizeRotatingFileHandler(
            'logs/market_maker.log',
            maxBytes=10*1024*1024,  # 10MB
            backupCount=10
        )
    """

    def __init__(
        self,
        filename: str,
        mode: str = 'a',
        maxBytes: int = 10*1024*1024,
        backupCount: int = 10,
        encoding: Optional[str] = 'utf-8',
        delay: bool = False
    ):
        directory = os.path.dirname(filename)
        if directory:
            Path(directory).mkdir(parents=True, exist_ok=True)

        super().__init__(
            filename=filename,
            mode=mode,
            maxBytes=maxBytes,
            backupCount=backupCount,
            encoding=encoding,
            delay=delay
        )


class ColoredConsoleHandler(logging.StreamHandler):
    """
    Console handler with colored output.

    Falls back to plain output when the stream is not a TTY.

    Example:
        handler = ColoredConsoleHandler()
        handler.setFormatter(ColoredFormatter())
        logger.addHandler(handler)
    """

    def __init__(self, stream=None):
        super().__init__(stream or sys.stdout)
        just_fix_windows_console()
        self.is_tty = hasattr(self.stream, 'isatty') and self.stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatter = self.formatter
        if isinstance(formatter, ColoredFormatter) and not self.is_tty:
            use_colors = formatter.use_colors
            formatter.use_colors = False
            try:
                return formatter.format(record)
            finally:
                formatter.use_colors = use_colors
        return super().format(record)
