"""
Logging setup for the Clearance Scoring Engine.

Console and file handlers are attached to the package logger once;
modules obtain a ContextLogger that appends structured context
(record id, company name, field name) to each message.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .config.settings import LOG_CONFIG

ROOT_LOGGER_NAME = "clearance_engine"


def configure_logging(
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    enable_file: Optional[bool] = None,
    enable_console: bool = True,
) -> logging.Logger:
    """
    Configure handlers on the package logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files (default from LOG_CONFIG)
        enable_file: Write logs to a dated file
        enable_console: Output logs to stdout

    Returns:
        The configured package logger
    """
    level = (level or LOG_CONFIG["level"]).upper()
    if enable_file is None:
        enable_file = LOG_CONFIG["enable_file"]

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level))
    logger.handlers.clear()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level))
        console_handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(console_handler)

    if enable_file:
        log_dir = Path(log_dir or LOG_CONFIG["log_dir"])
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / f"clearance_engine_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(file_handler)

    return logger


class ContextLogger:
    """Thin wrapper over a stdlib logger that renders keyword context"""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context):
        self._log(logging.ERROR, message, context)

    def _log(self, level: int, message: str, context: Dict[str, Any]):
        context = {k: v for k, v in context.items() if v is not None}
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)


def get_logger(name: str) -> ContextLogger:
    """Get a context logger under the package namespace"""
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return ContextLogger(name)
