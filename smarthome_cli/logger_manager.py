#!/usr/bin/env python3
"""
smarthome_cli/logger_manager.py

Logger Manager

Configures logging for one CLI invocation. The console shows records at the
configured `log_level`; `<app dir>/logs/smarthome.log` additionally keeps
every INFO record, so each create, clone, pull, push and power change leaves
a trace even when the console is quiet.
"""
import logging
from pathlib import Path
from typing import Optional

from smarthome_cli.constants import USER_LOGS_DIR

LOG_FILE_NAME = "smarthome.log"
FILE_LOG_LEVEL = logging.INFO

# Third-party loggers that only get to talk when debugging.
NOISY_LOGGERS = ("urllib3", "prompt_toolkit")

LOG_FORMATS = {
    "default": ("%(levelname)s: %(message)s", None),
    "verbose": (
        "%(asctime)s [%(levelname)s] %(module)s:%(lineno)d - %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ),
    # Absolute file paths so editors turn them into links.
    "detailed": (
        "%(asctime)s [%(levelname)s] %(pathname)s:%(lineno)d - %(funcName)s - %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ),
}


class SafeFileHandler(logging.FileHandler):
    """A FileHandler that drops records it cannot write, e.g. on a read-only home directory."""

    def emit(self, record):
        try:
            super().emit(record)
        except OSError:
            self.handleError(record)


class LoggerManager:
    LOG_LEVELS = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
    }

    @classmethod
    def from_dict(cls, config: dict, logs_dir: Optional[Path] = None) -> "LoggerManager":
        """Build from the effective configuration (`log_level`, `log_format`)."""
        return cls(
            log_level=config.get("log_level", "WARNING"),
            format_type=config.get("log_format", "default"),
            logs_dir=logs_dir,
        )

    def __init__(self, log_level="WARNING", format_type="default", logs_dir: Optional[Path] = None):
        self.logs_dir = logs_dir or USER_LOGS_DIR
        self.log_file = self.logs_dir / LOG_FILE_NAME
        self.console_level = self.resolve_level(log_level)

        root_logger = logging.getLogger()
        root_logger.setLevel(min(self.console_level, FILE_LOG_LEVEL))
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(
                logging.DEBUG if self.console_level == logging.DEBUG else logging.WARNING
            )

        self.install_handlers(self.build_formatter(format_type))
        root_logger.debug("Console log level is %s, file log is %s", log_level, self.log_file)

    def resolve_level(self, log_level: str) -> int:
        level = self.LOG_LEVELS.get(log_level.upper())
        if level is None:
            logging.getLogger().warning(
                "Log level '%s' is not recognized. Defaulting to WARNING.", log_level
            )
            return logging.WARNING
        return level

    @staticmethod
    def build_formatter(format_type: str) -> logging.Formatter:
        fmt, datefmt = LOG_FORMATS.get(format_type, LOG_FORMATS["default"])
        return logging.Formatter(fmt, datefmt=datefmt)

    def install_handlers(self, formatter: logging.Formatter) -> None:
        root_logger = logging.getLogger()
        # Replaces whatever a previous invocation in the same process installed.
        root_logger.handlers.clear()

        console = logging.StreamHandler()
        console.setLevel(self.console_level)
        console.setFormatter(formatter)
        root_logger.addHandler(console)

        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            file_handler = SafeFileHandler(self.log_file, encoding="utf-8", delay=True)
        except OSError as e:
            root_logger.warning("Logging to %s disabled: %s", self.log_file, e)
            return
        file_handler.setLevel(min(self.console_level, FILE_LOG_LEVEL))
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
