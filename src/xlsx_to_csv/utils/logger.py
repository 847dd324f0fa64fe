"""Logging utilities for the xlsx-to-csv option exporter.

This module provides logging setup with support for:
- Console output on stderr (stdout is reserved for command results)
- Optional rotating file log
- Optional structured JSON log
- Domain-specific logging methods for conversion events
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from xlsx_to_csv.models.data_models import LoggingConfig
from xlsx_to_csv.utils.correlation import CorrelationContext


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        run_id = CorrelationContext.get_correlation_id()
        if run_id:
            log_entry["run_id"] = run_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        structured = getattr(record, "structured", None)
        if isinstance(structured, dict):
            log_entry.update(structured)

        for field in ["event_type", "input_path", "output_path", "sheet_name",
                      "row_index", "record_count", "error_type"]:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ProcessingLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter adding conversion context to log records."""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if "extra" not in kwargs:
            kwargs["extra"] = {}

        kwargs["extra"].update(self.extra)
        return msg, kwargs

    def log_conversion_start(
        self,
        input_path: Union[str, Path],
        output_path: Union[str, Path],
        sheet_name: str,
        delimiter: str
    ) -> None:
        """Log the start of a conversion run.

        Args:
            input_path: Workbook being read
            output_path: Delimited file being written
            sheet_name: Worksheet being converted
            delimiter: Output field delimiter
        """
        extra = {
            "event_type": "conversion_start",
            "input_path": str(input_path),
            "output_path": str(output_path),
            "sheet_name": sheet_name,
        }
        self.info(
            f"Converting '{sheet_name}' of {input_path} -> {output_path} "
            f"(delimiter {delimiter!r})",
            extra=extra
        )

    def log_conversion_complete(
        self,
        output_path: Union[str, Path],
        record_count: int,
        file_size: int,
        duration_ms: float
    ) -> None:
        """Log the end of a successful conversion run.

        Args:
            output_path: Delimited file that was written
            record_count: Number of data records written
            file_size: Final output size in bytes
            duration_ms: Duration of the run
        """
        extra = {
            "event_type": "conversion_complete",
            "output_path": str(output_path),
            "record_count": record_count,
        }
        self.info(
            f"Wrote {record_count} records to {output_path} "
            f"({file_size:,} bytes) in {duration_ms:.1f}ms",
            extra=extra
        )

    def log_error(
        self,
        error_type: str,
        message: str,
        input_path: Optional[Union[str, Path]] = None,
        exc_info: bool = False
    ) -> None:
        """Log a conversion failure with context.

        Args:
            error_type: Category of the error
            message: Error message
            input_path: Workbook the run was reading, if known
            exc_info: Whether to include the traceback
        """
        extra: Dict[str, Any] = {
            "event_type": "conversion_error",
            "error_type": error_type,
        }
        if input_path:
            extra["input_path"] = str(input_path)

        self.error(message, extra=extra, exc_info=exc_info)


class LoggerManager:
    """Manages logger setup and configuration."""

    def __init__(self):
        self._configured = False
        self._handlers: list = []
        self._loggers: Dict[str, logging.Logger] = {}
        self._adapters: Dict[str, ProcessingLoggerAdapter] = {}

    @property
    def is_configured(self) -> bool:
        return self._configured

    def setup_logging(self, config: LoggingConfig) -> None:
        """Set up logging configuration.

        Replaces any handlers installed by a previous call, so the CLI can be
        invoked repeatedly in one process.

        Args:
            config: Logging configuration
        """
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

        root_logger.setLevel(config.log_level)

        if config.console_enabled:
            self._add_handler(self._create_console_handler(config))

        if config.file_enabled:
            self._add_handler(self._create_file_handler(config))

        if config.structured_enabled:
            self._add_handler(self._create_structured_handler(config))

        if not self._handlers:
            # keeps logging.lastResort from echoing warnings to stderr
            self._add_handler(logging.NullHandler())

        self._configure_third_party_loggers()
        self._configured = True

        logger = self.get_logger(__name__)
        logger.debug(
            f"Logging configured: level={config.level}, console={config.console_enabled}, "
            f"file={config.file_enabled}, structured={config.structured_enabled}"
        )

    def _add_handler(self, handler: logging.Handler) -> None:
        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    def _create_console_handler(self, config: LoggingConfig) -> logging.Handler:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(config.log_level)
        console_handler.setFormatter(logging.Formatter(
            fmt=config.format,
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        return console_handler

    def _create_file_handler(self, config: LoggingConfig) -> logging.Handler:
        """Create a rotating file handler.

        Args:
            config: Logging configuration
        """
        config.file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.file_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(config.log_level)
        file_handler.setFormatter(logging.Formatter(
            fmt=config.format,
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        return file_handler

    def _create_structured_handler(self, config: LoggingConfig) -> logging.Handler:
        """Create a JSON lines handler next to the plain log file.

        Args:
            config: Logging configuration
        """
        structured_path = config.file_path.with_suffix(".json")
        structured_path.parent.mkdir(parents=True, exist_ok=True)

        structured_handler = logging.handlers.RotatingFileHandler(
            filename=structured_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        structured_handler.setLevel(config.log_level)
        structured_handler.setFormatter(JSONFormatter())
        return structured_handler

    def _configure_third_party_loggers(self) -> None:
        logging.getLogger("openpyxl").setLevel(logging.WARNING)
        logging.getLogger("pandas").setLevel(logging.WARNING)

    def get_logger(self, name: str) -> logging.Logger:
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)

        return self._loggers[name]

    def get_processing_logger(
        self,
        name: str,
        context: Optional[Dict[str, Any]] = None
    ) -> ProcessingLoggerAdapter:
        """Get processing logger adapter with context.

        Args:
            name: Logger name
            context: Additional context for all log records

        Returns:
            Processing logger adapter
        """
        cache_key = f"{name}:{hash(str(context))}"

        if cache_key not in self._adapters:
            base_logger = self.get_logger(name)
            self._adapters[cache_key] = ProcessingLoggerAdapter(base_logger, context)

        return self._adapters[cache_key]

    def shutdown(self) -> None:
        """Detach and close the handlers installed by setup_logging."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        self._configured = False


# Global logger manager instance
logger_manager = LoggerManager()


def setup_logging(config: LoggingConfig) -> None:
    """Set up application logging.

    Args:
        config: Logging configuration
    """
    logger_manager.setup_logging(config)


def get_logger(name: str) -> logging.Logger:
    return logger_manager.get_logger(name)


def get_processing_logger(
    name: str,
    context: Optional[Dict[str, Any]] = None
) -> ProcessingLoggerAdapter:
    """Get processing logger with context.

    Args:
        name: Logger name (typically __name__)
        context: Additional context for log records

    Returns:
        Processing logger adapter
    """
    return logger_manager.get_processing_logger(name, context)


def shutdown_logging() -> None:
    """Shutdown logging system."""
    logger_manager.shutdown()
