"""Structured logging utilities for the synchronization engine.

Every component logs through a correlation-aware wrapper so that the records
emitted by one editing session can be grouped by ``correlation_id`` and
filtered by ``component``.
"""

import logging
from typing import Any, Dict, Optional


class CorrelationLogger:
    """Logger that stamps every record with session and component information."""

    def __init__(
        self,
        name: str,
        correlation_id: Optional[str] = None,
        component: Optional[str] = None,
    ) -> None:
        """Initialize correlation logger.

        Args:
            name: Logger name (typically __name__)
            correlation_id: Editing session identifier
            component: Component name for structured logging
        """
        self.logger = logging.getLogger(name)
        self.correlation_id = correlation_id
        self.component = component or name.split(".")[-1]

    def _get_extra(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        combined_extra: Dict[str, Any] = {
            "component": self.component,
            "correlation_id": self.correlation_id,
        }
        if extra:
            combined_extra.update(extra)
        return combined_extra

    def debug(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ) -> None:
        """Log debug message with correlation info."""
        self.logger.debug(message, extra=self._get_extra(extra), exc_info=exc_info)

    def info(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ) -> None:
        """Log info message with correlation info."""
        self.logger.info(message, extra=self._get_extra(extra), exc_info=exc_info)

    def warning(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ) -> None:
        """Log warning message with correlation info."""
        self.logger.warning(message, extra=self._get_extra(extra), exc_info=exc_info)

    def error(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = True,
    ) -> None:
        """Log error message with correlation info."""
        self.logger.error(message, extra=self._get_extra(extra), exc_info=exc_info)

    def exception(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log exception message with correlation info and traceback."""
        self.logger.exception(message, extra=self._get_extra(extra))


def get_logger(
    name: str,
    correlation_id: Optional[str] = None,
    component: Optional[str] = None,
) -> CorrelationLogger:
    """Get a correlation-aware logger instance.

    Args:
        name: Logger name (typically __name__)
        correlation_id: Editing session identifier
        component: Component name for structured logging

    Returns:
        CorrelationLogger instance
    """
    return CorrelationLogger(name, correlation_id, component)


class _ComponentDefaults(logging.Filter):
    """Fill in ``component`` for records logged without the wrapper."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = record.name.split(".")[-1]
        return True


def configure_logging(level: str = "INFO") -> None:
    """Attach a stderr handler to the package logger.

    Used by the command-line entry point; library users configure logging
    themselves.
    """
    package_logger = logging.getLogger("pretext_canvas")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.addFilter(_ComponentDefaults())
        handler.setFormatter(
            logging.Formatter("%(levelname)s %(name)s [%(component)s] %(message)s")
        )
        package_logger.addHandler(handler)
