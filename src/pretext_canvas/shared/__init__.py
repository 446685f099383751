"""Shared utilities for the synchronization engine.

This package provides configuration objects, the exception taxonomy,
diagnostic types and correlation-aware logging used by every component.
"""

from .config import (
    EditorConfig,
    GlobalConfig,
    HistoryConfig,
    IndexConfig,
    OutlineConfig,
    SelectionConfig,
    TranscoderConfig,
    ValidationConfig,
)
from .errors import (
    CanvasError,
    ConfigError,
    ConfigValidationError,
    HistoryUnderflow,
    MalformedMarkupError,
    UnresolvedPathError,
)
from .logging import (
    CorrelationLogger,
    configure_logging,
    get_logger,
)
from .result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    IndexMetrics,
)

__all__ = [
    "CanvasError",
    "ConfigError",
    "ConfigValidationError",
    "CorrelationLogger",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "EditorConfig",
    "GlobalConfig",
    "HistoryConfig",
    "HistoryUnderflow",
    "IndexConfig",
    "IndexMetrics",
    "MalformedMarkupError",
    "OutlineConfig",
    "SelectionConfig",
    "TranscoderConfig",
    "UnresolvedPathError",
    "ValidationConfig",
    "configure_logging",
    "get_logger",
]
