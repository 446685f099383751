"""Tests for logging, errors and diagnostic types."""

import logging

import pytest

from pretext_canvas.shared import (
    CorrelationLogger,
    DiagnosticEntry,
    DiagnosticSeverity,
    HistoryUnderflow,
    IndexMetrics,
    MalformedMarkupError,
    UnresolvedPathError,
    get_logger,
)


class TestCorrelationLogger:
    """Test correlation-aware logging."""

    def test_get_logger_returns_wrapper(self) -> None:
        """Test logger factory."""
        logger = get_logger("pretext_canvas.sample", "session-1", "sample")
        assert isinstance(logger, CorrelationLogger)
        assert logger.correlation_id == "session-1"
        assert logger.component == "sample"

    def test_component_defaults_to_module_name(self) -> None:
        """Test component inference from the logger name."""
        logger = get_logger("pretext_canvas.sync.scheduler")
        assert logger.component == "scheduler"

    def test_records_carry_correlation_fields(self, caplog) -> None:
        """Test every record is stamped with session and component."""
        logger = get_logger("pretext_canvas.sample", "session-1", "sample")
        with caplog.at_level(logging.DEBUG, logger="pretext_canvas.sample"):
            logger.info("Something happened", extra={"offset": 12})

        record = caplog.records[-1]
        assert record.getMessage() == "Something happened"
        assert record.correlation_id == "session-1"
        assert record.component == "sample"
        assert record.offset == 12

    def test_records_use_default_component(self, caplog) -> None:
        """Test the component falls back to the last logger name segment."""
        logger = get_logger("pretext_canvas.sample", "session-2")
        with caplog.at_level(logging.DEBUG, logger="pretext_canvas.sample"):
            logger.debug("Default component")

        record = caplog.records[-1]
        assert record.component == "sample"
        assert record.correlation_id == "session-2"


class TestErrors:
    """Test the exception taxonomy."""

    def test_malformed_markup_locator(self) -> None:
        """Test locator formatting."""
        assert MalformedMarkupError("bad", 3, 7).locator == "line 3, column 7"
        assert MalformedMarkupError("bad", 3).locator == "line 3"
        assert MalformedMarkupError("bad").locator is None

    def test_soft_failure_messages(self) -> None:
        """Test messages of soft-failure errors."""
        assert str(HistoryUnderflow("undo")) == "Nothing to undo"
        assert "a[1]/b[2]" in str(UnresolvedPathError("a[1]/b[2]"))


class TestDiagnostics:
    """Test diagnostic entries and metrics."""

    def test_entry_validation(self) -> None:
        """Test empty message and component are rejected."""
        with pytest.raises(ValueError, match="message"):
            DiagnosticEntry(DiagnosticSeverity.ERROR, "", "editor")
        with pytest.raises(ValueError, match="component"):
            DiagnosticEntry(DiagnosticSeverity.ERROR, "failed", "")

    def test_entry_to_dict(self) -> None:
        """Test dictionary conversion."""
        entry = DiagnosticEntry(
            DiagnosticSeverity.WARNING,
            "Could not locate element",
            "editor",
            position={"line": 2, "column": 1},
        )
        data = entry.to_dict()
        assert data["severity"] == "WARNING"
        assert data["position"] == {"line": 2, "column": 1}
        assert "details" not in data

    def test_cache_hit_rate(self) -> None:
        """Test cache hit rate calculation."""
        assert IndexMetrics().cache_hit_rate == 0.0
        assert IndexMetrics(cache_hits=3, cache_misses=1).cache_hit_rate == 0.75
