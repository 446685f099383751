"""Well-formedness validators.

Only well-formedness is checked; PreTeXt schema validation is left to the
external PreTeXt toolchain.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from lxml import etree

from pretext_canvas.shared import ValidationConfig, get_logger

from .report import ValidationReport


class Validator(ABC):
    """Checks markup text and reports the first problem found."""

    @abstractmethod
    def check(self, text: str) -> ValidationReport:
        """Validate ``text``; never raises for malformed input."""


class LxmlWellFormednessValidator(Validator):
    """Well-formedness check delegated to lxml.

    The error position reported by the parser is used when available;
    otherwise the locator is parsed out of the message text.
    """

    def __init__(
        self,
        config: Optional[ValidationConfig] = None,
        huge_tree: bool = False,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.config = config or ValidationConfig()
        self.huge_tree = huge_tree
        self.logger = get_logger(__name__, correlation_id, "validator")

    def _parser(self) -> etree.XMLParser:
        return etree.XMLParser(
            encoding="utf-8",
            resolve_entities=False,
            no_network=True,
            load_dtd=False,
            huge_tree=self.huge_tree,
        )

    def check(self, text: str) -> ValidationReport:
        if not text.strip():
            return ValidationReport(is_valid=False, message="Document is empty", line=1, column=1)
        try:
            etree.fromstring(text.encode("utf-8"), self._parser())
        except etree.XMLSyntaxError as e:
            report = self._report_for(e)
            self.logger.debug(
                "Document is not well-formed",
                extra={"line": report.line, "column": report.column},
            )
            return report
        except ValueError as e:
            return ValidationReport.from_message(str(e), self.config)
        return ValidationReport.valid()

    def _report_for(self, error: etree.XMLSyntaxError) -> ValidationReport:
        message = getattr(error, "msg", None) or str(error)
        report = ValidationReport.from_message(message, self.config)
        position = getattr(error, "position", None)
        if position and position[0]:
            report.line, report.column = position
        report.details = self._error_log_messages(error)
        return report

    @staticmethod
    def _error_log_messages(error: etree.XMLSyntaxError) -> List[str]:
        error_log = getattr(error, "error_log", None)
        if not error_log:
            return []
        return [
            f"Line {entry.line}, Column {entry.column}: {entry.message}"
            for entry in error_log
        ]
