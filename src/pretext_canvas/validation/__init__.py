"""Well-formedness validation with line/column error locators.

Key Components:
    Validator: Interface implemented by every validator
    LxmlWellFormednessValidator: Default validator backed by lxml
    ValidationReport: Pass/fail result with message and locator
    parse_locator: Permissive line/column extraction from parser messages
"""

from .report import VALID_MESSAGE, ValidationReport, parse_locator
from .wellformed import LxmlWellFormednessValidator, Validator

__all__ = [
    "LxmlWellFormednessValidator",
    "VALID_MESSAGE",
    "ValidationReport",
    "Validator",
    "parse_locator",
]
