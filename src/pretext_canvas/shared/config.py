"""Configuration classes for the synchronization engine.

Each component has its own mutable, self-validating dataclass; ``EditorConfig``
aggregates them into one immutable object handed to an ``EditorSession``.
"""

import json
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigError, ConfigValidationError

DEFAULT_DIVISION_TAGS = (
    "book",
    "article",
    "chapter",
    "section",
    "subsection",
    "subsubsection",
)


@dataclass
class TranscoderConfig:
    """Configuration for conversion between the structured tree and markup."""

    path_attribute: str = "data-path"
    source_attribute: str = "data-source"
    enable_substitutions: bool = True
    parse_error_tag: str = "div"
    parse_error_class: str = "parse-error"
    huge_tree: bool = False

    def __post_init__(self) -> None:
        """Validate transcoder configuration."""
        if not self.path_attribute:
            raise ValueError("path_attribute cannot be empty")
        if not self.source_attribute:
            raise ValueError("source_attribute cannot be empty")
        if self.path_attribute == self.source_attribute:
            raise ValueError("path_attribute and source_attribute must differ")
        if not self.parse_error_tag:
            raise ValueError("parse_error_tag cannot be empty")

    @property
    def internal_attributes(self) -> Tuple[str, str]:
        """Attributes that exist only in the structured view."""
        return (self.path_attribute, self.source_attribute)


@dataclass
class IndexConfig:
    """Configuration for the location index."""

    enable_caching: bool = True

    def __post_init__(self) -> None:
        """Validate index configuration."""
        if not isinstance(self.enable_caching, bool):
            raise ValueError("enable_caching must be a boolean")


@dataclass
class HistoryConfig:
    """Configuration for undo/redo history."""

    debounce_ms: float = 400.0
    max_depth: Optional[int] = None
    flush_pending_on_undo: bool = True

    def __post_init__(self) -> None:
        """Validate history configuration."""
        if self.debounce_ms < 0:
            raise ValueError("debounce_ms must be >= 0")
        if self.max_depth is not None and self.max_depth < 1:
            raise ValueError("max_depth must be >= 1 or None")


@dataclass
class SelectionConfig:
    """Configuration for cross-view selection synchronization."""

    collapse_to_start: bool = False
    scroll_focused_structure: bool = False

    def __post_init__(self) -> None:
        """Validate selection configuration."""
        for name in ("collapse_to_start", "scroll_focused_structure"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be a boolean")


@dataclass
class ValidationConfig:
    """Configuration for well-formedness checks and locator parsing."""

    enabled: bool = True
    line_pattern: str = r"line\D*?(\d+)"
    column_pattern: str = r"column\D*?(\d+)"

    def __post_init__(self) -> None:
        """Validate validation configuration."""
        for name in ("line_pattern", "column_pattern"):
            pattern = getattr(self, name)
            try:
                compiled = re.compile(pattern)
            except re.error as e:
                raise ValueError(f"{name} is not a valid regular expression: {e}") from e
            if compiled.groups < 1:
                raise ValueError(f"{name} must contain a capturing group")


@dataclass
class OutlineConfig:
    """Configuration for outline generation."""

    division_tags: Tuple[str, ...] = DEFAULT_DIVISION_TAGS
    title_tag: str = "title"
    id_attributes: Tuple[str, ...] = ("xml:id", "id")

    def __post_init__(self) -> None:
        """Validate outline configuration."""
        self.division_tags = tuple(self.division_tags)
        self.id_attributes = tuple(self.id_attributes)
        if not self.division_tags:
            raise ValueError("division_tags cannot be empty")
        if not self.title_tag:
            raise ValueError("title_tag cannot be empty")


@dataclass
class GlobalConfig:
    """Global settings that apply across all components."""

    logging_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    enable_correlation_tracking: bool = True
    max_diagnostics: int = 500

    def __post_init__(self) -> None:
        """Validate global configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.logging_level not in valid_levels:
            raise ValueError(f"logging_level must be one of {valid_levels}")
        if self.max_diagnostics <= 0:
            raise ValueError("max_diagnostics must be > 0")


_COMPONENTS = (
    "transcoder",
    "index",
    "history",
    "selection",
    "validation",
    "outline",
    "global_",
)


@dataclass(frozen=True)
class EditorConfig:
    """Immutable configuration for an editing session.

    Component configurations validate themselves; this class re-raises their
    ``ValueError`` as ``ConfigValidationError`` and checks cross-component
    constraints.
    """

    transcoder: TranscoderConfig = field(default_factory=TranscoderConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    outline: OutlineConfig = field(default_factory=OutlineConfig)
    global_: GlobalConfig = field(default_factory=GlobalConfig)

    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete editor configuration."""
        try:
            for component in _COMPONENTS:
                getattr(self, component).__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

        if self.transcoder.path_attribute in self.outline.id_attributes:
            raise ConfigValidationError(
                "Path attribute collides with an identifier attribute",
                field_name="transcoder.path_attribute",
                suggestions=["Use a data-* attribute for path tracking"],
            )

    def override(self, **kwargs: Any) -> "EditorConfig":
        """Create a new configuration with specific overrides.

        Example:
            >>> config = EditorConfig()
            >>> fast = config.override(history__debounce_ms=100.0)
            >>> fast.history.debounce_ms
            100.0

        Global settings are addressed as ``global__<field>``.
        """
        nested_overrides: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component, field_name = key.split("__", 1)
                if component == "global":
                    component = "global_"
                if component not in _COMPONENTS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}",
                        field_name=key,
                    )
                nested_overrides.setdefault(component, {})[field_name] = value
            else:
                nested_overrides[key] = value

        new_fields: Dict[str, Any] = {}
        for key, value in nested_overrides.items():
            if key in _COMPONENTS:
                try:
                    new_fields[key] = replace(getattr(self, key), **value)
                except (TypeError, ValueError) as e:
                    raise ConfigValidationError(str(e), field_name=key) from e
            else:
                new_fields[key] = value

        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""

        def _dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            if isinstance(obj, Enum):
                return obj.name
            if isinstance(obj, (list, tuple, set)):
                return [_dataclass_to_dict(item) for item in obj]
            if isinstance(obj, dict):
                return {key: _dataclass_to_dict(value) for key, value in obj.items()}
            return obj

        result = _dataclass_to_dict(self)
        if not isinstance(result, dict):
            raise ConfigValidationError("Configuration serialization failed")
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorConfig":
        """Create configuration from dictionary.

        Unknown keys are rejected so that typos in configuration files do not
        pass silently.
        """

        def _dict_to_dataclass(data_dict: Dict[str, Any], target_class: type) -> Any:
            known = target_class.__dataclass_fields__  # type: ignore[attr-defined]
            unknown = sorted(set(data_dict) - set(known))
            if unknown:
                raise ConfigValidationError(
                    f"Unknown fields for {target_class.__name__}: {unknown}",
                    field_name=unknown[0],
                )
            field_values: Dict[str, Any] = {}
            for field_name, field_info in known.items():
                if field_name not in data_dict:
                    continue
                value = data_dict[field_name]
                field_type = field_info.type
                if hasattr(field_type, "__dataclass_fields__") and isinstance(value, dict):
                    field_values[field_name] = _dict_to_dataclass(value, field_type)
                else:
                    field_values[field_name] = value
            try:
                return target_class(**field_values)
            except (TypeError, ValueError) as e:
                raise ConfigValidationError(str(e)) from e

        result = _dict_to_dataclass(data, cls)
        if not isinstance(result, cls):
            raise ConfigValidationError(f"Failed to deserialize to {cls.__name__}")
        return result

    @classmethod
    def from_json(cls, json_str: str) -> "EditorConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def default(cls) -> "EditorConfig":
        """Balanced defaults suitable for interactive editing."""
        return cls(name="default")

    @classmethod
    def responsive(cls) -> "EditorConfig":
        """Short debounce so history follows typing closely."""
        return cls(
            history=HistoryConfig(debounce_ms=150.0),
            name="responsive",
            description="Fine-grained history for short documents",
        )

    @classmethod
    def conservative(cls) -> "EditorConfig":
        """Long debounce and a bounded history for very large documents."""
        return cls(
            history=HistoryConfig(debounce_ms=1000.0, max_depth=200),
            selection=SelectionConfig(collapse_to_start=True),
            name="conservative",
            description="Coarse, bounded history for large documents",
        )

    @classmethod
    def preset(cls, name: str) -> "EditorConfig":
        """Look up a preset by name."""
        presets = {
            "default": cls.default,
            "responsive": cls.responsive,
            "conservative": cls.conservative,
        }
        if name not in presets:
            raise ConfigValidationError(
                f"Unknown preset: {name}", suggestions=sorted(presets)
            )
        return presets[name]()


__all__: List[str] = [
    "ConfigError",
    "ConfigValidationError",
    "DEFAULT_DIVISION_TAGS",
    "EditorConfig",
    "GlobalConfig",
    "HistoryConfig",
    "IndexConfig",
    "OutlineConfig",
    "SelectionConfig",
    "TranscoderConfig",
    "ValidationConfig",
]
