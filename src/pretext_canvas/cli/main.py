"""Main CLI entry point for the pretext-canvas command-line tool.

Provides inspection commands for PreTeXt documents: well-formedness
validation, outlines, structural paths, offset/path/identifier lookup and
canonical re-serialization.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pretext_canvas import __version__
from pretext_canvas.indexing import LocationIndex, line_column_at, offset_for_line_column
from pretext_canvas.outline import outline_for_text, render_outline
from pretext_canvas.shared import (
    ConfigValidationError,
    EditorConfig,
    MalformedMarkupError,
    configure_logging,
    get_logger,
)
from pretext_canvas.templates import get_template, list_templates
from pretext_canvas.transcoding import Transcoder
from pretext_canvas.validation import LxmlWellFormednessValidator

logger = get_logger(__name__, component="cli")


def load_config(args: argparse.Namespace) -> EditorConfig:
    """Build the editor configuration from ``--preset`` and ``--config``."""
    config = EditorConfig.preset(args.preset)
    if args.config is not None:
        config = EditorConfig.from_json(args.config.read_text(encoding="utf-8"))
    return config


def read_document(path: Path) -> str:
    """Read a document as UTF-8 text."""
    return path.read_text(encoding="utf-8")


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="pretext-canvas",
        description="Inspect PreTeXt documents: validation, outline, paths and locations",
    )

    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="EditorConfig JSON file",
    )
    parser.add_argument(
        "--preset",
        choices=["default", "responsive", "conservative"],
        default="default",
        help="Configuration preset used when no --config is given",
    )
    parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", help="Check documents are well-formed")
    validate_parser.add_argument("paths", nargs="+", type=Path, help="Documents to validate")

    outline_parser = subparsers.add_parser("outline", help="Show the division outline")
    outline_parser.add_argument("path", type=Path, help="Document")

    paths_parser = subparsers.add_parser("paths", help="List element paths with offsets")
    paths_parser.add_argument("path", type=Path, help="Document")

    locate_parser = subparsers.add_parser("locate", help="Resolve an offset, path or identifier")
    locate_parser.add_argument("path", type=Path, help="Document")
    target = locate_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--offset", type=int, help="Character offset in the text")
    target.add_argument("--line", type=int, help="1-based line (with --column)")
    target.add_argument("--node", dest="node_path", help="Structural path such as pretext[1]/book[1]")
    target.add_argument("--id", dest="identifier", help="xml:id of an element")
    locate_parser.add_argument("--column", type=int, default=1, help="1-based column for --line")

    normalize_parser = subparsers.add_parser(
        "normalize", help="Write the canonical serialization of a document"
    )
    normalize_parser.add_argument("path", type=Path, help="Document")
    normalize_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)",
    )

    templates_parser = subparsers.add_parser("templates", help="List starter templates")
    templates_parser.add_argument("--show", metavar="ID", help="Print the skeleton of one template")

    return parser


def emit(data: Any, text: str, format_type: str) -> None:
    """Print ``data`` as JSON or ``text`` as is."""
    if format_type == "json":
        print(json.dumps(data, indent=2))
    else:
        print(text)


def cmd_validate(args: argparse.Namespace, config: EditorConfig) -> int:
    """Handle validate command."""
    validator = LxmlWellFormednessValidator(
        config.validation, huge_tree=config.transcoder.huge_tree
    )
    results: List[Dict[str, Any]] = []

    for path in args.paths:
        if not path.exists():
            results.append({"file": str(path), "is_valid": False, "message": "File not found"})
            continue
        report = validator.check(read_document(path))
        results.append({"file": str(path), **report.to_dict()})

    valid_count = sum(1 for result in results if result["is_valid"])
    lines = [f"Validated {len(results)} files, {valid_count} valid", "-" * 50]
    for result in results:
        status = "✓" if result["is_valid"] else "✗"
        lines.append(f"{status} {result['file']}")
        if not result["is_valid"]:
            locator = ""
            if "line" in result:
                locator = f"line {result['line']}"
                if "column" in result:
                    locator += f", column {result['column']}"
                locator += ": "
            lines.append(f"   Error: {locator}{result['message']}")
    emit(results, "\n".join(lines), args.format)

    return 0 if valid_count == len(results) else 1


def cmd_outline(args: argparse.Namespace, config: EditorConfig) -> int:
    """Handle outline command."""
    transcoder = Transcoder(config.transcoder)
    items = outline_for_text(read_document(args.path), transcoder, config.outline)
    emit([item.to_dict() for item in items], render_outline(items), args.format)
    return 1 if any(item.is_error for item in items) else 0


def cmd_paths(args: argparse.Namespace, config: EditorConfig) -> int:
    """Handle paths command."""
    text = read_document(args.path)
    index = LocationIndex(config.index)
    locations = index.locations(text)
    rows = [
        {
            "path": str(location.path),
            "start": location.start,
            "end": location.end,
            "line": location.line,
            "column": location.column,
        }
        for location in locations
    ]
    lines = [
        f"{row['line']}:{row['column']}\t[{row['start']}, {row['end']}]\t{row['path']}"
        for row in rows
    ]
    emit(rows, "\n".join(lines), args.format)
    return 0


def cmd_locate(args: argparse.Namespace, config: EditorConfig) -> int:
    """Handle locate command."""
    text = read_document(args.path)
    index = LocationIndex(config.index)

    if args.offset is not None or args.line is not None:
        if args.line is not None:
            offset = offset_for_line_column(text, args.line, args.column)
        else:
            offset = max(0, min(args.offset, len(text)))
        path = index.path_at(text, offset)
        if path is None:
            print("No element found", file=sys.stderr)
            return 1
        line, column = line_column_at(text, offset)
        location = index.location_at(text, path)
        result: Dict[str, Any] = {"offset": offset, "line": line, "column": column, "path": str(path)}
        if location is not None:
            result.update(start=location.start, end=location.end)
        emit(result, str(path), args.format)
        return 0

    if args.identifier is not None:
        transcoder = Transcoder(config.transcoder)
        try:
            document = transcoder.parse_source(text)
        except MalformedMarkupError as e:
            print(f"Cannot resolve identifiers in a malformed document: {e}", file=sys.stderr)
            return 1
        node = document.get_element_by_id(args.identifier, config.outline.id_attributes)
        if node is None or node.path is None:
            print(f"Could not locate element for identifier {args.identifier}", file=sys.stderr)
            return 1
        target_path: Any = node.path
    else:
        target_path = args.node_path

    location = index.location_at(text, target_path)
    if location is None:
        print(f"Could not locate element at path {target_path}", file=sys.stderr)
        return 1
    result = {
        "path": str(location.path),
        "start": location.start,
        "end": location.end,
        "line": location.line,
        "column": location.column,
    }
    emit(
        result,
        f"{location.path}\tline {location.line}, column {location.column}\t"
        f"[{location.start}, {location.end}]",
        args.format,
    )
    return 0


def cmd_normalize(args: argparse.Namespace, config: EditorConfig) -> int:
    """Handle normalize command."""
    transcoder = Transcoder(config.transcoder)
    try:
        normalized = transcoder.structure_to_text(
            transcoder.text_to_structure(read_document(args.path))
        )
    except MalformedMarkupError as e:
        locator = f" ({e.locator})" if e.locator else ""
        print(f"Error: {e.message}{locator}", file=sys.stderr)
        return 1

    if args.output is not None:
        args.output.write_text(normalized, encoding="utf-8")
    else:
        sys.stdout.write(normalized)
    return 0


def cmd_templates(args: argparse.Namespace, config: EditorConfig) -> int:
    """Handle templates command."""
    if args.show:
        template = get_template(args.show)
        if template is None:
            print(f"Unknown template: {args.show}", file=sys.stderr)
            return 1
        emit(template.to_dict(include_skeleton=True), template.skeleton, args.format)
        return 0

    templates = list_templates()
    lines = [f"{template.id}\t{template.label}\n    {template.description}" for template in templates]
    emit([template.to_dict() for template in templates], "\n".join(lines), args.format)
    return 0


COMMANDS = {
    "validate": cmd_validate,
    "outline": cmd_outline,
    "paths": cmd_paths,
    "locate": cmd_locate,
    "normalize": cmd_normalize,
    "templates": cmd_templates,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(args)
    except (OSError, ConfigValidationError) as e:
        print(f"Error: could not load configuration: {e}", file=sys.stderr)
        return 2

    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")
    else:
        configure_logging(config.global_.logging_level)

    handler = COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args, config)
    except OSError as e:
        logger.debug("File access failed", extra={"command": args.command})
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
