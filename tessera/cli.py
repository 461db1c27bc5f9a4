from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from tessera import __version__ as TOOL_VERSION
from tessera.contracts import build_contract, build_run_summary
from tessera.converter import table_from_records, to_records
from tessera.diff import build_diff
from tessera.frames import records_to_dataframe
from tessera.inference import infer_schema_from_records
from tessera.models import DiffResult, Schema, ValidationResult
from tessera.parser import load_file, read_path
from tessera.serialize import dumps_records, format_json, load_schema, loads_records, schema_to_dict, table_to_csv
from tessera.validation import validate_json_text

TOOL_NAME = "tessera"
TABULAR_FORMATS = {".csv", ".txt"}
SCHEMA_FORMATS = {".json"}

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_DIFF_CHANGES = 3
EXIT_VALIDATE_FAILED = 5


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class TesseraArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True, default=str)


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def classify_backend_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (UnicodeDecodeError, ValueError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def require_tabular(path: Path) -> None:
    suffix = path.suffix.lower()
    if suffix not in TABULAR_FORMATS:
        raise CliError(
            f"Unsupported file type '{suffix or '[missing extension]'}'. "
            f"Supported: {', '.join(sorted(TABULAR_FORMATS))}",
            EXIT_COMMAND_ERROR,
        )


def resolve_schema(schema_arg: str) -> Schema:
    """A schema comes from a JSON schema file or is inferred from a delimited file."""
    schema_path = Path(schema_arg)
    if not schema_path.exists():
        raise CliError(f"Schema not found: {schema_path}", EXIT_COMMAND_ERROR)
    suffix = schema_path.suffix.lower()
    if suffix in SCHEMA_FORMATS:
        try:
            return load_schema(schema_path)
        except ValueError as exc:
            raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc
    if suffix in TABULAR_FORMATS:
        return load_file(schema_path)["schema"]
    raise CliError("Schema must be a .json schema or a .csv/.txt sample", EXIT_COMMAND_ERROR)


def read_json_text(path: Path) -> str:
    text, _ = read_path(path)
    return text


# ══════════════════════════════════════════════════════════════════════════════
# RENDERING
# ══════════════════════════════════════════════════════════════════════════════

def render_inspect_text(payload: dict[str, Any]) -> str:
    lines = [
        "tessera inspect",
        f"File: {payload['file']}",
        f"Encoding: {payload['detected_encoding']}",
        f"Delimiter: {payload['delimiter']!r}",
        f"Rows: {payload['row_count']}",
        f"Columns: {len(payload['schema']['columns'])}",
    ]
    for column in payload["schema"]["columns"]:
        line = f"- {column['name']}: {column['type']}{' (nullable)' if column['nullable'] else ''}"
        if column["min"] is not None:
            line += f" range {column['min']}..{column['max']}"
        line += f", {column['distinct_count']} distinct"
        lines.append(line)
    if payload["warnings"]:
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in payload["warnings"])
    return "\n".join(lines) + "\n"


def render_validate_text(payload: dict[str, Any]) -> str:
    lines = [
        "tessera validate",
        f"Input: {payload['input']}",
        f"Valid: {payload['valid']}",
        f"Errors: {payload['error_count']}",
    ]
    for error in payload["errors"]:
        location = f"line {error['line_number']}: " if error["line_number"] else ""
        lines.append(f"- [{error['type']}] {location}{error['message']}")
    return "\n".join(lines) + "\n"


def render_diff_text(payload: dict[str, Any]) -> str:
    diff = payload["diff"]
    lines = [
        "tessera diff",
        f"Current: {payload['current']}",
        f"Updated: {payload['updated']}",
        f"Added rows: {diff['added_rows']}",
        f"Removed rows: {diff['removed_rows']}",
        f"Modified rows: {diff['modified_rows']}",
    ]
    if diff["key_mismatches"]:
        lines.append("Key mismatches:")
        lines.extend(
            f"- row {item['row_index']}: {item['type'].lower()} key '{item['key']}'"
            for item in diff["key_mismatches"]
        )
    return "\n".join(lines) + "\n"


# ══════════════════════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════════════════════

def build_validate_payload(input_path: Path, result: ValidationResult) -> dict[str, Any]:
    errors = [error.to_dict() for error in result.errors]
    return {
        "contract": build_contract("tessera.validate"),
        "tool_version": TOOL_VERSION,
        "input": str(input_path),
        "valid": result.is_valid,
        "error_count": len(errors),
        "errors": errors,
        "run_summary": build_run_summary(
            tool=TOOL_NAME,
            command="validate",
            input_path=input_path,
            status="ok" if result.is_valid else "failed",
            metrics={"records": len(result.model) if result.model is not None else None},
        ),
    }


def build_diff_payload(current_path: Path, updated_path: Path, diff: DiffResult) -> dict[str, Any]:
    return {
        "contract": build_contract("tessera.diff"),
        "tool_version": TOOL_VERSION,
        "current": str(current_path),
        "updated": str(updated_path),
        "diff": diff.to_dict(),
        "run_summary": build_run_summary(
            tool=TOOL_NAME,
            command="diff",
            input_path=updated_path,
            metrics={
                "added": len(diff.added_rows),
                "removed": len(diff.removed_rows),
                "modified": len(diff.modified_rows),
                "key_mismatches": len(diff.key_mismatches),
            },
        ),
    }


# ══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = TesseraArgumentParser(prog="tessera", description="Schema inference, validation and diffing for CSV and JSON data.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect = subparsers.add_parser("inspect", help="Parse a delimited file and print its inferred schema.")
    inspect.add_argument("input", help="Input file path")
    inspect.add_argument("--preview", type=int, default=0, help="Print the first N converted records")
    inspect.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    inspect.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    convert = subparsers.add_parser("convert", help="Convert a delimited file into JSON records.")
    convert.add_argument("input", help="Input file path")
    convert.add_argument("--schema", help="Schema to convert with (.json schema or .csv sample); inferred when omitted")
    convert.add_argument("--output", help="Write records to this path instead of stdout")
    convert.add_argument("--format", choices=["json", "csv"], default="json", help="json records or normalized csv")
    convert.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    fmt = subparsers.add_parser("format", help="Pretty-print a JSON document.")
    fmt.add_argument("input", help="JSON file path")
    fmt.add_argument("--output", help="Write to this path instead of stdout")
    fmt.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    validate = subparsers.add_parser("validate", help="Validate a JSON document against a schema.")
    validate.add_argument("input", help="JSON file path")
    validate.add_argument("--schema", required=True, help="Schema path (.json schema or .csv/.txt sample)")
    validate.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    validate.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    diff = subparsers.add_parser("diff", help="Diff two JSON record sets row by row.")
    diff.add_argument("current", help="Current JSON file")
    diff.add_argument("updated", help="Updated JSON file")
    diff.add_argument("--schema", help="Schema path; inferred from the current file when omitted")
    diff.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    diff.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_inspect(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    try:
        require_tabular(input_path)
        loaded = load_file(input_path)
        payload = {
            "contract": build_contract("tessera.inspect"),
            "tool_version": TOOL_VERSION,
            "file": input_path.name,
            "detected_encoding": loaded["detected_encoding"],
            "delimiter": loaded["delimiter"],
            "row_count": len(loaded["table"].rows),
            "schema": schema_to_dict(loaded["schema"]),
            "warnings": loaded["warnings"],
            "run_summary": build_run_summary(
                tool=TOOL_NAME,
                command="inspect",
                input_path=input_path,
                warnings=loaded["warnings"],
                metrics={"rows": len(loaded["table"].rows), "columns": len(loaded["table"].columns)},
            ),
        }
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_inspect_text(payload).rstrip(), quiet=args.quiet)
            if args.preview > 0:
                preview = records_to_dataframe(loaded["records"][: args.preview])
                emit_human(preview.to_string(index=False), quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_convert(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    try:
        require_tabular(input_path)
        loaded = load_file(input_path)
        schema = loaded["schema"]
        records = loaded["records"]
        if args.schema:
            schema = resolve_schema(args.schema)
            records = to_records(loaded["table"], schema)

        if args.format == "csv":
            document = table_to_csv(table_from_records(records, schema)).rstrip("\n")
        else:
            document = dumps_records(records)

        if args.output:
            output_path = Path(args.output)
            write_text(output_path, document + "\n")
            emit_human(f"Records written: {output_path} ({len(records)} records)", quiet=args.quiet)
        else:
            print(document)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_validate(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    try:
        schema = resolve_schema(args.schema)
        result = validate_json_text(read_json_text(input_path), schema)
        payload = build_validate_payload(input_path, result)
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_validate_text(payload).rstrip(), quiet=args.quiet)
        return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATE_FAILED
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_diff(args: argparse.Namespace) -> int:
    current_path = Path(args.current)
    updated_path = Path(args.updated)
    for path in (current_path, updated_path):
        if not path.exists():
            eprint(f"File not found: {path}")
            return EXIT_COMMAND_ERROR

    try:
        current = loads_records(read_json_text(current_path))
        updated = loads_records(read_json_text(updated_path))
        schema = resolve_schema(args.schema) if args.schema else infer_schema_from_records(current)
        diff = build_diff(current, updated, schema)
        payload = build_diff_payload(current_path, updated_path, diff)
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_diff_text(payload).rstrip(), quiet=args.quiet)
        return EXIT_DIFF_CHANGES if diff.has_changes else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_format(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    try:
        text = read_json_text(input_path)
        formatted = format_json(text)
        if args.output:
            output_path = Path(args.output)
            write_text(output_path, formatted.rstrip("\n") + "\n")
            emit_human(f"Formatted JSON written: {output_path}", quiet=args.quiet)
        else:
            print(formatted.rstrip("\n"))
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "inspect":
            return run_inspect(args)
        if args.command == "convert":
            return run_convert(args)
        if args.command == "validate":
            return run_validate(args)
        if args.command == "diff":
            return run_diff(args)
        if args.command == "format":
            return run_format(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
