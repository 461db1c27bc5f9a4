"""
parser.py: delimited text reader for tessera

Public API:
    table  = parse_text("Name;Age\\nAlice;30\\n")
    result = load_file("path/to/file.csv")

Result dict keys (load_file):
    table              untyped Table (always present)
    schema             inferred Schema
    records            list of records converted with that schema
    delimiter          detected delimiter; None for empty input
    detected_encoding  encoding used to decode the bytes
    encoding_info      full dict: detected, confidence, is_utf8, bom, suspicious_chars
    original_rows      row count including the header row
    original_columns   column count
    warnings           list of warning strings
"""

from __future__ import annotations

import codecs
import re
from pathlib import Path

import chardet

from tessera.converter import to_records
from tessera.inference import infer_schema
from tessera.models import Row, Table

DELIMITER_CANDIDATES = (",", ";")
QUOTE = '"'

LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")

# UTF-32 marks first: the UTF-32-LE BOM starts with the UTF-16-LE BOM.
BOMS = (
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)


# ══════════════════════════════════════════════════════════════════════════════
# TOKENIZING
# ══════════════════════════════════════════════════════════════════════════════

def split_lines(text: str) -> list[str]:
    """Physical lines of ``text``, dropping empty and whitespace-only ones."""
    return [line for line in LINE_BREAK_RE.split(text) if line.strip()]


def detect_delimiter(line: str) -> str:
    """
    Pick the field delimiter from a single (header) line.

    Only characters outside double-quoted spans are counted. Semicolon wins
    only when strictly more frequent than comma.
    """
    counts = {candidate: 0 for candidate in DELIMITER_CANDIDATES}
    in_quotes = False
    for char in line:
        if char == QUOTE:
            in_quotes = not in_quotes
        elif not in_quotes and char in counts:
            counts[char] += 1
    return ";" if counts[";"] > counts[","] else ","


def tokenize_line(line: str, delimiter: str) -> list[str]:
    """
    Split one line into raw fields.

    Inside quotes the delimiter is literal and ``""`` is an escaped quote.
    Whitespace is preserved and empty fields stay empty strings.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if in_quotes:
            if char == QUOTE:
                if i + 1 < length and line[i + 1] == QUOTE:
                    current.append(QUOTE)
                    i += 2
                    continue
                in_quotes = False
            else:
                current.append(char)
        elif char == delimiter:
            fields.append("".join(current))
            current = []
        elif char == QUOTE:
            in_quotes = True
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def parse_lines(lines: list[str], delimiter: str | None = None) -> tuple[Table, str | None]:
    if not lines:
        return Table([], []), None

    delimiter = delimiter or detect_delimiter(lines[0])
    columns = [name or "" for name in tokenize_line(lines[0], delimiter)]
    rows = [Row(list(tokenize_line(line, delimiter))) for line in lines[1:]]
    return Table(columns, rows), delimiter


def parse_text(text: str, delimiter: str | None = None) -> Table:
    """Tokenize raw delimited text into an untyped Table."""
    table, _ = parse_lines(split_lines(text), delimiter)
    return table


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def detect_bom(raw: bytes) -> str | None:
    for bom, encoding in BOMS:
        if raw.startswith(bom):
            return encoding
    return None


def detect_encoding_info(raw: bytes) -> dict:
    """
    Detect encoding from raw bytes.

    A byte order mark wins outright; otherwise chardet decides.
    Returns dict with: detected, confidence, is_utf8, bom, suspicious_chars.
    """
    bom = detect_bom(raw)
    if bom:
        detected = bom
        confidence = 1.0
    elif not raw:
        detected = "utf-8"
        confidence = 1.0
    else:
        result = chardet.detect(raw)
        detected = result.get("encoding") or "unknown"
        confidence = round(result.get("confidence") or 0.0, 2)

    is_utf8 = detected.upper().replace("-", "") in ("UTF8", "ASCII", "UTF8SIG")

    suspicious: list[str] = []
    if not is_utf8 and not bom:
        for row_idx, line in enumerate(raw.split(b"\n")[:100], start=1):
            try:
                line.decode("utf-8")
            except UnicodeDecodeError as e:
                bad_byte = line[e.start : e.end]
                suspicious.append(f"row {row_idx}: byte {bad_byte!r} at position {e.start}")

    return {
        "detected": detected,
        "confidence": confidence,
        "is_utf8": is_utf8,
        "bom": bom,
        "suspicious_chars": suspicious[:10],
    }


def read_text(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes into text.

    UTF-16/32 input (BOM-marked) decodes in one pass. Everything else decodes
    line by line: UTF-8, then the preferred encoding, then latin-1, then
    cp1252 with replacement. NUL bytes and a leading BOM are removed.
    """
    bom = detect_bom(raw)
    if bom and bom != "utf-8":
        text = raw[len(_bom_bytes(bom)):].decode(bom, errors="replace")
        return text.replace("\x00", "")
    if bom == "utf-8":
        raw = raw[len(codecs.BOM_UTF8):]

    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc or enc == "unknown":
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines)


def _bom_bytes(encoding: str) -> bytes:
    for bom, name in BOMS:
        if name == encoding:
            return bom
    return b""


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def read_path(path: "str | Path") -> tuple[str, dict]:
    """
    Read and decode a text file.

    Raises:
        FileNotFoundError  if the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    raw = path.read_bytes()
    enc_info = detect_encoding_info(raw)
    enc = enc_info["detected"] if enc_info["detected"] != "unknown" else "utf-8"
    return read_text(raw, enc), enc_info


def load_table(path: "str | Path") -> Table:
    text, _ = read_path(path)
    return parse_text(text)


def load_file(path: "str | Path") -> dict:
    """
    Load a delimited text file, infer its schema and convert its rows.

    Raises:
        FileNotFoundError  if the file does not exist.
    """
    text, enc_info = read_path(path)
    table, delimiter = parse_lines(split_lines(text))
    schema = infer_schema(table)

    warnings: list[str] = []
    if enc_info["suspicious_chars"]:
        warnings.append(
            f"Input is not valid UTF-8 ({len(enc_info['suspicious_chars'])} suspicious lines); "
            f"decoded as {enc_info['detected']}"
        )
    short_rows = sum(1 for row in table.rows if len(row.cells) < len(table.columns))
    if short_rows:
        warnings.append(f"{short_rows} rows have fewer cells than the header; missing cells read as null")
    long_rows = sum(1 for row in table.rows if len(row.cells) > len(table.columns))
    if long_rows:
        warnings.append(f"{long_rows} rows have more cells than the header; extra cells are ignored")

    return {
        "table": table,
        "schema": schema,
        "records": to_records(table, schema),
        "delimiter": delimiter,
        "detected_encoding": enc_info["detected"],
        "encoding_info": enc_info,
        "original_rows": len(table.rows) + (1 if table.columns else 0),
        "original_columns": len(table.columns),
        "warnings": warnings,
    }
