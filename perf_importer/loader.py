"""
loader.py — raw matrix reader for ad-platform exports

Supports: .csv .tsv .txt .xlsx .xlsm .xls .ods, plus pasted text blocks.

Public API:
    loaded = load_matrix("path/to/export.xlsx")
    loaded = matrix_from_bytes(upload_bytes, "export.csv")
    matrix = read_pasted_text(clipboard_text)

Result dict keys (load_matrix / matrix_from_bytes):
    matrix            — list of rows, each a list of cells (str or number)
    detected_format   — "csv", "xlsx", ...
    detected_encoding — encoding name for text files; None for workbooks
    delimiter         — sniffed delimiter for text files; None otherwise
    sheet_name        — sheet that was read; None for text files
    sheet_names       — all sheet names for workbooks; None otherwise
    warnings          — list of warning strings

Numbers stored as numbers in workbooks stay numbers. Text files produce
strings only; locale handling happens later in numeric.parse_number().
"""

from __future__ import annotations

import csv
import io
import re
from collections import Counter
from pathlib import Path
from typing import Any, Optional

import chardet
import openpyxl
import pandas as pd

from perf_importer.errors import EmptySource

TEXT_FORMATS = {".csv", ".tsv", ".txt"}
OPENPYXL_FORMATS = {".xlsx", ".xlsm"}
PANDAS_FORMATS = {".xls", ".ods"}
ALL_FORMATS = TEXT_FORMATS | OPENPYXL_FORMATS | PANDAS_FORMATS

PASTE_SPLIT_RE = re.compile(r"\t| {2,}")


# ══════════════════════════════════════════════════════════════════════════════
# TEXT DECODING
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw)
    return result.get("encoding") or "utf-8"


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line: UTF-8, then the detected encoding, then latin-1, then
    cp1252 with replacement (never fails). Null bytes are stripped.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc:
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    text = "\n".join(decoded_lines)
    return text.lstrip("\ufeff")


def _detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from sample lines.

    csv.Sniffer first; otherwise score each candidate by column-count
    consistency and width.
    """
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            pass

    best_delim = ","
    best_score = float("-inf")
    for delim in (",", ";", "\t", "|"):
        rows = [
            row
            for row in csv.reader(io.StringIO("\n".join(sample_lines)), delimiter=delim)
            if any(cell.strip() for cell in row)
        ]
        if len(rows) < 2:
            continue
        mode_width, mode_count = Counter(len(row) for row in rows).most_common(1)[0]
        score = (mode_width * 2.0) + (mode_count / len(rows)) * mode_width
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_score = score
            best_delim = delim
    return best_delim


# ══════════════════════════════════════════════════════════════════════════════
# CELL / ROW HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def _normalise_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if pd.isna(value):
        return ""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, "item"):
        # numpy scalars from pandas
        return value.item()
    return value


def _trim_trailing_empty_cells(row: list[Any]) -> list[Any]:
    trimmed = list(row)
    while trimmed and (trimmed[-1] is None or str(trimmed[-1]).strip() == ""):
        trimmed.pop()
    return trimmed


def _normalise_row(values) -> list[Any]:
    return _trim_trailing_empty_cells([_normalise_cell(value) for value in values])


def is_blank_matrix(matrix: list[list[Any]]) -> bool:
    return not any(
        str(cell).strip() for row in matrix for cell in row if cell is not None
    )


def _choose_sheet(all_sheets: list[str], sheet_name: Optional[str], warnings: list[str]) -> str:
    if not all_sheets:
        raise EmptySource("The workbook has no sheets.")
    if sheet_name is not None:
        if sheet_name not in all_sheets:
            raise ValueError(f"Sheet '{sheet_name}' not found. Available: {all_sheets}")
        return sheet_name
    if len(all_sheets) > 1:
        warnings.append(
            f"Multiple sheets found ({len(all_sheets)} total); used '{all_sheets[0]}'. "
            f"Ignored: {all_sheets[1:]}"
        )
    return all_sheets[0]


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _load_text(raw: bytes, suffix: str) -> dict:
    encoding = _detect_encoding(raw)
    text = _read_text_safely(raw, encoding)
    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)
    matrix = [
        _trim_trailing_empty_cells([cell.strip() for cell in row])
        for row in csv.reader(io.StringIO(text), delimiter=delimiter)
    ]
    return {
        "matrix": matrix,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": encoding,
        "delimiter": delimiter,
        "sheet_name": None,
        "sheet_names": None,
        "warnings": [],
    }


def _load_openpyxl(raw: bytes, suffix: str, sheet_name: Optional[str]) -> dict:
    warnings: list[str] = []
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(raw), data_only=True, read_only=True)
    except Exception as exc:
        raise ValueError(f"Could not open workbook: {exc}") from exc

    try:
        chosen = _choose_sheet(list(workbook.sheetnames), sheet_name, warnings)
        matrix = [_normalise_row(values) for values in workbook[chosen].iter_rows(values_only=True)]
        all_sheets = list(workbook.sheetnames)
    finally:
        workbook.close()

    return {
        "matrix": matrix,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": None,
        "delimiter": None,
        "sheet_name": chosen,
        "sheet_names": all_sheets,
        "warnings": warnings,
    }


def _load_pandas_workbook(raw: bytes, suffix: str, sheet_name: Optional[str]) -> dict:
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd — run: pip install xlrd")
        engine = "xlrd"
    else:
        try:
            import odf  # noqa: F401
        except ImportError:
            raise ImportError(".ods files require odfpy — run: pip install odfpy")
        engine = "odf"

    warnings: list[str] = []
    try:
        with pd.ExcelFile(io.BytesIO(raw), engine=engine) as xf:
            all_sheets = [str(name) for name in xf.sheet_names]
            chosen = _choose_sheet(all_sheets, sheet_name, warnings)
            df = xf.parse(chosen, header=None)
    except ValueError:
        raise
    except Exception as exc:
        raise ValueError(f"Could not open workbook: {exc}") from exc

    matrix = [_normalise_row(row) for row in df.astype(object).itertuples(index=False, name=None)]
    return {
        "matrix": matrix,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": None,
        "delimiter": None,
        "sheet_name": chosen,
        "sheet_names": all_sheets,
        "warnings": warnings,
    }


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def matrix_from_bytes(raw: bytes, filename: str, sheet_name: Optional[str] = None) -> dict:
    """
    Decode an uploaded export into a raw matrix.

    Raises:
        EmptySource  if the buffer holds no non-blank cell.
        ValueError   if the format is unsupported or unreadable.
        ImportError  if an optional workbook engine is missing.
    """
    suffix = Path(filename).suffix.lower()
    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")
    if not raw or not raw.strip():
        raise EmptySource()

    if suffix in TEXT_FORMATS:
        loaded = _load_text(raw, suffix)
    elif suffix in OPENPYXL_FORMATS:
        loaded = _load_openpyxl(raw, suffix, sheet_name)
    else:
        loaded = _load_pandas_workbook(raw, suffix, sheet_name)

    if is_blank_matrix(loaded["matrix"]):
        raise EmptySource()
    return loaded


def load_matrix(path: "str | Path", sheet_name: Optional[str] = None) -> dict:
    """Read an export file from disk. See matrix_from_bytes() for errors."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return matrix_from_bytes(path.read_bytes(), path.name, sheet_name=sheet_name)


def read_pasted_text(text: str) -> list[list[str]]:
    """
    Split a pasted block into rows and cells.

    Lines split on a tab, or on runs of two or more spaces when the block was
    copied from a rendered table.
    """
    if text is None or not text.strip():
        raise EmptySource("The pasted data is empty.")
    rows: list[list[str]] = []
    for line in text.strip().split("\n"):
        line = line.rstrip("\r")
        rows.append([(cell or "").strip() for cell in PASTE_SPLIT_RE.split(line)])
    return rows
