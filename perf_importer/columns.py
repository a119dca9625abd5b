"""
Column mapping: header synonyms first, value statistics as a fallback.

The synonym phase resolves every role it can from the header row: exact
matches first for all roles, then substring matches over the columns no
exact match claimed. When the campaign name, amount spent, impressions or
clicks are still missing, the first data rows are profiled per column and
the missing roles are assigned from the profile (text-heavy column ->
name, largest numeric average -> spend, next largest -> impressions, then
clicks).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Any, Iterable, Sequence

from perf_importer.errors import SchemaUnresolved
from perf_importer.models import REQUIRED_ROLES, ColumnMapping, ColumnRole
from perf_importer.numeric import looks_numeric, parse_number
from perf_importer.synonyms import COLUMN_SYNONYMS

STAT_SAMPLE_ROWS = 9
TEXT_RATIO_THRESHOLD = 0.8
ZERO_TOLERANCE = 1e-9
MIN_TRUNCATED_HEADER = 3


def normalise_header(value: Any) -> str:
    if value is None or value == "":
        return ""
    return str(value).strip().lower()


def _looks_like_data_cell(header: str) -> bool:
    return ";" in header or header.count(",") > 2


def _exact_match(
    normalised: list[str],
    lowered_keys: list[str],
    claimed: AbstractSet[int] = frozenset(),
) -> int | None:
    for idx, header in enumerate(normalised):
        if header and idx not in claimed and header in lowered_keys:
            return idx
    return None


def _substring_match(
    normalised: list[str],
    lowered_keys: list[str],
    claimed: AbstractSet[int] = frozenset(),
) -> int | None:
    for idx, header in enumerate(normalised):
        if not header or idx in claimed or _looks_like_data_cell(header):
            continue
        if any(key in header for key in lowered_keys):
            return idx
        # Short or numeric cells are data, not truncated headers.
        if len(header) < MIN_TRUNCATED_HEADER or looks_numeric(header):
            continue
        if any(header in key for key in lowered_keys):
            return idx
    return None


def find_column_index(headers: Sequence[Any], keys: Iterable[str]) -> int | None:
    """Index of the first header matching one of `keys`, or None."""
    normalised = [normalise_header(cell) for cell in headers or []]
    lowered_keys = [key.lower() for key in keys if key]
    idx = _exact_match(normalised, lowered_keys)
    if idx is not None:
        return idx
    return _substring_match(normalised, lowered_keys)


@dataclass(frozen=True)
class ColumnStats:
    index: int
    average: float
    text_ratio: float

    @property
    def is_numeric(self) -> bool:
        return self.average > 0


def profile_columns(rows: list[list[Any]]) -> list[ColumnStats]:
    """Average numeric value and text ratio per column over `rows`."""
    if not rows:
        return []
    width = max(len(row) for row in rows)
    stats: list[ColumnStats] = []
    for col_idx in range(width):
        total = 0.0
        count = 0
        text_cells = 0
        for row in rows:
            value = row[col_idx] if col_idx < len(row) else None
            if value is None or str(value).strip() == "":
                continue
            if looks_numeric(value):
                total += parse_number(value)
                count += 1
            else:
                text_cells += 1
        stats.append(
            ColumnStats(
                index=col_idx,
                average=total / count if count else 0.0,
                text_ratio=text_cells / len(rows),
            )
        )
    return stats


def _sample_data_rows(matrix: list[list[Any]], header_idx: int) -> list[list[Any]]:
    window = matrix[header_idx + 1 : header_idx + 1 + STAT_SAMPLE_ROWS]
    return [
        row for row in window
        if row and any(cell is not None and str(cell).strip() for cell in row)
    ]


def infer_missing_roles(
    indices: dict[ColumnRole, int],
    stats: list[ColumnStats],
) -> set[ColumnRole]:
    """Fill name/spend/impressions/clicks in `indices` from column stats."""
    inferred: set[ColumnRole] = set()

    def used() -> set[int]:
        return set(indices.values())

    if ColumnRole.NAME not in indices:
        for column in stats:
            if (
                column.index not in used()
                and column.text_ratio > TEXT_RATIO_THRESHOLD
                and abs(column.average) < ZERO_TOLERANCE
            ):
                indices[ColumnRole.NAME] = column.index
                inferred.add(ColumnRole.NAME)
                break

    if ColumnRole.SPEND not in indices:
        candidates = [column for column in stats if column.index not in used() and column.is_numeric]
        if candidates:
            best = max(candidates, key=lambda column: column.average)
            indices[ColumnRole.SPEND] = best.index
            inferred.add(ColumnRole.SPEND)

    if ColumnRole.IMPRESSIONS not in indices and ColumnRole.CLICKS not in indices:
        remaining = sorted(
            (column for column in stats if column.index not in used() and column.is_numeric),
            key=lambda column: column.average,
            reverse=True,
        )
        for role, column in zip((ColumnRole.IMPRESSIONS, ColumnRole.CLICKS), remaining):
            indices[role] = column.index
            inferred.add(role)

    return inferred


def map_columns(matrix: list[list[Any]], header_idx: int) -> ColumnMapping:
    """
    Build the ColumnMapping for the header at `header_idx`.

    Raises SchemaUnresolved when name or spend cannot be located.
    """
    headers = matrix[header_idx] if 0 <= header_idx < len(matrix) else []
    normalised = [normalise_header(cell) for cell in headers]
    keys = {role: [key.lower() for key in COLUMN_SYNONYMS[role]] for role in ColumnRole}

    # Exact matches claim their columns before any substring match runs.
    indices: dict[ColumnRole, int] = {}
    for role in ColumnRole:
        idx = _exact_match(normalised, keys[role], set(indices.values()))
        if idx is not None:
            indices[role] = idx
    for role in ColumnRole:
        if role in indices:
            continue
        idx = _substring_match(normalised, keys[role], set(indices.values()))
        if idx is not None:
            indices[role] = idx

    inferred: set[ColumnRole] = set()
    needs_fallback = any(
        role not in indices
        for role in (ColumnRole.NAME, ColumnRole.SPEND, ColumnRole.IMPRESSIONS, ColumnRole.CLICKS)
    )
    if needs_fallback:
        sample = _sample_data_rows(matrix, header_idx)
        if sample:
            inferred = infer_missing_roles(indices, profile_columns(sample))

    mapping = ColumnMapping(indices, inferred)
    missing = mapping.missing(REQUIRED_ROLES)
    if missing:
        raise SchemaUnresolved([role.value for role in missing])
    return mapping
