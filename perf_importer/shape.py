"""
Auto-delimiter repair for matrices whose rows decoded as one long string.

A semicolon export opened as comma-separated arrives as rows of a single cell
like "Campanha A;1.500,00;10". repair_delimiters() tries each candidate
delimiter and keeps whichever layout gives the widest sample.
"""

from __future__ import annotations

from typing import Any

RawMatrix = list[list[Any]]

CANDIDATE_DELIMITERS = (";", "\t", ",")
SAMPLE_ROWS = 10


def _is_empty_row(row: list[Any]) -> bool:
    return not row or all(cell is None or str(cell).strip() == "" for cell in row)


def average_width(matrix: RawMatrix, sample_rows: int = SAMPLE_ROWS) -> float:
    sample = [row for row in matrix if not _is_empty_row(row)][:sample_rows]
    if not sample:
        return 0.0
    return sum(len(row) for row in sample) / len(sample)


def split_single_cell_rows(matrix: RawMatrix, delimiter: str) -> RawMatrix:
    """Return a new matrix with one-cell rows containing `delimiter` split on it."""
    result: RawMatrix = []
    for row in matrix:
        if len(row) == 1 and isinstance(row[0], str) and delimiter in row[0]:
            result.append([cell.strip() for cell in row[0].split(delimiter)])
        else:
            result.append(list(row))
    return result


def repair_delimiters(matrix: RawMatrix) -> tuple[RawMatrix, str | None]:
    """
    Pick the best of "no change" and each candidate delimiter.

    Returns (matrix, delimiter) where delimiter is None when no re-split won.
    The input matrix is never modified. Ties keep the earlier candidate.
    """
    best_matrix = [list(row) for row in matrix]
    best_delimiter: str | None = None
    best_width = average_width(best_matrix)

    for delimiter in CANDIDATE_DELIMITERS:
        candidate = split_single_cell_rows(matrix, delimiter)
        width = average_width(candidate)
        if width > best_width:
            best_matrix = candidate
            best_delimiter = delimiter
            best_width = width

    return best_matrix, best_delimiter
