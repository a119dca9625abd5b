"""Locate the header row among the first rows of an export."""

from __future__ import annotations

from typing import Any

from perf_importer.columns import find_column_index
from perf_importer.synonyms import COLUMN_SYNONYMS, HEADER_SCORE_WEIGHTS, MAX_HEADER_SCORE

HEADER_SCAN_ROWS = 30


def score_header_row(row: list[Any]) -> int:
    if not row:
        return 0
    return sum(
        weight
        for role, weight in HEADER_SCORE_WEIGHTS
        if find_column_index(row, COLUMN_SYNONYMS[role]) is not None
    )


def locate_header_row(matrix: list[list[Any]], scan_rows: int = HEADER_SCAN_ROWS) -> int:
    """
    Index of the best-scoring row in the first `scan_rows` rows.

    Ties go to the earliest row; with no scoring row the header is row 0.
    """
    best_idx = 0
    best_score = 0
    for idx, row in enumerate(matrix[:scan_rows]):
        score = score_header_row(row)
        if score > best_score:
            best_idx = idx
            best_score = score
        if score >= MAX_HEADER_SCORE:
            break
    return best_idx
