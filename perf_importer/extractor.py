from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable

from perf_importer.errors import NoDataExtracted
from perf_importer.models import ColumnMapping, ColumnRole, PerformanceCampaign
from perf_importer.numeric import parse_number
from perf_importer.synonyms import NOISE_NAME_TOKENS, NULL_NAME

ANNOTATION_RE = re.compile(r"\s*[\(\[].*?[\)\]]")
DEFAULT_RESULT_TYPE = "Resultados"

SKIP_REASONS = {
    "short_row": "Row is shorter than the name/spend columns",
    "empty_name": "Campaign name is empty",
    "noise_label": "Totals, summary or null row",
    "repeated_header": "Header row repeated inside the data",
}


@dataclass
class SkippedRow:
    row_number: int
    reason: str
    label: str = ""


@dataclass
class ExtractionResult:
    campaigns: list[PerformanceCampaign]
    skipped: list[SkippedRow] = field(default_factory=list)
    period_start: str | None = None
    period_end: str | None = None


def _cell(row: list[Any], idx: int | None) -> Any:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _period_text(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return _cell_text(value)


def clean_result_type(value: Any) -> str:
    """Drop trailing annotations like "(Meta)" or "[pixel]" from a result type."""
    cleaned = ANNOTATION_RE.sub("", _cell_text(value)).strip()
    return cleaned or DEFAULT_RESULT_TYPE


def classify_name(name: str, header_cells: set[str]) -> str | None:
    """Skip reason for a row with this name cell, or None for a campaign row."""
    if not name:
        return "empty_name"
    lowered = name.lower()
    if lowered == NULL_NAME or any(token in lowered for token in NOISE_NAME_TOKENS):
        return "noise_label"
    if name in header_cells:
        return "repeated_header"
    return None


def build_campaign(
    row: list[Any],
    mapping: ColumnMapping,
    name: str,
    id_factory: Callable[[], str],
) -> PerformanceCampaign:
    def number(role: ColumnRole) -> float:
        return max(0.0, parse_number(_cell(row, mapping.get(role))))

    spend = number(ColumnRole.SPEND)
    impressions = number(ColumnRole.IMPRESSIONS)
    clicks = number(ColumnRole.CLICKS)
    ctr = number(ColumnRole.CTR)
    cpc = number(ColumnRole.CPC)

    if ctr == 0 and impressions > 0 and clicks > 0:
        ctr = clicks / impressions * 100
    if cpc == 0 and clicks > 0 and spend > 0:
        cpc = spend / clicks

    status = None
    if mapping.is_resolved(ColumnRole.STATUS):
        status = _cell_text(_cell(row, mapping.get(ColumnRole.STATUS))) or None

    return PerformanceCampaign(
        id=id_factory(),
        name=name,
        spend=spend,
        impressions=impressions,
        reach=number(ColumnRole.REACH),
        frequency=number(ColumnRole.FREQUENCY),
        clicks=clicks,
        ctr=ctr,
        cpc=cpc,
        cpm=number(ColumnRole.CPM),
        results=number(ColumnRole.RESULTS),
        cost_per_result=number(ColumnRole.COST_PER_RESULT),
        result_type=clean_result_type(_cell(row, mapping.get(ColumnRole.RESULT_TYPE))),
        status=status,
    )


def extract_campaigns(
    matrix: list[list[Any]],
    header_idx: int,
    mapping: ColumnMapping,
    *,
    id_factory: Callable[[], str] | None = None,
) -> ExtractionResult:
    """
    Walk the rows below the header and build one campaign per data row.

    Noise rows are recorded in `skipped`. Raises NoDataExtracted when no row
    survives.
    """
    id_factory = id_factory or (lambda: str(uuid.uuid4()))
    headers = matrix[header_idx] if 0 <= header_idx < len(matrix) else []
    header_cells = {_cell_text(cell) for cell in headers if _cell_text(cell)}
    name_idx = mapping.get(ColumnRole.NAME)
    spend_idx = mapping.get(ColumnRole.SPEND)
    required_width = max(name_idx, spend_idx)
    start_idx = mapping.get(ColumnRole.PERIOD_START)
    end_idx = mapping.get(ColumnRole.PERIOD_END)

    result = ExtractionResult(campaigns=[])
    for offset, row in enumerate(matrix[header_idx + 1 :], start=header_idx + 2):
        row = row or []
        if len(row) <= required_width:
            result.skipped.append(SkippedRow(offset, "short_row"))
            continue

        name = _cell_text(row[name_idx])
        reason = classify_name(name, header_cells)
        if reason:
            result.skipped.append(SkippedRow(offset, reason, name[:60]))
            continue

        result.campaigns.append(build_campaign(row, mapping, name, id_factory))

        if result.period_start is None and start_idx is not None:
            result.period_start = _period_text(_cell(row, start_idx)) or None
        if result.period_end is None and end_idx is not None:
            result.period_end = _period_text(_cell(row, end_idx)) or None

    if not result.campaigns:
        raise NoDataExtracted(len(result.skipped))
    return result
