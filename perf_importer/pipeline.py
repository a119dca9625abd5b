"""
pipeline.py — one import, end to end

    plan = build_import_plan(matrix)                       # no store access
    outcome = import_matrix(matrix, client_id="c1", month="2024-05",
                            source_label="export.csv", store=store)
    outcome = import_file("export.xlsx", client_id=..., month=..., store=store)
    outcome = import_pasted_text(text, client_id=..., month=..., store=store)

Stages run in order: shape repair, header location, column mapping,
extraction, totals, reconciliation, one upsert. Any pipeline error is raised
before the store is written.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from perf_importer.aggregate import ReportTotals, compute_totals
from perf_importer.columns import map_columns
from perf_importer.contracts import utc_now_iso
from perf_importer.errors import EmptySource, InvalidTarget
from perf_importer.extractor import SKIP_REASONS, ExtractionResult, extract_campaigns
from perf_importer.header import locate_header_row
from perf_importer.loader import is_blank_matrix, load_matrix, read_pasted_text
from perf_importer.merge import reconcile
from perf_importer.models import ColumnMapping, PerformanceReport
from perf_importer.shape import RawMatrix, repair_delimiters
from perf_importer.store import ReportStore

PASTED_LABEL = "pasted data"
MONTH_RE = re.compile(r"\d{4}-(0[1-9]|1[0-2])")
DELIMITER_NAMES = {";": "semicolon", "\t": "tab", ",": "comma"}


@dataclass
class ImportPlan:
    matrix: RawMatrix
    header_index: int
    mapping: ColumnMapping
    extraction: ExtractionResult
    totals: ReportTotals
    repaired_delimiter: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def campaign_count(self) -> int:
        return len(self.extraction.campaigns)


@dataclass
class ImportOutcome:
    report: PerformanceReport
    plan: ImportPlan
    created: bool
    replaced: list[str] = field(default_factory=list)
    inserted: list[str] = field(default_factory=list)
    saved: bool = True
    warnings: list[str] = field(default_factory=list)


def validate_target(client_id: str, month: str) -> tuple[str, str]:
    client = (client_id or "").strip()
    if not client:
        raise InvalidTarget("A client id is required.")
    month = (month or "").strip()
    if not MONTH_RE.fullmatch(month):
        raise InvalidTarget(f"Month must be YYYY-MM (01-12), got {month!r}.")
    return client, month


def _plan_warnings(plan: ImportPlan) -> list[str]:
    warnings: list[str] = []
    if plan.repaired_delimiter is not None:
        name = DELIMITER_NAMES.get(plan.repaired_delimiter, repr(plan.repaired_delimiter))
        warnings.append(f"Rows were re-split on the {name} delimiter.")
    inferred = sorted(role.value for role in plan.mapping.inferred)
    if inferred:
        warnings.append(f"Column(s) inferred from values, not headers: {', '.join(inferred)}")
    for skipped in plan.extraction.skipped:
        text = f"Row {skipped.row_number} skipped: {SKIP_REASONS.get(skipped.reason, skipped.reason)}"
        if skipped.label:
            text += f" ({skipped.label})"
        warnings.append(text)
    return warnings


def build_import_plan(
    matrix: RawMatrix,
    *,
    id_factory: Optional[Callable[[], str]] = None,
) -> ImportPlan:
    """Run every pure stage over `matrix`. Raises the pipeline errors."""
    if not matrix or is_blank_matrix(matrix):
        raise EmptySource()
    repaired, delimiter = repair_delimiters(matrix)
    header_index = locate_header_row(repaired)
    mapping = map_columns(repaired, header_index)
    extraction = extract_campaigns(repaired, header_index, mapping, id_factory=id_factory)
    plan = ImportPlan(
        matrix=repaired,
        header_index=header_index,
        mapping=mapping,
        extraction=extraction,
        totals=compute_totals(extraction.campaigns),
        repaired_delimiter=delimiter,
    )
    plan.warnings = _plan_warnings(plan)
    return plan


def import_matrix(
    matrix: RawMatrix,
    *,
    client_id: str,
    month: str,
    source_label: str,
    store: ReportStore,
    dry_run: bool = False,
    id_factory: Optional[Callable[[], str]] = None,
    now: Callable[[], str] = utc_now_iso,
    extra_warnings: Optional[list[str]] = None,
) -> ImportOutcome:
    """
    Import `matrix` into the report for (client_id, month).

    Fetches the stored report once and upserts the merged report once.
    With dry_run=True the merge is computed but nothing is written.
    """
    client_id, month = validate_target(client_id, month)
    id_factory = id_factory or (lambda: str(uuid.uuid4()))
    plan = build_import_plan(matrix, id_factory=id_factory)

    existing = store.fetch_report(client_id, month)
    merged = reconcile(
        existing,
        plan.extraction.campaigns,
        client_id=client_id,
        month=month,
        source_label=source_label,
        period_start=plan.extraction.period_start,
        period_end=plan.extraction.period_end,
        id_factory=id_factory,
        now=now,
    )
    if not dry_run:
        store.upsert_report(merged.report)

    return ImportOutcome(
        report=merged.report,
        plan=plan,
        created=merged.created,
        replaced=merged.replaced,
        inserted=merged.inserted,
        saved=not dry_run,
        warnings=list(extra_warnings or []) + plan.warnings,
    )


def import_file(
    path: "str | Path",
    *,
    client_id: str,
    month: str,
    store: ReportStore,
    source_label: Optional[str] = None,
    sheet_name: Optional[str] = None,
    **kwargs: Any,
) -> ImportOutcome:
    validate_target(client_id, month)
    path = Path(path)
    loaded = load_matrix(path, sheet_name=sheet_name)
    return import_matrix(
        loaded["matrix"],
        client_id=client_id,
        month=month,
        source_label=source_label or path.name,
        store=store,
        extra_warnings=loaded["warnings"],
        **kwargs,
    )


def import_pasted_text(
    text: str,
    *,
    client_id: str,
    month: str,
    store: ReportStore,
    source_label: str = PASTED_LABEL,
    **kwargs: Any,
) -> ImportOutcome:
    validate_target(client_id, month)
    return import_matrix(
        read_pasted_text(text),
        client_id=client_id,
        month=month,
        source_label=source_label,
        store=store,
        **kwargs,
    )
