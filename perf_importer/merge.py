"""
Replace-or-insert reconciliation of a fresh extraction into a stored report.

Campaign identity is the trimmed, case-sensitive name. A re-imported name
takes the new values but keeps the stored id; new names are appended;
stored campaigns absent from the new source stay untouched.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable

from perf_importer.aggregate import compute_totals
from perf_importer.contracts import utc_now_iso
from perf_importer.models import PerformanceCampaign, PerformanceReport


@dataclass
class MergeResult:
    report: PerformanceReport
    created: bool
    replaced: list[str] = field(default_factory=list)
    inserted: list[str] = field(default_factory=list)


def merge_campaigns(
    existing: Iterable[PerformanceCampaign],
    incoming: Iterable[PerformanceCampaign],
) -> tuple[list[PerformanceCampaign], list[str], list[str]]:
    """
    Returns (merged, replaced_names, inserted_names).

    `merged` keeps stored order, replacing in place, with new names appended
    in source order. A name repeated within `incoming` keeps its last values.
    """
    merged: list[PerformanceCampaign] = []
    slots: dict[str, int] = {}
    for campaign in existing:
        key = campaign.name_key
        if key in slots:
            continue
        slots[key] = len(merged)
        merged.append(campaign)

    stored_keys = set(slots)
    replaced: list[str] = []
    inserted: list[str] = []
    for campaign in incoming:
        key = campaign.name_key
        if key in slots:
            slot = slots[key]
            merged[slot] = replace(campaign, id=merged[slot].id)
            if key in stored_keys and key not in replaced:
                replaced.append(key)
        else:
            slots[key] = len(merged)
            merged.append(campaign)
            inserted.append(key)
    return merged, replaced, inserted


def reconcile(
    existing: PerformanceReport | None,
    campaigns: list[PerformanceCampaign],
    *,
    client_id: str,
    month: str,
    source_label: str,
    period_start: str | None = None,
    period_end: str | None = None,
    id_factory: Callable[[], str] | None = None,
    now: Callable[[], str] = utc_now_iso,
) -> MergeResult:
    """Build the report to upsert for (client_id, month)."""
    id_factory = id_factory or (lambda: str(uuid.uuid4()))
    stored = existing.campaigns if existing is not None else ()
    merged, replaced, inserted = merge_campaigns(stored, campaigns)
    totals = compute_totals(merged)

    report = PerformanceReport(
        id=existing.id if existing is not None else id_factory(),
        client_id=client_id,
        month=month,
        campaigns=tuple(merged),
        total_spend=totals.total_spend,
        total_results=totals.total_results,
        avg_ctr=totals.avg_ctr,
        avg_cpc=totals.avg_cpc,
        upload_date=now(),
        file_name=source_label,
        period_start=period_start or (existing.period_start if existing is not None else None),
        period_end=period_end or (existing.period_end if existing is not None else None),
    )
    return MergeResult(report=report, created=existing is None, replaced=replaced, inserted=inserted)
