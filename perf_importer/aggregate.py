"""Report-level totals derived from a campaign list."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from perf_importer.models import PerformanceCampaign


@dataclass(frozen=True)
class ReportTotals:
    total_spend: float
    total_results: float
    avg_ctr: float
    avg_cpc: float

    def as_dict(self) -> dict[str, float]:
        return {
            "totalSpend": self.total_spend,
            "totalResults": self.total_results,
            "avgCtr": self.avg_ctr,
            "avgCpc": self.avg_cpc,
        }


def compute_totals(campaigns: Iterable[PerformanceCampaign]) -> ReportTotals:
    """
    Sums for spend/results; plain (unweighted) means for CTR and CPC.

    Always a full pass over the list, in list order.
    """
    items = list(campaigns)
    if not items:
        return ReportTotals(0.0, 0.0, 0.0, 0.0)
    count = len(items)
    return ReportTotals(
        total_spend=sum(item.spend for item in items),
        total_results=sum(item.results for item in items),
        avg_ctr=sum(item.ctr for item in items) / count,
        avg_cpc=sum(item.cpc for item in items) / count,
    )
