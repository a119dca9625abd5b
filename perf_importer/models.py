"""Canonical record types shared by every pipeline stage."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class ColumnRole(str, Enum):
    NAME = "name"
    SPEND = "spend"
    IMPRESSIONS = "impressions"
    REACH = "reach"
    FREQUENCY = "frequency"
    CLICKS = "clicks"
    CTR = "ctr"
    CPC = "cpc"
    CPM = "cpm"
    RESULTS = "results"
    COST_PER_RESULT = "costPerResult"
    RESULT_TYPE = "resultType"
    STATUS = "status"
    PERIOD_START = "periodStart"
    PERIOD_END = "periodEnd"


REQUIRED_ROLES = (ColumnRole.NAME, ColumnRole.SPEND)


@dataclass(frozen=True)
class ColumnMapping:
    """
    Column index per role for one import.

    `inferred` holds the roles that were assigned by the statistical fallback
    rather than by a header synonym.
    """

    indices: Mapping[ColumnRole, int]
    inferred: frozenset = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "indices", MappingProxyType(dict(self.indices)))
        object.__setattr__(self, "inferred", frozenset(self.inferred))

    def get(self, role: ColumnRole) -> int | None:
        return self.indices.get(role)

    def is_resolved(self, role: ColumnRole) -> bool:
        return role in self.indices

    def missing(self, roles=REQUIRED_ROLES) -> list[ColumnRole]:
        return [role for role in roles if role not in self.indices]

    def as_dict(self) -> dict[str, Any]:
        return {
            role.value: {
                "index": self.indices.get(role),
                "source": None if role not in self.indices else ("inferred" if role in self.inferred else "synonym"),
            }
            for role in ColumnRole
        }


NUMERIC_FIELDS = (
    "spend",
    "impressions",
    "reach",
    "frequency",
    "clicks",
    "ctr",
    "cpc",
    "cpm",
    "results",
    "cost_per_result",
)

_CAMEL = {
    "cost_per_result": "costPerResult",
    "result_type": "resultType",
    "client_id": "clientId",
    "total_spend": "totalSpend",
    "total_results": "totalResults",
    "avg_ctr": "avgCtr",
    "avg_cpc": "avgCpc",
    "upload_date": "uploadDate",
    "file_name": "fileName",
    "period_start": "periodStart",
    "period_end": "periodEnd",
}


def _finite(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


@dataclass(frozen=True)
class PerformanceCampaign:
    id: str
    name: str
    spend: float = 0.0
    impressions: float = 0.0
    reach: float = 0.0
    frequency: float = 0.0
    clicks: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cpm: float = 0.0
    results: float = 0.0
    cost_per_result: float = 0.0
    result_type: str = "Resultados"
    status: str | None = None

    @property
    def name_key(self) -> str:
        return self.name.strip()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if item.name == "status" and value is None:
                continue
            payload[_CAMEL.get(item.name, item.name)] = value
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PerformanceCampaign":
        values: dict[str, Any] = {
            "id": str(payload.get("id") or ""),
            "name": str(payload.get("name") or ""),
            "result_type": str(payload.get("resultType") or "Resultados"),
            "status": payload.get("status") or None,
        }
        for name in NUMERIC_FIELDS:
            values[name] = _finite(payload.get(_CAMEL.get(name, name)))
        return cls(**values)


@dataclass(frozen=True)
class PerformanceReport:
    """
    One client's campaigns for one month.

    The aggregate fields are always produced by `aggregate.compute_totals`
    from `campaigns`; nothing else sets them.
    """

    id: str
    client_id: str
    month: str
    campaigns: tuple[PerformanceCampaign, ...] = field(default_factory=tuple)
    total_spend: float = 0.0
    total_results: float = 0.0
    avg_ctr: float = 0.0
    avg_cpc: float = 0.0
    upload_date: str = ""
    file_name: str = ""
    period_start: str | None = None
    period_end: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if item.name == "campaigns":
                value = [campaign.to_dict() for campaign in value]
            payload[_CAMEL.get(item.name, item.name)] = value
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PerformanceReport":
        return cls(
            id=str(payload.get("id") or ""),
            client_id=str(payload.get("clientId") or ""),
            month=str(payload.get("month") or ""),
            campaigns=tuple(
                PerformanceCampaign.from_dict(item) for item in payload.get("campaigns") or []
            ),
            total_spend=_finite(payload.get("totalSpend")),
            total_results=_finite(payload.get("totalResults")),
            avg_ctr=_finite(payload.get("avgCtr")),
            avg_cpc=_finite(payload.get("avgCpc")),
            upload_date=str(payload.get("uploadDate") or ""),
            file_name=str(payload.get("fileName") or ""),
            # Older rows were written with startDate/endDate.
            period_start=payload.get("periodStart") or payload.get("startDate") or None,
            period_end=payload.get("periodEnd") or payload.get("endDate") or None,
        )
