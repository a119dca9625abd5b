"""
store.py — report persistence adapters

Public API:
    store = InMemoryReportStore()
    store = JsonFileReportStore("perf-importer-reports.json")
    store = RestReportStore("https://<project>.supabase.co", api_key="...")

    report = store.fetch_report(client_id, month)   # PerformanceReport | None
    store.upsert_report(report)

Every adapter is keyed by (client_id, month). There is no revision check:
the last upsert for a key wins.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

import requests

from perf_importer.errors import StoreError
from perf_importer.models import PerformanceReport

DEFAULT_TABLE = "performance_reports"
DEFAULT_TIMEOUT = 10.0


class ReportStore(Protocol):
    def fetch_report(self, client_id: str, month: str) -> Optional[PerformanceReport]:
        ...

    def upsert_report(self, report: PerformanceReport) -> None:
        ...


def _key(client_id: str, month: str) -> str:
    return f"{client_id}::{month}"


# ══════════════════════════════════════════════════════════════════════════════
# LOCAL STORES
# ══════════════════════════════════════════════════════════════════════════════

class InMemoryReportStore:
    def __init__(self, reports: Optional[list[PerformanceReport]] = None) -> None:
        self._reports: dict[str, dict[str, Any]] = {}
        self.upsert_count = 0
        for report in reports or []:
            self._reports[_key(report.client_id, report.month)] = report.to_dict()

    def fetch_report(self, client_id: str, month: str) -> Optional[PerformanceReport]:
        payload = self._reports.get(_key(client_id, month))
        return PerformanceReport.from_dict(payload) if payload is not None else None

    def upsert_report(self, report: PerformanceReport) -> None:
        self._reports[_key(report.client_id, report.month)] = report.to_dict()
        self.upsert_count += 1

    def __len__(self) -> int:
        return len(self._reports)


class JsonFileReportStore:
    """
    All reports in one JSON document:

        {"reports": {"<clientId>::<month>": {...report...}}}

    Writes go to a temp file in the same directory and are renamed over the
    target, so a crash mid-write leaves the previous document intact.
    """

    def __init__(self, path: "str | Path") -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Could not read report store {self.path}: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("reports", {}), dict):
            raise StoreError(f"Report store {self.path} is not a reports document.")
        return payload.get("reports", {})

    def _write_all(self, reports: dict[str, dict[str, Any]]) -> None:
        text = json.dumps({"reports": reports}, indent=2, ensure_ascii=False, sort_keys=True)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StoreError(f"Could not write report store {self.path}: {exc}") from exc

    def fetch_report(self, client_id: str, month: str) -> Optional[PerformanceReport]:
        payload = self._read_all().get(_key(client_id, month))
        return PerformanceReport.from_dict(payload) if payload is not None else None

    def upsert_report(self, report: PerformanceReport) -> None:
        reports = self._read_all()
        reports[_key(report.client_id, report.month)] = report.to_dict()
        self._write_all(reports)


# ══════════════════════════════════════════════════════════════════════════════
# REMOTE ROW STORE
# ══════════════════════════════════════════════════════════════════════════════

def report_to_row(report: PerformanceReport) -> dict[str, Any]:
    """Snake-case row for the remote table."""
    return {
        "id": report.id,
        "client_id": report.client_id,
        "month": report.month,
        "upload_date": report.upload_date,
        "file_name": report.file_name,
        "campaigns": [campaign.to_dict() for campaign in report.campaigns],
        "total_spend": report.total_spend,
        "total_results": report.total_results,
        "avg_ctr": report.avg_ctr,
        "avg_cpc": report.avg_cpc,
        "start_date": report.period_start,
        "end_date": report.period_end,
    }


def row_to_report(row: dict[str, Any]) -> PerformanceReport:
    return PerformanceReport.from_dict(
        {
            "id": row.get("id"),
            "clientId": row.get("client_id"),
            "month": row.get("month"),
            "uploadDate": row.get("upload_date"),
            "fileName": row.get("file_name"),
            "campaigns": row.get("campaigns") or [],
            "totalSpend": row.get("total_spend"),
            "totalResults": row.get("total_results"),
            "avgCtr": row.get("avg_ctr"),
            "avgCpc": row.get("avg_cpc"),
            "startDate": row.get("start_date"),
            "endDate": row.get("end_date"),
        }
    )


class RestReportStore:
    """PostgREST-style table reached over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        table: str = DEFAULT_TABLE,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.table = table
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        headers.update(extra or {})
        return headers

    def fetch_report(self, client_id: str, month: str) -> Optional[PerformanceReport]:
        params = {"client_id": f"eq.{client_id}", "month": f"eq.{month}", "select": "*"}
        try:
            response = self.session.get(
                self.endpoint, params=params, headers=self._headers(), timeout=self.timeout
            )
            response.raise_for_status()
            rows = response.json()
        except requests.RequestException as exc:
            raise StoreError(f"Could not fetch report for {client_id} {month}: {exc}") from exc
        except ValueError as exc:
            raise StoreError(f"Report store returned invalid JSON: {exc}") from exc
        if not isinstance(rows, list):
            raise StoreError("Report store returned an unexpected payload.")
        return row_to_report(rows[0]) if rows else None

    def upsert_report(self, report: PerformanceReport) -> None:
        headers = self._headers({"Prefer": "resolution=merge-duplicates,return=minimal"})
        try:
            response = self.session.post(
                self.endpoint,
                params={"on_conflict": "client_id,month"},
                json=report_to_row(report),
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StoreError(
                f"Could not save report for {report.client_id} {report.month}: {exc}"
            ) from exc
