"""Shared versioned contracts for perf-importer machine outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from perf_importer import __version__ as TOOL_VERSION

CONTRACT_VERSIONS = {
    "perf_importer.import_summary": "1.0.0",
    "perf_importer.inspect": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    command: str,
    input_label: str,
    status: str = "ok",
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": "perf-importer",
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input": input_label,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def wrap_payload(contract_name: str, payload: dict[str, Any], run_summary: dict[str, Any]) -> dict[str, Any]:
    contract = build_contract(contract_name)
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "run_summary": run_summary,
        **payload,
    }
