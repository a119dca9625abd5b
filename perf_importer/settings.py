"""
Configuration for the command line and the import page.

Sources, later ones winning: built-in defaults, a JSON config file,
PERF_IMPORTER_* environment variables, explicit overrides.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from perf_importer.store import (
    DEFAULT_TABLE,
    DEFAULT_TIMEOUT,
    JsonFileReportStore,
    ReportStore,
    RestReportStore,
)

DEFAULT_CONFIG_NAME = "perf-importer.json"
DEFAULT_STORE_PATH = "perf-importer-reports.json"

ENV_STORE = "PERF_IMPORTER_STORE"
ENV_API_KEY = "PERF_IMPORTER_API_KEY"
ENV_TABLE = "PERF_IMPORTER_TABLE"
ENV_TIMEOUT = "PERF_IMPORTER_TIMEOUT"

CONFIG_KEYS = {"store_url", "api_key", "table", "timeout"}

STARTER_CONFIG = {
    "store_url": DEFAULT_STORE_PATH,
    "api_key": None,
    "table": DEFAULT_TABLE,
    "timeout": DEFAULT_TIMEOUT,
}


@dataclass(frozen=True)
class Settings:
    store_url: str = DEFAULT_STORE_PATH
    api_key: Optional[str] = None
    table: str = DEFAULT_TABLE
    timeout: float = DEFAULT_TIMEOUT

    @property
    def is_remote(self) -> bool:
        return self.store_url.startswith(("http://", "https://"))


def _coerce_timeout(value: Any, source: str) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid timeout in {source}: {value!r}")
    if timeout <= 0:
        raise ValueError(f"Timeout in {source} must be positive, got {value!r}")
    return timeout


def read_config_file(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Could not read config {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Config root must be a JSON object: {path}")
    unknown = sorted(set(payload) - CONFIG_KEYS)
    if unknown:
        raise ValueError(f"Unknown config key(s) in {path}: {', '.join(unknown)}")
    return payload


def load_settings(
    config_path: "str | Path | None" = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    store_override: Optional[str] = None,
) -> Settings:
    """
    Resolve settings. An explicit `config_path` must exist; otherwise
    perf-importer.json in the working directory is read when present.
    """
    env = os.environ if env is None else env
    settings = Settings()

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ValueError(f"Config not found: {path}")
    else:
        path = Path.cwd() / DEFAULT_CONFIG_NAME
    if path.exists():
        payload = read_config_file(path)
        updates: dict[str, Any] = {}
        if payload.get("store_url"):
            updates["store_url"] = str(payload["store_url"])
        if payload.get("api_key"):
            updates["api_key"] = str(payload["api_key"])
        if payload.get("table"):
            updates["table"] = str(payload["table"])
        if payload.get("timeout") is not None:
            updates["timeout"] = _coerce_timeout(payload["timeout"], str(path))
        settings = replace(settings, **updates)

    env_updates: dict[str, Any] = {}
    if env.get(ENV_STORE):
        env_updates["store_url"] = env[ENV_STORE]
    if env.get(ENV_API_KEY):
        env_updates["api_key"] = env[ENV_API_KEY]
    if env.get(ENV_TABLE):
        env_updates["table"] = env[ENV_TABLE]
    if env.get(ENV_TIMEOUT):
        env_updates["timeout"] = _coerce_timeout(env[ENV_TIMEOUT], ENV_TIMEOUT)
    settings = replace(settings, **env_updates)

    if store_override:
        settings = replace(settings, store_url=store_override)
    return settings


def build_store(settings: Settings) -> ReportStore:
    if settings.is_remote:
        return RestReportStore(
            settings.store_url,
            api_key=settings.api_key,
            table=settings.table,
            timeout=settings.timeout,
        )
    return JsonFileReportStore(settings.store_url)


def starter_config_text() -> str:
    return json.dumps(STARTER_CONFIG, indent=2) + "\n"
