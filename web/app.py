#!/usr/bin/env python3
from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Any

import pandas as pd
import streamlit as st

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from perf_importer.errors import ImportPipelineError, StoreError  # noqa: E402
from perf_importer.loader import ALL_FORMATS, matrix_from_bytes, read_pasted_text  # noqa: E402
from perf_importer.pipeline import PASTED_LABEL, import_matrix  # noqa: E402
from perf_importer.settings import build_store, load_settings  # noqa: E402

MONTH_NAMES = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]
MONTHS_BACK = 12


def month_options(today: date | None = None) -> list[tuple[str, str]]:
    """(YYYY-MM, label) for the current month and the previous eleven."""
    today = today or date.today()
    year, month = today.year, today.month
    options = []
    for _ in range(MONTHS_BACK):
        options.append((f"{year:04d}-{month:02d}", f"{MONTH_NAMES[month - 1]} {year}"))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return options


def ensure_state() -> None:
    st.session_state.setdefault("processing", False)
    st.session_state.setdefault("job", None)
    st.session_state.setdefault("result", None)


def build_job(client_id: str, month: str, upload, pasted: str) -> dict[str, Any]:
    if upload is not None:
        return {
            "client_id": client_id,
            "month": month,
            "kind": "file",
            "name": upload.name,
            "data": upload.getvalue(),
        }
    return {"client_id": client_id, "month": month, "kind": "paste", "name": PASTED_LABEL, "data": pasted}


def process_job(job: dict[str, Any]) -> dict[str, Any]:
    warnings: list[str] = []
    try:
        if job["kind"] == "file":
            loaded = matrix_from_bytes(job["data"], job["name"])
            matrix = loaded["matrix"]
            warnings.extend(loaded["warnings"])
        else:
            matrix = read_pasted_text(job["data"])
        store = build_store(load_settings())
        outcome = import_matrix(
            matrix,
            client_id=job["client_id"],
            month=job["month"],
            source_label=job["name"],
            store=store,
            extra_warnings=warnings,
        )
    except (ImportPipelineError, StoreError, ValueError, ImportError) as exc:
        return {"status": "error", "message": str(exc)}
    except Exception as exc:
        return {"status": "error", "message": f"Falha inesperada: {exc}"}
    return {
        "status": "success",
        "created": outcome.created,
        "replaced": outcome.replaced,
        "inserted": outcome.inserted,
        "warnings": outcome.warnings,
        "report": outcome.report.to_dict(),
    }


def render_result(result: dict[str, Any]) -> None:
    if result["status"] == "error":
        st.error(result["message"])
        return

    report = result["report"]
    verb = "criado" if result["created"] else "atualizado"
    st.success(
        f"Relatório {verb}: {len(result['inserted'])} campanha(s) nova(s), "
        f"{len(result['replaced'])} atualizada(s)."
    )
    metrics = st.columns(4)
    metrics[0].metric("Investimento", f"R$ {report['totalSpend']:,.2f}")
    metrics[1].metric("Resultados", f"{report['totalResults']:g}")
    metrics[2].metric("CTR médio", f"{report['avgCtr']:.2f}%")
    metrics[3].metric("CPC médio", f"R$ {report['avgCpc']:,.2f}")

    columns = ["name", "spend", "impressions", "clicks", "ctr", "cpc", "results", "resultType"]
    frame = pd.DataFrame(report["campaigns"])
    st.dataframe(frame[[column for column in columns if column in frame.columns]], width="stretch", hide_index=True)

    if result["warnings"]:
        with st.expander(f"Avisos ({len(result['warnings'])})"):
            for warning in result["warnings"]:
                st.caption(warning)


def main() -> None:
    st.set_page_config(page_title="Importar desempenho", layout="wide", initial_sidebar_state="collapsed")
    ensure_state()

    st.title("Importar desempenho de anúncios")
    processing = st.session_state["processing"]

    options = month_options()
    left, right = st.columns(2)
    month = left.selectbox(
        "Mês de referência",
        options=[value for value, _ in options],
        format_func=dict(options).get,
        disabled=processing,
    )
    client_id = right.text_input("Cliente (id)", disabled=processing)

    file_tab, paste_tab = st.tabs(["Arquivo Excel/CSV", "Copiar e Colar"])
    with file_tab:
        upload = st.file_uploader(
            "Exportação do gerenciador de anúncios",
            type=[ext.lstrip(".") for ext in sorted(ALL_FORMATS)],
            disabled=processing,
        )
    with paste_tab:
        pasted = st.text_area(
            "Cole as linhas da tabela (com o cabeçalho)",
            height=220,
            disabled=processing,
        )

    has_source = upload is not None or bool(pasted.strip())
    submit = st.button(
        "Importar",
        type="primary",
        disabled=processing or not has_source or not client_id.strip(),
    )

    if submit:
        st.session_state["job"] = build_job(client_id.strip(), month, upload, pasted)
        st.session_state["result"] = None
        st.session_state["processing"] = True
        st.rerun()

    if st.session_state["processing"]:
        st.info("Processando a importação...")
        try:
            st.session_state["result"] = process_job(st.session_state["job"])
        finally:
            st.session_state["processing"] = False
            st.session_state["job"] = None
        st.rerun()

    if st.session_state["result"]:
        render_result(st.session_state["result"])


if __name__ == "__main__":
    main()
