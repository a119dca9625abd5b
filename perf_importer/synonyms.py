"""
Header synonyms per column role.

Names cover the pt-BR and en-US exports of the Meta Ads manager plus the
truncated headers produced when those exports are pasted from a browser
table. Order inside a list does not matter; matching is exact first, then
substring containment.
"""

from __future__ import annotations

from perf_importer.models import ColumnRole

COLUMN_SYNONYMS: dict[ColumnRole, tuple[str, ...]] = {
    ColumnRole.NAME: ("Nome da campanha", "Campaign Name", "Campanha", "Nome"),
    ColumnRole.SPEND: (
        "Valor usado (BRL)",
        "Valor gasto",
        "Amount Spent",
        "Gasto",
        "Valor usado",
        "Spent",
        "Usa",
    ),
    ColumnRole.IMPRESSIONS: ("Impressões", "Impressions", "Impr", "Exibições", "Exibicao"),
    ColumnRole.REACH: ("Alcance", "Reach", "Alca"),
    ColumnRole.FREQUENCY: ("Frequência", "Frequency", "Freq"),
    ColumnRole.CLICKS: (
        "Cliques no link (todos)",
        "Cliques únicos no link",
        "Cliques no link",
        "Link Clicks",
        "Unique Link Clicks",
        "Cliques",
        "Clicks",
        "Clic",
    ),
    ColumnRole.CTR: (
        "CTR (taxa de cliques no link)",
        "CTR (todos)",
        "CTR",
        "Link Click-Through Rate",
        "Unique CTR",
        "Taxa de cliques",
    ),
    ColumnRole.CPC: (
        "CPC (custo por clique no link)",
        "CPC (todos)",
        "CPC",
        "Cost Per Link Click",
        "Custo por clique",
    ),
    ColumnRole.CPM: ("CPM (custo por 1.000 impressões)", "CPM", "Cost Per 1,000 Impressions"),
    ColumnRole.RESULTS: (
        "Resultados",
        "Results",
        "Result",
        "Resultado",
        "Resu",
        "Total de resultados",
    ),
    ColumnRole.COST_PER_RESULT: (
        "Custo por resultado",
        "Cost Per Result",
        "Custo/resultado",
        "Custo por",
        "Custo/re",
    ),
    ColumnRole.RESULT_TYPE: ("Tipo de resultado", "Result Type", "Tipo de re", "Tipo", "Result"),
    ColumnRole.STATUS: ("Status de veiculação", "Veiculação", "Delivery", "Status", "Estado"),
    ColumnRole.PERIOD_START: ("Início dos relatórios", "Reporting Starts", "Data de início"),
    ColumnRole.PERIOD_END: ("Término dos relatórios", "Reporting Ends", "Data de término"),
}

# Header-row scoring weights: a row holding these labels is the header.
HEADER_SCORE_WEIGHTS: tuple[tuple[ColumnRole, int], ...] = (
    (ColumnRole.NAME, 2),
    (ColumnRole.SPEND, 1),
    (ColumnRole.RESULTS, 1),
)
MAX_HEADER_SCORE = sum(weight for _, weight in HEADER_SCORE_WEIGHTS)

NOISE_NAME_TOKENS = ("total", "resumo")
NULL_NAME = "null"
