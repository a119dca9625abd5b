#!/usr/bin/env python3
"""
Generates sample-data/meta_export.xlsx, a pt-BR Meta Ads export as saved
from the ads manager.

Run from the repo root:
    python sample-data/generate_meta_xlsx.py

Layout baked in:
  - Two metadata rows and a blank row above the header
  - Native numeric cells (spend, impressions, clicks) and date cells
  - A campaign with an empty CTR cell, so CTR/CPC are derived
  - A result type with a trailing "(Pixel)" annotation
  - A totals row at the bottom
  - A second, ignored "Notas" sheet
"""

from datetime import date
from pathlib import Path

import openpyxl

OUTPUT = Path(__file__).parent / "meta_export.xlsx"

HEADER = [
    "Início dos relatórios",
    "Término dos relatórios",
    "Nome da campanha",
    "Veiculação",
    "Valor usado (BRL)",
    "Impressões",
    "Cliques no link",
    "CTR (taxa de cliques no link)",
    "Resultados",
    "Tipo de resultado",
]

ROWS = [
    [date(2024, 5, 1), date(2024, 5, 31), "Campanha Conversão Maio", "active", 1500.0, 120000, 2400, 2.0, 45, "Compras (Pixel)"],
    [date(2024, 5, 1), date(2024, 5, 31), "Campanha Tráfego Blog", "active", 350.75, 63571, 1180, None, 1180, "Cliques no link"],
    [date(2024, 5, 1), date(2024, 5, 31), "Remarketing Carrinho", "inactive", 820.4, 25300, 610, 2.41, 22, "Compras"],
]


def build_workbook(path: Path) -> Path:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Campanhas"
    ws.append(["Relatório de desempenho"])
    ws.append(["Conta: Loja Exemplo"])
    ws.append([])
    ws.append(HEADER)
    for row in ROWS:
        ws.append(row)
    ws.append([None, None, "Total", None, sum(row[4] for row in ROWS), sum(row[5] for row in ROWS)])

    notes = wb.create_sheet("Notas")
    notes.append(["Exportado do gerenciador de anúncios"])

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path


if __name__ == "__main__":
    print(f"Created: {build_workbook(OUTPUT)}")
