import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from perf_importer.errors import EmptySource, InvalidTarget, NoDataExtracted, SchemaUnresolved, StoreError
from perf_importer.models import ColumnRole
from perf_importer.pipeline import build_import_plan, import_file, import_matrix, import_pasted_text
from perf_importer.store import InMemoryReportStore

ROOT = Path(__file__).resolve().parents[1]
SAMPLE_DIR = ROOT / "sample-data"
sys.path.insert(0, str(SAMPLE_DIR))

from generate_meta_xlsx import build_workbook  # noqa: E402

FIXED_NOW = "2024-06-01T12:00:00Z"

SOURCE_A = [
    ["Nome da campanha", "Valor usado (BRL)", "Impressões", "Cliques no link", "Resultados"],
    ["X", "100,00", "10.000", "200", "5"],
    ["Y", "50,00", "4.000", "40", "2"],
]
SOURCE_B = [
    ["Campaign Name", "Amount Spent", "Impressions", "Link Clicks", "Results"],
    ["Y", "75.50", "5,000", "100", "3"],
    ["Z", "20.00", "1,000", "10", "1"],
]


def run_import(matrix, store, **kwargs):
    kwargs.setdefault("client_id", "c1")
    kwargs.setdefault("month", "2024-05")
    kwargs.setdefault("source_label", "export.csv")
    return import_matrix(matrix, store=store, now=lambda: FIXED_NOW, **kwargs)


class ImportScenarioTests(unittest.TestCase):
    def test_end_to_end_minimal_scenario(self):
        store = InMemoryReportStore()
        outcome = run_import(
            [["Nome da campanha", "Valor usado (BRL)", "Resultados"], ["Campanha A", "1.500,00", "10"]],
            store,
        )
        report = outcome.report
        self.assertTrue(outcome.created)
        self.assertEqual(len(report.campaigns), 1)
        self.assertEqual(report.campaigns[0].name, "Campanha A")
        self.assertEqual(report.campaigns[0].spend, 1500)
        self.assertEqual(report.campaigns[0].results, 10)
        self.assertEqual(report.total_spend, 1500)
        self.assertEqual(report.total_results, 10)
        self.assertEqual(store.upsert_count, 1)
        self.assertEqual(store.fetch_report("c1", "2024-05"), report)

    def test_same_source_twice_is_idempotent(self):
        store = InMemoryReportStore()
        first = run_import(SOURCE_A, store).report
        second = run_import(SOURCE_A, store).report
        self.assertEqual(len(first.campaigns), len(second.campaigns))
        for field in ("total_spend", "total_results", "avg_ctr", "avg_cpc"):
            self.assertEqual(getattr(first, field), getattr(second, field))
        self.assertEqual([c.id for c in first.campaigns], [c.id for c in second.campaigns])
        self.assertEqual(first.id, second.id)
        self.assertEqual(store.upsert_count, 2)

    def test_source_a_then_source_b(self):
        store = InMemoryReportStore()
        first = run_import(SOURCE_A, store, source_label="a.csv").report
        outcome = run_import(SOURCE_B, store, source_label="b.csv")
        report = outcome.report
        by_name = {c.name: c for c in report.campaigns}
        first_ids = {c.name: c.id for c in first.campaigns}

        self.assertFalse(outcome.created)
        self.assertEqual(outcome.replaced, ["Y"])
        self.assertEqual(outcome.inserted, ["Z"])
        self.assertEqual([c.name for c in report.campaigns], ["X", "Y", "Z"])
        self.assertEqual(by_name["X"], first.campaigns[0])
        self.assertEqual(by_name["Y"].id, first_ids["Y"])
        self.assertEqual(by_name["Y"].spend, 75.5)
        self.assertEqual(by_name["Y"].impressions, 5000)
        self.assertNotIn(by_name["Z"].id, first_ids.values())
        self.assertAlmostEqual(report.total_spend, 100 + 75.5 + 20)
        self.assertEqual(report.total_results, 9)
        self.assertEqual(report.file_name, "b.csv")

    def test_targets_are_isolated(self):
        store = InMemoryReportStore()
        run_import(SOURCE_A, store)
        outcome = run_import(SOURCE_B, store, month="2024-04")
        self.assertTrue(outcome.created)
        self.assertEqual(len(store.fetch_report("c1", "2024-05").campaigns), 2)

    def test_dry_run_does_not_write(self):
        store = InMemoryReportStore()
        outcome = run_import(SOURCE_A, store, dry_run=True)
        self.assertFalse(outcome.saved)
        self.assertEqual(store.upsert_count, 0)
        self.assertIsNone(store.fetch_report("c1", "2024-05"))


class FailureTests(unittest.TestCase):
    def test_failures_never_write(self):
        cases = [
            ([], EmptySource),
            ([["", ""], [" "]], EmptySource),
            ([["foo1", "foo2"], ["alpha", "beta"]], SchemaUnresolved),
            ([["Campaign Name", "Amount Spent"], ["Total", "10"], ["Resumo", "5"]], NoDataExtracted),
        ]
        for matrix, error in cases:
            with self.subTest(error=error.__name__):
                store = InMemoryReportStore()
                store.fetch_report = mock.Mock(wraps=store.fetch_report)
                with self.assertRaises(error):
                    run_import(matrix, store)
                self.assertEqual(store.upsert_count, 0)
                store.fetch_report.assert_not_called()

    def test_failed_reimport_keeps_prior_report(self):
        store = InMemoryReportStore()
        before = run_import(SOURCE_A, store).report
        with self.assertRaises(NoDataExtracted):
            run_import([["Campaign Name", "Amount Spent"], ["Total", "1"]], store)
        self.assertEqual(store.fetch_report("c1", "2024-05"), before)

    def test_invalid_targets(self):
        for client_id, month in [("", "2024-05"), ("  ", "2024-05"), ("c1", "2024-13"), ("c1", "05/2024"), ("c1", "2024-5")]:
            with self.subTest(client_id=client_id, month=month):
                store = InMemoryReportStore()
                with self.assertRaises(InvalidTarget):
                    run_import(SOURCE_A, store, client_id=client_id, month=month)
                self.assertEqual(store.upsert_count, 0)

    def test_store_failure_propagates(self):
        store = mock.Mock()
        store.fetch_report.return_value = None
        store.upsert_report.side_effect = StoreError("down")
        with self.assertRaises(StoreError):
            run_import(SOURCE_A, store)
        store.upsert_report.assert_called_once()


class PlanTests(unittest.TestCase):
    def test_plan_repairs_semicolon_rows_and_reports_warnings(self):
        matrix = [
            ["Relatório"],
            ["Nome da campanha;Valor usado (BRL);Resultados"],
            ["Campanha A;1.500,00;10"],
            ["Total;1.500,00;10"],
        ]
        plan = build_import_plan(matrix)
        self.assertEqual(plan.repaired_delimiter, ";")
        self.assertEqual(plan.header_index, 1)
        self.assertEqual(plan.campaign_count, 1)
        self.assertEqual(plan.totals.total_spend, 1500)
        self.assertTrue(any("semicolon" in warning for warning in plan.warnings))
        self.assertTrue(any("Row 4 skipped" in warning for warning in plan.warnings))

    def test_plan_lists_inferred_roles(self):
        matrix = [
            ["col1", "col2", "col3"],
            ["Alpha", "120.000", "350,00"],
            ["Beta", "80.000", "120,50"],
        ]
        plan = build_import_plan(matrix)
        self.assertIn(ColumnRole.SPEND, plan.mapping.inferred)
        self.assertTrue(any("inferred" in warning for warning in plan.warnings))

    def test_short_variant_column_keeps_first_campaign(self):
        matrix = [
            ["Campaign Name", "Amount Spent", "Variant"],
            ["Summer", "100", "A"],
            ["Winter", "50", "B"],
        ]
        plan = build_import_plan(matrix)
        self.assertEqual(plan.header_index, 0)
        self.assertEqual([c.name for c in plan.extraction.campaigns], ["Summer", "Winter"])
        self.assertEqual(plan.totals.total_spend, 150)

    def test_result_header_is_not_read_as_result_type(self):
        plan = build_import_plan([["Campaign Name", "Amount Spent", "Result"], ["Summer", "100", "7"]])
        campaign = plan.extraction.campaigns[0]
        self.assertEqual(campaign.results, 7)
        self.assertEqual(campaign.result_type, "Resultados")


class SourceWrapperTests(unittest.TestCase):
    def test_import_ptbr_csv_sample(self):
        store = InMemoryReportStore()
        outcome = import_file(SAMPLE_DIR / "meta_export_ptbr.csv", client_id="c1", month="2024-05", store=store)
        report = outcome.report
        self.assertEqual(report.file_name, "meta_export_ptbr.csv")
        self.assertEqual(
            [c.name for c in report.campaigns],
            ["Campanha Conversão Maio", "Campanha Tráfego Blog", "Remarketing Carrinho"],
        )
        self.assertAlmostEqual(report.total_spend, 1500 + 350.75 + 820.40)
        self.assertEqual(report.total_results, 45 + 1180 + 22)
        self.assertEqual(report.campaigns[1].impressions, 63571)
        self.assertEqual(report.campaigns[0].result_type, "Compras")
        self.assertEqual(report.campaigns[2].result_type, "Compras")
        self.assertEqual(report.campaigns[0].status, "active")
        self.assertAlmostEqual(report.campaigns[0].ctr, 2400 / 120000 * 100)
        self.assertEqual(report.period_start, "2024-05-01")
        self.assertEqual(report.period_end, "2024-05-31")

    def test_import_enus_csv_sample(self):
        store = InMemoryReportStore()
        outcome = import_file(SAMPLE_DIR / "meta_export_enus.csv", client_id="c1", month="2024-05", store=store)
        by_name = {c.name: c for c in outcome.report.campaigns}
        self.assertEqual(len(by_name), 3)
        spring = by_name["Spring Sale - Conversions"]
        self.assertAlmostEqual(spring.spend, 1250.5)
        self.assertEqual(spring.impressions, 98400)
        self.assertAlmostEqual(spring.ctr, 2.0)
        self.assertEqual(spring.result_type, "Purchases")
        video = by_name["Brand Awareness Video"]
        self.assertAlmostEqual(video.ctr, 840 / 210000 * 100)
        self.assertAlmostEqual(video.cpc, 640 / 840)
        self.assertEqual(video.results, 150300)

    def test_import_generated_workbook(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = build_workbook(Path(tmpdir) / "meta_export.xlsx")
            store = InMemoryReportStore()
            outcome = import_file(path, client_id="c1", month="2024-05", store=store, source_label="upload.xlsx")
        report = outcome.report
        self.assertEqual(report.file_name, "upload.xlsx")
        self.assertEqual(len(report.campaigns), 3)
        self.assertAlmostEqual(report.total_spend, 1500 + 350.75 + 820.4)
        self.assertEqual(report.campaigns[1].impressions, 63571)
        self.assertAlmostEqual(report.campaigns[1].ctr, 1180 / 63571 * 100)
        self.assertEqual(report.period_start, "2024-05-01")
        self.assertTrue(any("Multiple sheets" in warning for warning in outcome.warnings))

    def test_import_pasted_text(self):
        store = InMemoryReportStore()
        text = "Nome da campanha\tValor usado (BRL)\tResultados\nCampanha A\t1.500,00\t10\nTotal\t1.500,00\t10\n"
        outcome = import_pasted_text(text, client_id="c1", month="2024-05", store=store)
        self.assertEqual(outcome.report.file_name, "pasted data")
        self.assertEqual(outcome.report.total_spend, 1500)
        self.assertEqual(len(outcome.report.campaigns), 1)

    def test_wrappers_validate_target_before_reading(self):
        store = InMemoryReportStore()
        with self.assertRaises(InvalidTarget):
            import_file(ROOT / "missing.csv", client_id="c1", month="bad", store=store)
        with self.assertRaises(InvalidTarget):
            import_pasted_text("", client_id="", month="2024-05", store=store)


if __name__ == "__main__":
    unittest.main()
