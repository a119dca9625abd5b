from __future__ import annotations

import re
import unittest

from perf_importer import __version__
from perf_importer.contracts import CONTRACT_VERSIONS, build_contract, build_run_summary, utc_now_iso, wrap_payload


class ContractTests(unittest.TestCase):
    def test_every_contract_has_a_semver(self):
        for name, version in CONTRACT_VERSIONS.items():
            with self.subTest(name=name):
                self.assertRegex(version, r"^\d+\.\d+\.\d+$")
                self.assertEqual(build_contract(name), {"name": name, "version": version})

    def test_unknown_contract_is_rejected(self):
        with self.assertRaises(KeyError):
            build_contract("perf_importer.unknown")

    def test_run_summary_counts_warnings(self):
        summary = build_run_summary(
            command="import",
            input_label="export.csv",
            warnings=["Row 4 skipped"],
            metrics={"campaigns_extracted": 3},
        )
        self.assertEqual(summary["tool"], "perf-importer")
        self.assertEqual(summary["status"], "ok")
        self.assertEqual(summary["warnings_count"], 1)
        self.assertEqual(summary["metrics"], {"campaigns_extracted": 3})
        self.assertRegex(summary["generated_at"], r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")

    def test_wrap_payload_adds_versions(self):
        summary = build_run_summary(command="inspect", input_label="x.csv")
        payload = wrap_payload("perf_importer.inspect", {"campaign_count": 2}, summary)
        self.assertEqual(payload["contract"]["name"], "perf_importer.inspect")
        self.assertEqual(payload["schema_version"], payload["contract"]["version"])
        self.assertEqual(payload["tool_version"], __version__)
        self.assertEqual(payload["campaign_count"], 2)
        self.assertIs(payload["run_summary"], summary)

    def test_utc_timestamp_shape(self):
        self.assertTrue(re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", utc_now_iso()))


if __name__ == "__main__":
    unittest.main()
