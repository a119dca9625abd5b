import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from perf_importer.settings import (
    DEFAULT_STORE_PATH,
    Settings,
    build_store,
    load_settings,
    starter_config_text,
)
from perf_importer.store import JsonFileReportStore, RestReportStore


class SettingsPrecedenceTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = Path(self._tmp.name)
        self._cwd = os.getcwd()
        os.chdir(self.tmpdir)

    def tearDown(self):
        os.chdir(self._cwd)
        self._tmp.cleanup()

    def test_defaults(self):
        settings = load_settings(env={})
        self.assertEqual(settings, Settings())
        self.assertEqual(settings.store_url, DEFAULT_STORE_PATH)
        self.assertFalse(settings.is_remote)

    def test_config_file_in_cwd_is_read(self):
        (self.tmpdir / "perf-importer.json").write_text(
            json.dumps({"store_url": "reports/all.json", "timeout": 3}), encoding="utf-8"
        )
        settings = load_settings(env={})
        self.assertEqual(settings.store_url, "reports/all.json")
        self.assertEqual(settings.timeout, 3.0)

    def test_env_overrides_config_and_flag_overrides_env(self):
        config = self.tmpdir / "custom.json"
        config.write_text(json.dumps({"store_url": "from-config.json", "table": "t1"}), encoding="utf-8")
        env = {
            "PERF_IMPORTER_STORE": "https://example.supabase.co",
            "PERF_IMPORTER_API_KEY": "k",
            "PERF_IMPORTER_TIMEOUT": "2.5",
        }
        settings = load_settings(config, env=env)
        self.assertEqual(settings.store_url, "https://example.supabase.co")
        self.assertEqual(settings.table, "t1")
        self.assertEqual(settings.api_key, "k")
        self.assertEqual(settings.timeout, 2.5)
        self.assertTrue(settings.is_remote)

        settings = load_settings(config, env=env, store_override="flag.json")
        self.assertEqual(settings.store_url, "flag.json")

    def test_invalid_configs_raise_value_error(self):
        bad_cases = {
            "list.json": "[1, 2]",
            "broken.json": "{",
            "timeout.json": json.dumps({"timeout": "soon"}),
            "unknown.json": json.dumps({"colour": "blue"}),
        }
        for name, text in bad_cases.items():
            with self.subTest(name=name):
                path = self.tmpdir / name
                path.write_text(text, encoding="utf-8")
                with self.assertRaises(ValueError):
                    load_settings(path, env={})

    def test_explicit_missing_config_raises(self):
        with self.assertRaisesRegex(ValueError, "Config not found"):
            load_settings(self.tmpdir / "nope.json", env={})

    def test_bad_env_timeout(self):
        with self.assertRaises(ValueError):
            load_settings(env={"PERF_IMPORTER_TIMEOUT": "0"})

    def test_os_environ_is_default(self):
        with mock.patch.dict(os.environ, {"PERF_IMPORTER_TABLE": "reports_v2"}):
            self.assertEqual(load_settings().table, "reports_v2")

    def test_starter_config_is_loadable(self):
        path = self.tmpdir / "starter.json"
        path.write_text(starter_config_text(), encoding="utf-8")
        self.assertEqual(load_settings(path, env={}), Settings())


class BuildStoreTests(unittest.TestCase):
    def test_path_selects_json_store(self):
        store = build_store(Settings(store_url="reports.json"))
        self.assertIsInstance(store, JsonFileReportStore)
        self.assertEqual(store.path, Path("reports.json"))

    def test_url_selects_rest_store(self):
        store = build_store(Settings(store_url="https://example.supabase.co", api_key="k", table="t", timeout=4))
        self.assertIsInstance(store, RestReportStore)
        self.assertEqual(store.endpoint, "https://example.supabase.co/rest/v1/t")
        self.assertEqual(store.timeout, 4)


if __name__ == "__main__":
    unittest.main()
