"""
Tests for configuration loading.
"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import yaml

from jsonl_export.config import AppSettings, ConfigManager
from jsonl_export.errors import UsageError
from jsonl_export.models import BackendKind
from jsonl_export.soft_fail import Classification


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager class."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.env = patch.dict(os.environ, {}, clear=False)
        self.env.start()
        for key in list(os.environ):
            if key.startswith("JSONL_EXPORT_"):
                del os.environ[key]

    def tearDown(self):
        self.env.stop()
        self.temp_dir.cleanup()

    def _write_config(self, data):
        path = os.path.join(self.temp_dir.name, "config.yml")
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f)
        return path

    def test_config_manager_without_file(self):
        config_manager = ConfigManager()
        self.assertEqual(config_manager.config_data, {})
        settings = config_manager.get_app_settings()
        self.assertEqual(settings.output_path, "exports")
        self.assertIsNone(settings.backend)

    def test_missing_file_is_ignored(self):
        config_manager = ConfigManager(os.path.join(self.temp_dir.name, "absent.yml"))
        self.assertEqual(config_manager.config_data, {})

    def test_yaml_settings_loaded(self):
        path = self._write_config(
            {
                "database": {"backend": "oracle"},
                "export": {"output_path": "/data/out", "max_workers": 3, "soft_fail": True},
            }
        )
        settings = ConfigManager(path).get_app_settings()
        self.assertEqual(settings.backend, "oracle")
        self.assertEqual(settings.output_path, "/data/out")
        self.assertEqual(settings.max_workers, 3)
        self.assertTrue(settings.soft_fail)

    def test_environment_overrides_yaml(self):
        path = self._write_config({"export": {"output_path": "/from/yaml"}})
        with patch.dict(os.environ, {"JSONL_EXPORT_OUTPUT_PATH": "/from/env"}):
            settings = ConfigManager(path).get_app_settings()
        self.assertEqual(settings.output_path, "/from/env")

    def test_overrides_win(self):
        path = self._write_config({"export": {"output_path": "/from/yaml"}})
        with patch.dict(os.environ, {"JSONL_EXPORT_OUTPUT_PATH": "/from/env"}):
            settings = ConfigManager(path).get_app_settings({"output_path": "/from/cli"})
        self.assertEqual(settings.output_path, "/from/cli")

    def test_environment_variable_fallback(self):
        with patch.dict(
            os.environ,
            {
                "JSONL_EXPORT_BACKEND": "mysql",
                "JSONL_EXPORT_CONNECTION_STRING": "mysql://env:pw@h/db",
                "JSONL_EXPORT_MAX_WORKERS": "5",
            },
        ):
            settings = AppSettings()
        self.assertEqual(settings.backend, "mysql")
        self.assertEqual(settings.connection_string, "mysql://env:pw@h/db")
        self.assertEqual(settings.max_workers, 5)

    def test_connection_string_resolution(self):
        path = self._write_config(
            {"connection_strings": {"database": "mysql://a@h/one", "other": "mysql://b@h/two"}}
        )
        config_manager = ConfigManager(path)

        self.assertEqual(config_manager.get_connection_string("explicit"), "explicit")
        self.assertEqual(config_manager.get_connection_string(), "mysql://a@h/one")
        self.assertEqual(
            config_manager.get_connection_string(name="other"), "mysql://b@h/two"
        )

    def test_connection_string_from_environment(self):
        with patch.dict(os.environ, {"JSONL_EXPORT_CONNECTION_STRING": "mysql://env@h/db"}):
            self.assertEqual(ConfigManager().get_connection_string(), "mysql://env@h/db")

    def test_environment_connection_string_beats_yaml(self):
        path = self._write_config({"connection_strings": {"database": "mysql://yaml@h/db"}})
        config_manager = ConfigManager(path)
        with patch.dict(os.environ, {"JSONL_EXPORT_CONNECTION_STRING": "mysql://env@h/db"}):
            self.assertEqual(config_manager.get_connection_string(), "mysql://env@h/db")
            self.assertEqual(
                config_manager.get_connection_string("mysql://cli@h/db"), "mysql://cli@h/db"
            )

    def test_missing_connection_string(self):
        with self.assertRaises(UsageError):
            ConfigManager().get_connection_string(name="nowhere")

    def test_build_export_options(self):
        path = self._write_config(
            {
                "database": {"backend": "ORACLE"},
                "connection_strings": {"database": "scott/tiger@XE"},
                "export": {"file_name_prefix": "nightly", "with_timestamp": True},
            }
        )
        options = ConfigManager(path).build_export_options(
            {"output_path": "out", "max_workers": 2, "fetch_size": 50}
        )
        self.assertEqual(options.backend_kind, BackendKind.ORACLE)
        self.assertEqual(options.connection_string, "scott/tiger@XE")
        self.assertEqual(options.output_directory, Path("out"))
        self.assertEqual(options.file_name_prefix, "nightly")
        self.assertTrue(options.append_timestamp)
        self.assertFalse(options.soft_fail_on_missing_table)
        self.assertEqual(options.max_concurrency, 2)
        self.assertEqual(options.fetch_size, 50)

    def test_build_export_options_usage_errors(self):
        config_manager = ConfigManager()
        with self.assertRaises(UsageError):
            config_manager.build_export_options({}, "mysql://u@h/db")
        with self.assertRaises(UsageError):
            config_manager.build_export_options({"backend": "sqlite"}, "x")
        with self.assertRaises(UsageError):
            config_manager.build_export_options({"backend": "mysql"})
        for max_workers in (0, -1):
            with self.subTest(max_workers=max_workers):
                with self.assertRaises(UsageError):
                    config_manager.build_export_options(
                        {"backend": "mysql", "max_workers": max_workers}, "mysql://u@h/db"
                    )

    def test_zero_max_workers_in_yaml_is_rejected(self):
        path = self._write_config({"database": {"backend": "mysql"}, "export": {"max_workers": 0}})
        with self.assertRaises(UsageError):
            ConfigManager(path).build_export_options(connection_string="mysql://u@h/db")

    def test_invalid_environment_value_is_usage_error(self):
        with patch.dict(os.environ, {"JSONL_EXPORT_MAX_WORKERS": "abc"}):
            with self.assertRaises(UsageError):
                ConfigManager().get_app_settings()

    def test_invalid_yaml_value_is_usage_error(self):
        path = self._write_config({"export": {"fetch_size": "lots"}})
        with self.assertRaises(UsageError):
            ConfigManager(path).get_app_settings()

    def test_malformed_yaml_is_usage_error(self):
        path = os.path.join(self.temp_dir.name, "broken.yml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("export:\n  output_path: [unclosed\n")
        with self.assertRaises(UsageError):
            ConfigManager(path)

    def test_non_mapping_yaml_is_usage_error(self):
        path = os.path.join(self.temp_dir.name, "list.yml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("- orders\n- customers\n")
        with self.assertRaises(UsageError):
            ConfigManager(path)

    def test_soft_fail_codes_from_yaml(self):
        path = self._write_config({"soft_fail_codes": {"oracle": [942, 4043]}})
        policy = ConfigManager(path).get_soft_fail_policy()
        self.assertIs(policy.classify(BackendKind.ORACLE, 4043), Classification.SKIPPABLE)
        self.assertIs(policy.classify(BackendKind.MYSQL, 1146), Classification.SKIPPABLE)

    def test_invalid_soft_fail_codes(self):
        path = self._write_config({"soft_fail_codes": {"db2": [204]}})
        with self.assertRaises(UsageError):
            ConfigManager(path).get_soft_fail_policy()

    def test_sample_config_creation(self):
        config_path = os.path.join(self.temp_dir.name, "sample.yml")
        ConfigManager().create_sample_config_file(config_path)

        config_manager = ConfigManager(config_path)
        self.assertIn("connection_strings", config_manager.config_data)
        self.assertEqual(config_manager.get_app_settings().backend, "mysql")
        self.assertTrue(config_manager.get_connection_string().startswith("mysql://"))


if __name__ == "__main__":
    unittest.main()
