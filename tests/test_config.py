"""Tests for configuration settings."""

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from jobimporter.config.settings import (
    DEFAULT_CONFIG_FILE,
    ConfigurationError,
    Settings,
    _settings_to_dict,
    apply_options,
    get_config_path,
    load_config,
    parse_bool,
    save_config,
)


class TestParseBool(unittest.TestCase):
    """Tests for parse_bool."""

    def test_true_values(self) -> None:
        """Test values parsed as True."""
        for value in ["true", "TRUE", "yes", "on", "1", " True "]:
            with self.subTest(value=value):
                self.assertTrue(parse_bool(value))

    def test_false_values(self) -> None:
        """Test values parsed as False."""
        for value in ["false", "No", "off", "0"]:
            with self.subTest(value=value):
                self.assertFalse(parse_bool(value))

    def test_bool_passthrough(self) -> None:
        """Test booleans are returned unchanged."""
        self.assertTrue(parse_bool(True))
        self.assertFalse(parse_bool(False))

    def test_invalid_value(self) -> None:
        """Test unrecognised values raise without a default."""
        with self.assertRaises(ValueError):
            parse_bool("maybe")
        with self.assertRaises(ValueError):
            parse_bool("")

    def test_invalid_value_with_default(self) -> None:
        """Test unrecognised values return the default."""
        self.assertFalse(parse_bool("maybe", default=False))
        self.assertTrue(parse_bool(None, default=True))


class TestSettings(unittest.TestCase):
    """Tests for Settings dataclass."""

    def test_default_paths(self) -> None:
        """Test registry and jobs paths derive from data_dir."""
        settings = Settings(data_dir="/srv/backups")

        self.assertEqual(settings.registry_path, Path("/srv/backups/registry.sqlite"))
        self.assertEqual(settings.jobs_dir, Path("/srv/backups/jobs"))

    def test_explicit_paths(self) -> None:
        """Test explicit registry and jobs paths win."""
        settings = Settings(data_dir="/srv/backups")
        settings.registry.file = "/etc/backups/registry.sqlite"
        settings.jobs.data_dir = "/var/lib/backups/jobs"

        self.assertEqual(settings.registry_path, Path("/etc/backups/registry.sqlite"))
        self.assertEqual(settings.jobs_dir, Path("/var/lib/backups/jobs"))

    def test_default_log_level(self) -> None:
        """Test the default log level is quiet enough for one-line errors."""
        self.assertEqual(Settings().log_level, "WARNING")


class TestConfigPath(unittest.TestCase):
    """Tests for get_config_path."""

    def test_default(self) -> None:
        """Test the default config path."""
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(get_config_path(), DEFAULT_CONFIG_FILE)

    def test_environment(self) -> None:
        """Test JOBIMPORTER_CONFIG overrides the path."""
        with patch.dict(os.environ, {"JOBIMPORTER_CONFIG": "/custom/config.yaml"}):
            self.assertEqual(get_config_path(), Path("/custom/config.yaml"))


class TestLoadConfig(unittest.TestCase):
    """Tests for load_config and save_config."""

    def setUp(self) -> None:
        """Set up test fixtures with temp directory."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config_path = self.temp_dir / "config.yaml"
        self.env = patch.dict(os.environ, {}, clear=True)
        self.env.start()

    def tearDown(self) -> None:
        """Clean up temp directory."""
        self.env.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_missing_file_uses_defaults(self) -> None:
        """Test loading without a config file."""
        settings = load_config(self.config_path)

        self.assertEqual(settings.log_level, "WARNING")
        self.assertIsNone(settings.registry.file)

    def test_load_yaml(self) -> None:
        """Test values from the config file are applied."""
        self.config_path.write_text(
            "jobimporter:\n"
            "  data_dir: /srv/backups\n"
            "  log_level: info\n"
            "registry:\n"
            "  file: /srv/registry.sqlite\n"
            "jobs:\n"
            "  data_dir: /srv/jobs\n"
        )

        settings = load_config(self.config_path)

        self.assertEqual(settings.data_dir, "/srv/backups")
        self.assertEqual(settings.log_level, "INFO")
        self.assertEqual(settings.registry_path, Path("/srv/registry.sqlite"))
        self.assertEqual(settings.jobs_dir, Path("/srv/jobs"))

    def test_empty_file(self) -> None:
        """Test an empty config file."""
        self.config_path.write_text("")

        settings = load_config(self.config_path)

        self.assertEqual(settings.log_level, "WARNING")

    def test_invalid_yaml(self) -> None:
        """Test malformed YAML raises ConfigurationError."""
        self.config_path.write_text("jobimporter: [unclosed\n")

        with self.assertRaises(ConfigurationError):
            load_config(self.config_path)

    def test_non_mapping(self) -> None:
        """Test a YAML list is rejected."""
        self.config_path.write_text("- a\n- b\n")

        with self.assertRaises(ConfigurationError):
            load_config(self.config_path)

    def test_section_not_a_mapping(self) -> None:
        """Test config sections that are not mappings are rejected."""
        for content in ["registry: [1]\n", "jobimporter: x\n", "jobs: 5\n"]:
            with self.subTest(content=content):
                self.config_path.write_text(content)

                with self.assertRaises(ConfigurationError):
                    load_config(self.config_path)

    def test_invalid_log_level(self) -> None:
        """Test validation of log_level."""
        self.config_path.write_text("jobimporter:\n  log_level: LOUD\n")

        with self.assertRaises(ConfigurationError):
            load_config(self.config_path)

    def test_environment_overrides(self) -> None:
        """Test environment variables override the file."""
        self.config_path.write_text("jobimporter:\n  data_dir: /from/file\n")

        with patch.dict(
            os.environ,
            {"JOBIMPORTER_DATA_DIR": "/from/env", "JOBIMPORTER_LOG_LEVEL": "debug"},
        ):
            settings = load_config(self.config_path)

        self.assertEqual(settings.data_dir, "/from/env")
        self.assertEqual(settings.log_level, "DEBUG")

    def test_options_override_environment(self) -> None:
        """Test advanced options are applied last."""
        with patch.dict(os.environ, {"JOBIMPORTER_DATA_DIR": "/from/env"}):
            settings = load_config(
                self.config_path, {"server-datafolder": "/from/options"}
            )

        self.assertEqual(settings.data_dir, "/from/options")

    def test_save_and_load(self) -> None:
        """Test saved settings are read back."""
        settings = Settings(data_dir="/srv/backups", log_level="ERROR")
        settings.jobs.data_dir = "/srv/jobs"

        save_config(settings, self.config_path)
        loaded = load_config(self.config_path)

        self.assertEqual(_settings_to_dict(loaded), _settings_to_dict(settings))


class TestApplyOptions(unittest.TestCase):
    """Tests for apply_options."""

    def test_known_options(self) -> None:
        """Test recognised advanced options."""
        settings = apply_options(
            Settings(),
            {
                "server-datafolder": "/srv/backups",
                "registry-file": "/srv/registry.sqlite",
                "jobs-datafolder": "/srv/jobs",
                "log-level": "debug",
            },
        )

        self.assertEqual(settings.data_dir, "/srv/backups")
        self.assertEqual(settings.registry.file, "/srv/registry.sqlite")
        self.assertEqual(settings.jobs.data_dir, "/srv/jobs")
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.extra_options, {})

    def test_option_keys_case_insensitive(self) -> None:
        """Test option names ignore case."""
        settings = apply_options(Settings(), {"Server-DataFolder": "/srv"})

        self.assertEqual(settings.data_dir, "/srv")

    def test_unknown_options_kept(self) -> None:
        """Test unknown options are recorded, not applied."""
        settings = apply_options(Settings(), {"unencrypted-database": "true"})

        self.assertEqual(settings.extra_options, {"unencrypted-database": "true"})


if __name__ == "__main__":
    unittest.main()
