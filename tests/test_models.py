"""
Tests for job data models and recurrence parsing.

Tests cover:
- JobDefinition and Schedule dictionary conversion
- Pass-through of unrecognised bundle keys
- Recurrence expression parsing
- Weekday normalization
"""

import unittest
from datetime import timedelta

from jobimporter.registry.models import ImportedBundle, JobDefinition, Schedule
from jobimporter.registry.recurrence import (
    ScheduleInterval,
    normalize_day,
    parse_repeat,
)


class TestJobDefinition(unittest.TestCase):
    """Tests for JobDefinition dataclass."""

    def test_from_dict(self):
        """Test definition creation from a bundle job object."""
        data = {
            "id": 7,
            "name": "Nightly",
            "local_state_path": "/old/7.sqlite",
            "target_url": "file:///mnt/backup",
            "sources": ["/home"],
            "settings": {"keep-versions": "5"},
            "metadata": {"LastBackupSize": "1024"},
        }

        definition = JobDefinition.from_dict(data)

        self.assertEqual(definition.name, "Nightly")
        self.assertEqual(definition.identity, "7")
        self.assertEqual(definition.local_state_path, "/old/7.sqlite")
        self.assertEqual(definition.sources, ["/home"])
        self.assertEqual(definition.settings, {"keep-versions": "5"})
        self.assertEqual(definition.metadata, {"LastBackupSize": "1024"})

    def test_from_dict_missing_fields(self):
        """Test definition creation handles missing fields gracefully."""
        definition = JobDefinition.from_dict({})

        self.assertEqual(definition.name, "")
        self.assertIsNone(definition.identity)
        self.assertIsNone(definition.local_state_path)
        self.assertEqual(definition.sources, [])
        self.assertEqual(definition.extra, {})

    def test_from_dict_keeps_values_unchanged(self):
        """Test option values are not converted."""
        definition = JobDefinition.from_dict(
            {"name": "Nightly", "settings": {"keep-versions": "5", "passphrase": None}}
        )

        self.assertEqual(definition.settings, {"keep-versions": "5"})

    def test_from_dict_rejects_wrong_types(self):
        """Test known fields with the wrong type are rejected."""
        cases = [
            {"name": 5},
            {"sources": "/home"},
            {"sources": ["/home", 5]},
            {"tags": 5},
            {"filters": 5},
            {"filters": ["*.tmp"]},
            {"settings": ["x"]},
            {"settings": {"keep-versions": 5}},
            {"settings": {"flag": True}},
            {"metadata": "none"},
            {"id": [1]},
        ]
        for data in cases:
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    JobDefinition.from_dict(data)

    def test_unknown_keys_pass_through(self):
        """Test that unrecognised keys survive conversion."""
        data = {"name": "Nightly", "retention_policy": "1W:1D", "Options": [1, 2]}

        definition = JobDefinition.from_dict(data)
        result = definition.to_dict()

        self.assertEqual(definition.extra, {"retention_policy": "1W:1D", "Options": [1, 2]})
        self.assertEqual(result["retention_policy"], "1W:1D")
        self.assertEqual(result["Options"], [1, 2])
        self.assertEqual(result["name"], "Nightly")

    def test_to_dict_known_keys_win_over_extra(self):
        """Test that extra keys cannot shadow real fields."""
        definition = JobDefinition(name="Nightly", extra={"name": "Other"})

        self.assertEqual(definition.to_dict()["name"], "Nightly")


class TestSchedule(unittest.TestCase):
    """Tests for Schedule dataclass."""

    def test_from_dict(self):
        """Test schedule creation from a bundle schedule object."""
        schedule = Schedule.from_dict(
            {
                "id": 3,
                "repeat": "1D",
                "time": "2026-01-01T02:00:00+00:00",
                "allowed_days": ["mon", "fri"],
            }
        )

        self.assertEqual(schedule.identity, "3")
        self.assertEqual(schedule.repeat, "1D")
        self.assertEqual(schedule.allowed_days, ["mon", "fri"])
        self.assertIsNone(schedule.last_run)

    def test_to_dict(self):
        """Test schedule serialization to dictionary."""
        schedule = Schedule(repeat="12h", rule="AllowedWeekDays=Monday", extra={"x": 1})

        data = schedule.to_dict()

        self.assertEqual(data["repeat"], "12h")
        self.assertEqual(data["rule"], "AllowedWeekDays=Monday")
        self.assertIsNone(data["id"])
        self.assertEqual(data["x"], 1)

    def test_from_dict_rejects_wrong_types(self):
        """Test schedule fields with the wrong type are rejected."""
        cases = [
            {"repeat": 1},
            {"repeat": "1D", "allowed_days": "mon"},
            {"repeat": "1D", "tags": 5},
            {"repeat": "1D", "time": 1700000000},
        ]
        for data in cases:
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    Schedule.from_dict(data)


class TestImportedBundle(unittest.TestCase):
    """Tests for ImportedBundle dataclass."""

    def test_defaults(self):
        """Test bundle defaults."""
        bundle = ImportedBundle(definition=JobDefinition(name="Nightly"))

        self.assertIsNone(bundle.schedule)
        self.assertFalse(bundle.encrypted)
        self.assertIsNone(bundle.source_path)


class TestParseRepeat(unittest.TestCase):
    """Tests for recurrence expression parsing."""

    def test_named_intervals(self):
        """Test hourly, daily and weekly."""
        self.assertEqual(parse_repeat("hourly"), timedelta(hours=1))
        self.assertEqual(parse_repeat("Daily"), timedelta(days=1))
        self.assertEqual(parse_repeat(" weekly "), timedelta(weeks=1))

    def test_single_units(self):
        """Test each timespan unit."""
        self.assertEqual(parse_repeat("90s"), timedelta(seconds=90))
        self.assertEqual(parse_repeat("30m"), timedelta(minutes=30))
        self.assertEqual(parse_repeat("12h"), timedelta(hours=12))
        self.assertEqual(parse_repeat("1D"), timedelta(days=1))
        self.assertEqual(parse_repeat("2W"), timedelta(weeks=2))
        self.assertEqual(parse_repeat("1M"), timedelta(days=30))
        self.assertEqual(parse_repeat("1Y"), timedelta(days=365))

    def test_minutes_and_months_are_distinct(self):
        """Test that m means minutes and M means months."""
        self.assertNotEqual(parse_repeat("1m"), parse_repeat("1M"))

    def test_combined_parts(self):
        """Test concatenated parts are summed."""
        self.assertEqual(parse_repeat("1D12h"), timedelta(hours=36))

    def test_invalid_values(self):
        """Test malformed expressions raise ValueError."""
        for value in ["", "   ", "abc", "1X", "D1", "1D x", "0D", "fortnightly"]:
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_repeat(value)

    def test_schedule_interval_from_string(self):
        """Test ScheduleInterval parsing."""
        self.assertEqual(ScheduleInterval.from_string("HOURLY"), ScheduleInterval.HOURLY)
        self.assertEqual(ScheduleInterval.WEEKLY.seconds, 604800)
        with self.assertRaises(ValueError):
            ScheduleInterval.from_string("monthly")


class TestNormalizeDay(unittest.TestCase):
    """Tests for weekday normalization."""

    def test_short_and_long_names(self):
        """Test accepted day names."""
        self.assertEqual(normalize_day("Mon"), "mon")
        self.assertEqual(normalize_day("sunday"), "sun")
        self.assertEqual(normalize_day(" WED "), "wed")

    def test_invalid_names(self):
        """Test rejected day names."""
        self.assertIsNone(normalize_day("funday"))
        self.assertIsNone(normalize_day("mo"))
        self.assertIsNone(normalize_day(""))


if __name__ == "__main__":
    unittest.main()
