"""
Job registry.

Stores job definitions and schedules in SQLite and enforces that job names
are unique, ignoring case.

Usage:
    from jobimporter.registry import JobRegistry

    registry = JobRegistry(db_path, jobs_dir)
    if not registry.exists(definition.name):
        identity, local_state_path = registry.insert(definition, schedule)
"""

from jobimporter.registry.job_registry import JobRegistry
from jobimporter.registry.models import ImportedBundle, JobDefinition, Schedule
from jobimporter.registry.recurrence import ScheduleInterval, parse_repeat

__all__ = [
    # Main class
    "JobRegistry",
    # Data models
    "JobDefinition",
    "Schedule",
    "ImportedBundle",
    # Recurrence
    "ScheduleInterval",
    "parse_repeat",
]
