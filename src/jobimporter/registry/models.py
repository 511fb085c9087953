"""
Data models for job definitions and schedules.

This module defines the dataclasses used to represent jobs in exported
bundles and in the job registry.

Schema Design Decisions:
    - Identities are registry-assigned integers carried as strings
    - Timestamps are ISO-8601 strings, passed through without conversion
    - Job options, filters and metadata are opaque to the importer
    - Unrecognised bundle keys are kept in ``extra`` so nothing is lost
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Keys of a bundle "job" object that map onto JobDefinition fields
_JOB_KEYS = {
    "id",
    "name",
    "local_state_path",
    "description",
    "tags",
    "target_url",
    "sources",
    "settings",
    "filters",
    "metadata",
}

_SCHEDULE_KEYS = {"id", "repeat", "time", "allowed_days", "last_run", "rule", "tags"}


def _identity(data: dict[str, Any]) -> str | None:
    """Read an ``id`` value, which may be a string or an integer."""
    value = data.get("id")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError("'id' must be a string or integer")
    return str(value)


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


def _str(data: dict[str, Any], key: str) -> str:
    return _optional_str(data, key) or ""


def _str_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return list(value)


def _str_dict(data: dict[str, Any], key: str) -> dict[str, str]:
    """Read a mapping of string options. Null values mean "not set"."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping of strings")
    result: dict[str, str] = {}
    for name, item in value.items():
        if item is None:
            continue
        if not isinstance(name, str) or not isinstance(item, str):
            raise ValueError(f"'{key}' must be a mapping of strings")
        result[name] = item
    return result


def _dict_list(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ValueError(f"'{key}' must be a list of objects")
    return [dict(item) for item in value]


@dataclass
class JobDefinition:
    """
    A named backup job configuration.

    Attributes:
        name: Display name, unique across the registry ignoring case.
        identity: Registry-assigned identifier. None until inserted.
        local_state_path: Path to the job's execution store. None until inserted.
        description: Free-form description.
        tags: Labels attached to the job.
        target_url: Where backups are written.
        sources: Paths that are backed up.
        settings: Job options (e.g. "encryption-module", "passphrase").
        filters: Include/exclude filter rules.
        metadata: Environment-specific annotations from the exporting machine.
        extra: Unrecognised keys from the bundle, passed through unchanged.

    Database Table: jobs
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - name TEXT NOT NULL
        - name_key TEXT NOT NULL UNIQUE (casefolded name)
        - local_state_path TEXT NOT NULL
        - definition_json TEXT NOT NULL
        - created_at TEXT NOT NULL
    """

    name: str
    identity: str | None = None
    local_state_path: str | None = None
    description: str = ""
    tags: list[str] = field(default_factory=list)
    target_url: str = ""
    sources: list[str] = field(default_factory=list)
    settings: dict[str, str] = field(default_factory=dict)
    filters: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the bundle/registry dictionary form."""
        data: dict[str, Any] = dict(self.extra)
        data.update(
            {
                "id": self.identity,
                "name": self.name,
                "local_state_path": self.local_state_path,
                "description": self.description,
                "tags": list(self.tags),
                "target_url": self.target_url,
                "sources": list(self.sources),
                "settings": dict(self.settings),
                "filters": list(self.filters),
                "metadata": dict(self.metadata),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobDefinition:
        """
        Create from dictionary.

        Values are taken as they are; null option values are dropped.

        Raises:
            ValueError: If a known field has the wrong type.
        """
        return cls(
            name=_str(data, "name"),
            identity=_identity(data),
            local_state_path=_optional_str(data, "local_state_path"),
            description=_str(data, "description"),
            tags=_str_list(data, "tags"),
            target_url=_str(data, "target_url"),
            sources=_str_list(data, "sources"),
            settings=_str_dict(data, "settings"),
            filters=_dict_list(data, "filters"),
            metadata=_str_dict(data, "metadata"),
            extra={k: v for k, v in data.items() if k not in _JOB_KEYS},
        )


@dataclass
class Schedule:
    """
    Recurrence for a job.

    Attributes:
        repeat: Recurrence expression (e.g. "1D", "12h", "weekly").
        identity: Registry-assigned identifier. None until inserted.
        time: ISO-8601 timestamp of the next run.
        allowed_days: Days the job may run on ("mon".."sun"). Empty means any.
        last_run: ISO-8601 timestamp of the last run on the exporting machine.
        rule: Opaque rule string kept for the scheduler.
        tags: Labels attached to the schedule.
        extra: Unrecognised keys from the bundle.

    Database Table: schedules
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - job_id INTEGER NOT NULL UNIQUE REFERENCES jobs(id)
        - repeat TEXT NOT NULL
        - schedule_json TEXT NOT NULL
    """

    repeat: str
    identity: str | None = None
    time: str | None = None
    allowed_days: list[str] = field(default_factory=list)
    last_run: str | None = None
    rule: str = ""
    tags: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the bundle/registry dictionary form."""
        data: dict[str, Any] = dict(self.extra)
        data.update(
            {
                "id": self.identity,
                "repeat": self.repeat,
                "time": self.time,
                "allowed_days": list(self.allowed_days),
                "last_run": self.last_run,
                "rule": self.rule,
                "tags": list(self.tags),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Schedule:
        """
        Create from dictionary.

        Raises:
            ValueError: If a known field has the wrong type.
        """
        return cls(
            repeat=_str(data, "repeat"),
            identity=_identity(data),
            time=_optional_str(data, "time"),
            allowed_days=_str_list(data, "allowed_days"),
            last_run=_optional_str(data, "last_run"),
            rule=_str(data, "rule"),
            tags=_str_list(data, "tags"),
            extra={k: v for k, v in data.items() if k not in _SCHEDULE_KEYS},
        )


@dataclass
class ImportedBundle:
    """
    A decoded bundle, ready for validation.

    Created once per import and discarded after the registry insert.
    ``definition.identity`` and ``definition.local_state_path`` are always None.
    """

    definition: JobDefinition
    schedule: Schedule | None = None
    encrypted: bool = False
    source_path: Path | None = None
