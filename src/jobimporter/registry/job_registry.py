"""
Job registry storage for jobimporter.

This module provides the JobRegistry class, the read/write gateway to the
live set of job definitions. Jobs and schedules are stored in a single
SQLite database:

    data/
        registry.sqlite                     # Job registry
        jobs/
            {id}.sqlite                     # Per-job execution store

Design Decisions:
    - Job identities are AUTOINCREMENT integers, never reused
    - Name uniqueness is enforced by a UNIQUE index on the casefolded name,
      so concurrent importers cannot both insert the same name
    - Inserts run in a BEGIN IMMEDIATE transaction, which takes the write
      lock before the duplicate re-check
    - Job and schedule rows are written in one transaction

Thread Safety:
    Connection-per-operation. Multiple processes may share one registry file.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from jobimporter.config.settings import parse_bool
from jobimporter.errors import DuplicateJobName, RegistryInsertFailed
from jobimporter.registry.models import JobDefinition, Schedule
from jobimporter.registry.recurrence import normalize_day, parse_repeat

logger = logging.getLogger(__name__)


# Database schema version for migrations
SCHEMA_VERSION = 1

# Seconds to wait for another writer to release the database lock
LOCK_TIMEOUT_SECONDS = 30.0

# Minimum schedule repeat interval
MIN_REPEAT_SECONDS = 60

# Encryption module values that mean "not encrypted"
_NO_ENCRYPTION_MODULES = {"", "none"}


CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Job definitions
CREATE TABLE IF NOT EXISTS jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    name_key TEXT NOT NULL,
    local_state_path TEXT NOT NULL,
    definition_json TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_jobs_name_key ON jobs(name_key);

-- Job schedules (at most one per job)
CREATE TABLE IF NOT EXISTS schedules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id INTEGER NOT NULL UNIQUE,
    repeat TEXT NOT NULL,
    schedule_json TEXT NOT NULL,
    FOREIGN KEY (job_id) REFERENCES jobs(id) ON DELETE CASCADE
);
"""


def name_key(name: str) -> str:
    """Return the key used for case-insensitive name comparison."""
    return name.strip().casefold()


class JobRegistry:
    """
    Persistent registry of backup jobs.

    Example:
        registry = JobRegistry(Path("./data/registry.sqlite"), Path("./data/jobs"))

        if not registry.exists(definition.name):
            error = registry.validate(definition, schedule)
            if error is None:
                identity, local_state_path = registry.insert(definition, schedule)

    Attributes:
        db_path: Path to the registry SQLite database.
        jobs_dir: Directory under which per-job execution stores are placed.
    """

    def __init__(self, db_path: Path | str, jobs_dir: Path | str) -> None:
        """
        Open (and create if needed) a job registry.

        Args:
            db_path: Registry database file.
            jobs_dir: Directory for per-job execution stores.
        """
        self.db_path = Path(db_path)
        self.jobs_dir = Path(jobs_dir)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(CREATE_TABLES_SQL)

            cursor = conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = cursor.fetchone()

            if row is None:
                conn.execute(
                    "INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, datetime.now(UTC).isoformat()),
                )
                logger.info(f"Initialized registry schema version {SCHEMA_VERSION}")
            elif row[0] < SCHEMA_VERSION:
                logger.warning(
                    f"Registry schema version {row[0]} is older than "
                    f"expected version {SCHEMA_VERSION}"
                )

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get a database connection with proper settings.

        Yields:
            SQLite connection with row factory set.
        """
        conn = sqlite3.connect(
            str(self.db_path),
            isolation_level=None,  # Autocommit mode, we manage transactions manually
            timeout=LOCK_TIMEOUT_SECONDS,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Import gateway
    # -------------------------------------------------------------------------

    def exists(self, name: str) -> bool:
        """
        Check whether a job with this name exists, ignoring case.

        Args:
            name: Job display name.

        Returns:
            True if a job with an equal name (casefolded) is registered.
        """
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM jobs WHERE name_key = ?", (name_key(name),)
            ).fetchone()
        return row is not None

    def validate(
        self,
        definition: JobDefinition,
        schedule: Schedule | None = None,
    ) -> str | None:
        """
        Check a job definition and schedule for structural problems.

        Does not touch the database.

        Args:
            definition: Job to check.
            schedule: Optional schedule for the job.

        Returns:
            A description of every problem found, or None if the job is valid.
        """
        errors: list[str] = []

        if not definition.name.strip():
            errors.append("Missing a name")

        if not definition.target_url.strip():
            errors.append("Missing a target")

        if not definition.sources or any(
            not isinstance(source, str) or not source.strip()
            for source in definition.sources
        ):
            errors.append("Invalid source list")

        if self._requires_passphrase(definition) and not definition.settings.get(
            "passphrase", ""
        ):
            errors.append("Missing passphrase")

        if schedule is not None:
            errors.extend(self._validate_schedule(schedule))

        if errors:
            return "; ".join(errors)
        return None

    def insert(
        self,
        definition: JobDefinition,
        schedule: Schedule | None = None,
    ) -> tuple[str, str]:
        """
        Record a new job, assigning its identity and local state path.

        The job row and schedule row are written in a single transaction.
        On failure nothing is written.

        Args:
            definition: Job to record. ``identity`` and ``local_state_path``
                are ignored.
            schedule: Optional schedule for the job.

        Returns:
            Tuple of (identity, local_state_path).

        Raises:
            DuplicateJobName: If the name is taken, including by a writer
                that committed after an earlier exists() check.
            RegistryInsertFailed: If the job could not be recorded.
        """
        key = name_key(definition.name)

        with self._get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise RegistryInsertFailed(
                    f"Could not lock job registry {self.db_path}: {e}"
                ) from e

            try:
                row = conn.execute(
                    "SELECT id FROM jobs WHERE name_key = ?", (key,)
                ).fetchone()
                if row is not None:
                    raise DuplicateJobName(definition.name)

                cursor = conn.execute(
                    """
                    INSERT INTO jobs (
                        name, name_key, local_state_path, definition_json, created_at
                    ) VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        definition.name,
                        key,
                        "",
                        json.dumps(self._definition_payload(definition)),
                        datetime.now(UTC).isoformat(),
                    ),
                )
                identity = str(cursor.lastrowid)
                local_state_path = str(self.jobs_dir / f"{identity}.sqlite")

                conn.execute(
                    "UPDATE jobs SET local_state_path = ? WHERE id = ?",
                    (local_state_path, int(identity)),
                )

                if schedule is not None:
                    payload = schedule.to_dict()
                    payload.pop("id", None)
                    conn.execute(
                        """
                        INSERT INTO schedules (job_id, repeat, schedule_json)
                        VALUES (?, ?, ?)
                        """,
                        (int(identity), schedule.repeat, json.dumps(payload)),
                    )

                conn.execute("COMMIT")

            except DuplicateJobName:
                conn.execute("ROLLBACK")
                raise
            except sqlite3.IntegrityError as e:
                conn.execute("ROLLBACK")
                if "name_key" in str(e):
                    raise DuplicateJobName(definition.name) from e
                raise RegistryInsertFailed(f"Failed to record job: {e}") from e
            except Exception as e:
                conn.execute("ROLLBACK")
                logger.debug(f"Failed to record job {definition.name!r}: {e}")
                raise RegistryInsertFailed(f"Failed to record job: {e}") from e

        logger.info(
            f"Registered job {definition.name!r} with ID {identity} "
            f"(local state {local_state_path})"
        )
        return identity, local_state_path

    # -------------------------------------------------------------------------
    # Queries and remediation
    # -------------------------------------------------------------------------

    def get_job(self, identity: str) -> JobDefinition | None:
        """Load a job by identity, or None if it does not exist."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM jobs WHERE id = ?", (_to_row_id(identity),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_definition(row)

    def get_schedule(self, identity: str) -> Schedule | None:
        """Load the schedule of a job, or None if it has none."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM schedules WHERE job_id = ?", (_to_row_id(identity),)
            ).fetchone()
        if row is None:
            return None
        schedule = Schedule.from_dict(json.loads(row["schedule_json"]))
        schedule.identity = str(row["id"])
        return schedule

    def list_jobs(self) -> list[JobDefinition]:
        """Return all registered jobs ordered by identity."""
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM jobs ORDER BY id").fetchall()
        return [self._row_to_definition(row) for row in rows]

    def count(self) -> int:
        """Return the number of registered jobs."""
        with self._get_connection() as conn:
            (total,) = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()
        return int(total)

    def delete_job(self, identity: str) -> bool:
        """
        Remove a job and its schedule.

        The job's local execution store is not touched.

        Returns:
            True if a job was removed.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM jobs WHERE id = ?", (_to_row_id(identity),)
            )
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Removed job {identity} from registry")
        return deleted

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _requires_passphrase(self, definition: JobDefinition) -> bool:
        """Check whether the job's options enable encryption."""
        if parse_bool(definition.settings.get("no-encryption", "false"), default=False):
            return False
        module = definition.settings.get("encryption-module", "").strip().lower()
        return module not in _NO_ENCRYPTION_MODULES

    def _validate_schedule(self, schedule: Schedule) -> list[str]:
        """Return validation errors for a schedule."""
        errors: list[str] = []

        try:
            interval = parse_repeat(schedule.repeat)
        except ValueError:
            errors.append(f"Invalid repeat value in schedule: {schedule.repeat!r}")
        else:
            if interval.total_seconds() < MIN_REPEAT_SECONDS:
                errors.append("Schedule repeat must be at least one minute")

        for day in schedule.allowed_days:
            if normalize_day(day) is None:
                errors.append(f"Invalid day in schedule: {day!r}")

        if schedule.time:
            try:
                datetime.fromisoformat(schedule.time)
            except (TypeError, ValueError):
                errors.append(f"Invalid schedule time: {schedule.time!r}")

        return errors

    def _definition_payload(self, definition: JobDefinition) -> dict:
        payload = definition.to_dict()
        payload.pop("id", None)
        payload.pop("local_state_path", None)
        return payload

    def _row_to_definition(self, row: sqlite3.Row) -> JobDefinition:
        definition = JobDefinition.from_dict(json.loads(row["definition_json"]))
        definition.identity = str(row["id"])
        definition.local_state_path = row["local_state_path"]
        return definition


def _to_row_id(identity: str) -> int:
    try:
        return int(identity)
    except (TypeError, ValueError):
        return -1
