"""
Local execution store provisioning.

Every job owns a private SQLite database at the path the registry assigned
to it. This module creates that database, and its parent directories, if it
does not exist yet. Provisioning an existing store is a no-op: tables are
created with IF NOT EXISTS and the schema version row is only written once.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from jobimporter.errors import StorageProvisionFailed

logger = logging.getLogger(__name__)


# Execution store schema version
SCHEMA_VERSION = 1


CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- One row per backup, restore, or verify run
CREATE TABLE IF NOT EXISTS operations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    description TEXT NOT NULL,
    started_at TEXT NOT NULL
);

-- Messages logged during operations
CREATE TABLE IF NOT EXISTS log_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    operation_id INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    level TEXT NOT NULL,
    message TEXT NOT NULL,
    FOREIGN KEY (operation_id) REFERENCES operations(id)
);

CREATE INDEX IF NOT EXISTS idx_log_operation ON log_entries(operation_id);

-- Calls made against the backup target
CREATE TABLE IF NOT EXISTS remote_operations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    operation_id INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    operation TEXT NOT NULL,
    path TEXT NOT NULL,
    data TEXT,
    FOREIGN KEY (operation_id) REFERENCES operations(id)
);

-- Job-local key/value settings
CREATE TABLE IF NOT EXISTS configuration (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class StorageProvisioner:
    """
    Creates per-job execution stores.

    Example:
        provisioner = StorageProvisioner()
        provisioner.provision(Path("./data/jobs/1.sqlite"))
    """

    def provision(self, path: Path | str) -> None:
        """
        Ensure a usable execution store exists at ``path``.

        Args:
            path: Database file to create or reuse.

        Raises:
            StorageProvisionFailed: If the path is not writable or holds a
                file that is not a database.
        """
        path = Path(path)
        existed = path.exists()

        if existed and not path.is_file():
            raise StorageProvisionFailed(
                f"Cannot create local database at {path}: path is not a file",
                path=path,
            )

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageProvisionFailed(
                f"Cannot create directory for local database {path}: {e}",
                path=path,
            ) from e

        try:
            with self._get_connection(path) as conn:
                self._init_schema(conn)
        except (OSError, sqlite3.Error) as e:
            raise StorageProvisionFailed(
                f"Cannot create local database at {path}: {e}",
                path=path,
            ) from e

        if existed:
            logger.debug(f"Local database already present at {path}")
        else:
            logger.info(f"Created local database at {path}")

    def is_provisioned(self, path: Path | str) -> bool:
        """Check whether a usable execution store exists at ``path``."""
        path = Path(path)
        if not path.is_file():
            return False
        try:
            with self._get_connection(path, read_only=True) as conn:
                row = conn.execute(
                    "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
                ).fetchone()
        except sqlite3.Error:
            return False
        return row is not None

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        """Create tables and record the schema version if absent."""
        conn.executescript(CREATE_TABLES_SQL)

        row = conn.execute(
            "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()
        if row is None:
            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, ?)",
                (SCHEMA_VERSION, datetime.now(UTC).isoformat()),
            )
        elif row[0] > SCHEMA_VERSION:
            logger.warning(
                f"Local database schema version {row[0]} is newer than "
                f"supported version {SCHEMA_VERSION}"
            )

    @contextmanager
    def _get_connection(
        self,
        path: Path,
        read_only: bool = False,
    ) -> Generator[sqlite3.Connection, None, None]:
        """Open a connection to an execution store."""
        if read_only:
            conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
        else:
            conn = sqlite3.connect(str(path), isolation_level=None)
        try:
            yield conn
        finally:
            conn.close()
