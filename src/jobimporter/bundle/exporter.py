"""
Bundle export for job configurations.

Writes the file format that BundleLoader reads. Exported bundles keep
identity and local state path as they are; the loader clears them on import.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from jobimporter.bundle import crypto
from jobimporter.registry.models import JobDefinition, Schedule

logger = logging.getLogger(__name__)

BUNDLE_FORMAT = "jobimporter-bundle"
BUNDLE_VERSION = 1


def build_document(
    definition: JobDefinition,
    schedule: Schedule | None = None,
) -> dict[str, Any]:
    """Build the JSON document for a bundle."""
    return {
        "format": BUNDLE_FORMAT,
        "version": BUNDLE_VERSION,
        "exported_at": datetime.now(UTC).isoformat(),
        "job": definition.to_dict(),
        "schedule": schedule.to_dict() if schedule is not None else None,
    }


def export_bundle(
    path: Path | str,
    definition: JobDefinition,
    schedule: Schedule | None = None,
    passphrase: str | None = None,
    iterations: int = crypto.PBKDF2_ITERATIONS,
) -> Path:
    """
    Write a job bundle to ``path``.

    Args:
        path: Destination file. Parent directories are created.
        definition: Job to export.
        schedule: Optional schedule.
        passphrase: Encrypt the bundle with this passphrase if given.
        iterations: PBKDF2 iterations for encrypted bundles.

    Returns:
        The path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = json.dumps(build_document(definition, schedule), indent=2).encode("utf-8")
    if passphrase is not None:
        data = crypto.encrypt(data, passphrase, iterations)

    # Write atomically using temp file + rename
    temp_fd, temp_path = tempfile.mkstemp(suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(temp_fd, "wb") as f:
            f.write(data)
        os.replace(temp_path, path)
    except Exception:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise

    logger.info(
        f"Exported job {definition.name!r} to {path}"
        f"{' (encrypted)' if passphrase is not None else ''}"
    )
    return path
