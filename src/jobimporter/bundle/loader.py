"""
Bundle loading for job imports.

Reads an exported bundle (plain JSON, or JSON inside a passphrase envelope)
and produces an ImportedBundle with every non-transferable field cleared.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from jobimporter.bundle import crypto
from jobimporter.errors import BundleDecryptionFailed, BundleUnreadable
from jobimporter.registry.models import ImportedBundle, JobDefinition, Schedule

logger = logging.getLogger(__name__)

SecretProvider = Callable[[], str]


class BundleLoader:
    """
    Decodes exported job bundles.

    Usage:
        loader = BundleLoader()
        bundle = loader.load(path, import_metadata=False,
                             secret_provider=lambda: getpass.getpass())
    """

    def load(
        self,
        path: Path | str,
        import_metadata: bool = False,
        secret_provider: SecretProvider | None = None,
    ) -> ImportedBundle:
        """
        Load a bundle from disk.

        ``secret_provider`` is called once, and only if the bundle is
        encrypted. Identity, local state path and schedule identity are
        always cleared; metadata is cleared unless ``import_metadata``.

        Args:
            path: Bundle file.
            import_metadata: Keep environment-specific metadata.
            secret_provider: Zero-argument callable returning the passphrase.

        Returns:
            The decoded bundle.

        Raises:
            BundleUnreadable: If the file is missing or cannot be parsed.
            BundleDecryptionFailed: If the bundle is encrypted and cannot
                be decrypted with the supplied passphrase.
        """
        path = Path(path)

        if not path.is_file():
            raise BundleUnreadable(f"Bundle file not found: {path}")

        try:
            raw = path.read_bytes()
        except OSError as e:
            raise BundleUnreadable(f"Cannot read bundle {path}: {e}") from e

        encrypted = crypto.is_encrypted(raw)
        if encrypted:
            logger.debug(f"Bundle {path} is encrypted")
            raw = self._decrypt(path, raw, secret_provider)

        document = self._parse(path, raw)

        try:
            definition = JobDefinition.from_dict(document["job"])
        except ValueError as e:
            raise BundleUnreadable(f"Bundle {path} has an invalid job: {e}") from e

        schedule_data = document.get("schedule")
        try:
            schedule = Schedule.from_dict(schedule_data) if schedule_data else None
        except ValueError as e:
            raise BundleUnreadable(f"Bundle {path} has an invalid schedule: {e}") from e

        # Identity and local state never transfer between installations
        definition.identity = None
        definition.local_state_path = None
        if schedule is not None:
            schedule.identity = None

        if not import_metadata and definition.metadata:
            logger.debug(f"Dropping {len(definition.metadata)} metadata entries")
            definition.metadata = {}

        logger.info(f"Loaded job {definition.name!r} from {path}")

        return ImportedBundle(
            definition=definition,
            schedule=schedule,
            encrypted=encrypted,
            source_path=path,
        )

    def _decrypt(
        self,
        path: Path,
        raw: bytes,
        secret_provider: SecretProvider | None,
    ) -> bytes:
        """Decrypt an envelope, translating failures to import errors."""
        try:
            crypto.check_envelope(raw)
        except crypto.EnvelopeError as e:
            raise BundleUnreadable(f"Cannot read bundle {path}: {e}") from e

        if secret_provider is None:
            raise BundleDecryptionFailed(
                f"Bundle {path} is encrypted and no password was supplied."
            )

        passphrase = secret_provider()

        try:
            return crypto.decrypt(raw, passphrase)
        except crypto.InvalidToken as e:
            raise BundleDecryptionFailed(
                f"Failed to decrypt {path}: wrong password or corrupted bundle."
            ) from e

    def _parse(self, path: Path, raw: bytes) -> dict[str, Any]:
        """Parse bundle JSON and check its top-level shape."""
        try:
            document = json.loads(raw.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise BundleUnreadable(f"Cannot parse bundle {path}: {e}") from e

        if not isinstance(document, dict):
            raise BundleUnreadable(f"Cannot parse bundle {path}: expected an object")

        if not isinstance(document.get("job"), dict):
            raise BundleUnreadable(f"Bundle {path} does not contain a job")

        schedule = document.get("schedule")
        if schedule is not None and not isinstance(schedule, dict):
            raise BundleUnreadable(f"Bundle {path} has an invalid schedule")

        return document
