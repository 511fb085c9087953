"""
Job configuration import.

Runs the import of one exported bundle as a fixed sequence of steps:

    1. Load the bundle (decrypting it if needed)
    2. Reject the job if its name is already registered
    3. Validate the job definition and schedule
    4. Insert the job, which assigns its identity and local state path
    5. Provision the job's local execution store at that path

Nothing is retried. The first failure stops the import. A failure in step 5
leaves the registry entry from step 4 in place unless rollback was requested.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from jobimporter.bundle.loader import BundleLoader, SecretProvider
from jobimporter.errors import (
    DuplicateJobName,
    ImporterError,
    InvalidConfiguration,
    StorageProvisionFailed,
)
from jobimporter.registry.job_registry import JobRegistry
from jobimporter.storage.provisioner import StorageProvisioner

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Result of an import operation."""

    success: bool
    name: str | None = None
    identity: str | None = None
    local_state_path: str | None = None
    error: ImporterError | None = None
    rolled_back: bool = False

    @property
    def registry_orphaned(self) -> bool:
        """True if a job was registered but has no usable local store."""
        return (
            isinstance(self.error, StorageProvisionFailed)
            and self.identity is not None
            and not self.rolled_back
        )


class ConfigurationImporter:
    """
    Imports exported job bundles into a job registry.

    Usage:
        importer = ConfigurationImporter(
            BundleLoader(),
            JobRegistry(settings.registry_path, settings.jobs_dir),
            StorageProvisioner(),
        )
        result = importer.import_configuration(path, secret_provider=ask)
        if result.success:
            print(result.identity, result.local_state_path)
    """

    def __init__(
        self,
        loader: BundleLoader,
        registry: JobRegistry,
        provisioner: StorageProvisioner,
        rollback_on_provision_failure: bool = False,
    ) -> None:
        """
        Initialize the importer.

        Args:
            loader: Reads bundles.
            registry: Job registry to import into.
            provisioner: Creates local execution stores.
            rollback_on_provision_failure: Remove the registry entry again
                if its local store cannot be created.
        """
        self.loader = loader
        self.registry = registry
        self.provisioner = provisioner
        self.rollback_on_provision_failure = rollback_on_provision_failure

    def import_configuration(
        self,
        bundle_path: Path | str,
        secret_provider: SecretProvider | None = None,
        import_metadata: bool = False,
    ) -> ImportResult:
        """
        Import one bundle.

        Args:
            bundle_path: Exported bundle file.
            secret_provider: Called once for the passphrase if the bundle
                is encrypted.
            import_metadata: Keep environment-specific job metadata.

        Returns:
            ImportResult with the assigned identity and local state path, or
            the error that stopped the import.
        """
        try:
            bundle = self.loader.load(bundle_path, import_metadata, secret_provider)
        except ImporterError as e:
            logger.info(f"Could not load {bundle_path}: {e}")
            return ImportResult(success=False, error=e)

        definition = bundle.definition
        schedule = bundle.schedule
        name = definition.name

        if self.registry.exists(name):
            error = DuplicateJobName(name)
            logger.info(str(error))
            return ImportResult(success=False, name=name, error=error)

        message = self.registry.validate(definition, schedule)
        if message:
            logger.info(f"Job {name!r} is invalid: {message}")
            return ImportResult(
                success=False,
                name=name,
                error=InvalidConfiguration(message),
            )

        try:
            identity, local_state_path = self.registry.insert(definition, schedule)
        except ImporterError as e:
            logger.info(f"Could not register job {name!r}: {e}")
            return ImportResult(success=False, name=name, error=e)

        definition.identity = identity
        definition.local_state_path = local_state_path

        try:
            self.provisioner.provision(local_state_path)
        except StorageProvisionFailed as e:
            e.identity = identity
            rolled_back = False
            if self.rollback_on_provision_failure:
                try:
                    rolled_back = self.registry.delete_job(identity)
                except sqlite3.Error as rollback_error:
                    logger.warning(
                        f"Could not remove job {identity} after provisioning "
                        f"failed: {rollback_error}"
                    )
                else:
                    logger.info(f"Removed job {identity} after provisioning failed")
            else:
                logger.info(
                    f"Job {name!r} was registered with ID {identity} but its "
                    f"local database could not be created at {local_state_path}"
                )
            return ImportResult(
                success=False,
                name=name,
                identity=identity,
                local_state_path=local_state_path,
                error=e,
                rolled_back=rolled_back,
            )

        logger.info(f"Imported job {name!r} with ID {identity}")

        return ImportResult(
            success=True,
            name=name,
            identity=identity,
            local_state_path=local_state_path,
        )
