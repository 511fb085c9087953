"""
Error classes for job configuration imports.

Every step of an import raises one of these types. None of them are retried:
the first failure aborts the remaining steps and is reported to the caller.

Error handling contract:
    - Library code raises, chaining the underlying cause with ``from``
    - ConfigurationImporter converts these into ImportResult.error
    - The CLI maps them to exit codes and prints a single line
"""

from __future__ import annotations

from pathlib import Path


class ImporterError(Exception):
    """Base exception for all import failures."""

    pass


class ArgumentError(ImporterError):
    """Raised when the command line is malformed."""

    pass


class BundleUnreadable(ImporterError):
    """Raised when a bundle is missing or cannot be parsed."""

    pass


class BundleDecryptionFailed(ImporterError):
    """Raised when an encrypted bundle cannot be decrypted."""

    pass


class DuplicateJobName(ImporterError):
    """Raised when a job with the same name (ignoring case) already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"A job with the name {name} already exists.")
        self.name = name


class InvalidConfiguration(ImporterError):
    """Raised when a job definition or schedule fails validation."""

    pass


class RegistryInsertFailed(ImporterError):
    """Raised when the registry could not record a job. Nothing was written."""

    pass


class StorageProvisionFailed(ImporterError):
    """
    Raised when a job's local execution store cannot be created.

    When raised by an import, ``identity`` is set: the registry entry for
    that job was already committed and has no usable store.
    """

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        identity: str | None = None,
    ) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None
        self.identity = identity
