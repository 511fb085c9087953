"""
Job configuration import.

Usage:
    from jobimporter.importer import ConfigurationImporter

    importer = ConfigurationImporter(loader, registry, provisioner)
    result = importer.import_configuration(path, secret_provider)
"""

from jobimporter.importer.orchestrator import ConfigurationImporter, ImportResult

__all__ = [
    "ConfigurationImporter",
    "ImportResult",
]
