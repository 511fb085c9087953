"""
Exported job bundles.

A bundle holds one job definition and its optional schedule, as JSON or as
JSON encrypted with a passphrase.

Usage:
    from jobimporter.bundle import BundleLoader, export_bundle

    export_bundle(path, definition, schedule, passphrase="secret")
    bundle = BundleLoader().load(path, import_metadata=False,
                                 secret_provider=lambda: "secret")
"""

from jobimporter.bundle.exporter import export_bundle
from jobimporter.bundle.loader import BundleLoader, SecretProvider

__all__ = [
    "BundleLoader",
    "SecretProvider",
    "export_bundle",
]
