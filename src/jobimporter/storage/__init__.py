"""
Per-job local execution stores.

Usage:
    from jobimporter.storage import StorageProvisioner

    StorageProvisioner().provision(local_state_path)
"""

from jobimporter.storage.provisioner import StorageProvisioner

__all__ = ["StorageProvisioner"]
