"""
jobimporter - import exported backup job configurations.

Takes a job configuration exported from one installation of the backup
application (job definition, optional schedule, optionally encrypted) and
registers it as a new job in another installation's job registry.

Key Features:
    - Reads plain and passphrase-encrypted bundles
    - Never carries over job identity or local database paths
    - Rejects jobs whose name is already registered (ignoring case)
    - Validates the job and its schedule before anything is written
    - Creates the new job's local database at the path the registry assigns
"""

__version__ = "0.1.0"
__author__ = ""
__email__ = ""

from jobimporter.config.settings import Settings, load_config

__all__ = [
    "__version__",
    "Settings",
    "load_config",
]
