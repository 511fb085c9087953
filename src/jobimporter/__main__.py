"""
Entry point for running jobimporter as a module.

Usage:
    python -m jobimporter <configuration-file> --import-metadata=(true|false)
"""

from jobimporter.cli import main

if __name__ == "__main__":
    main()
