"""
Entry point for running the ledger package as a module.

Usage:
    python -m ledger --help
    python -m ledger --list
"""

from ledger.cli import main

if __name__ == "__main__":
    main()
