"""Main entry point for the revent CLI.

Usage:
    python -m revent.main --help
    revent --help  # If installed via pip
"""

from revent.cli import main

if __name__ == "__main__":
    main()
