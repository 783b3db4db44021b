"""
CLI entry point for the Markdown to Org converter.

This allows the tool to be run as:
    python -m mdorg --file reply.md
"""

import sys

from mdorg.mdorg_cli import main

if __name__ == "__main__":
    sys.exit(main())
