#!/usr/bin/env python3
"""CLI entry point for the auctor command.

Renames documents to surname-year.<ext>.
"""

import sys


def main() -> None:
    """Entry point for auctor command."""
    from auctor.main import main as auctor_main

    sys.exit(auctor_main())


if __name__ == "__main__":
    main()
