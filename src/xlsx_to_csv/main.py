"""Main entry point for the xlsx-to-csv option exporter.

This module provides the console-script entry point that can be called
from the command line or imported as a module.
"""

import sys

from xlsx_to_csv.cli import main


def run() -> None:
    """Main entry point function."""
    try:
        main()
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    run()
