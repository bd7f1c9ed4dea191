"""Main entry point when executing pacekeeper as a package.

This allows running the package using python -m pacekeeper.
"""

from pacekeeper.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
