"""Main entry point when executing objcache as a package.

This allows running the package using python -m objcache.
"""

from objcache.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
