"""
Core package for pyedunit, an evaluator for Python programming assignments.

Only the version helper lives here so the package can be imported by check
modules without pulling in the rule engine or the CLI.
"""

from importlib import metadata


def get_version() -> str:
    """Return the installed project version."""
    try:
        return metadata.version("pyedunit")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
