"""
APCUPSD Exporter Utilities

Helper functions for version detection and value conversion.
"""

from importlib import metadata
import os

PACKAGE_NAME = "apcupsd-exporter"


def get_version() -> str:
    """
    Get the exporter version.

    Priority:
    1. APCUPSD_EXPORTER_VERSION environment variable (set by the container image)
    2. Metadata of the installed package
    3. 'dev' as fallback

    Returns:
        str: The version string.
    """
    version = os.getenv("APCUPSD_EXPORTER_VERSION")
    if version:
        return version

    try:
        return metadata.version(PACKAGE_NAME)
    except metadata.PackageNotFoundError:
        pass

    return "dev"


def parse_float(value_str: str | None) -> float | None:
    """
    Convert a status value into a float.

    Handles:
    - 120.0     -> 120.0
    - 0         -> 0.0
    - ONLINE    -> None
    - 1.5 Volts -> None (units must be stripped first)

    Args:
        value_str: The string to parse.

    Returns:
        float | None: The parsed float, or None if the value is not numeric.
    """
    if not value_str:
        return None

    # float() accepts digit group underscores, apcupsd never sends them
    if "_" in value_str:
        return None

    try:
        return float(value_str)
    except ValueError:
        return None
