"""
Dotted version ordering for runtime versions and install-map jars.

Numeric components compare as integers, anything else compares as text.
A version that is a prefix of another sorts first, and a missing version
sorts before every present one.
"""

from __future__ import annotations

from typing import Any

from .exceptions import VersionFormatError


def _cmp(left: Any, right: Any) -> int:
    return (left > right) - (left < right)


def compare(version1: str | None, version2: str | None) -> int:
    """Compare two dotted versions.

    Args:
        version1: First version, or None
        version2: Second version, or None

    Returns:
        Negative if version1 is older, positive if newer, 0 if equal
    """
    if version1 is None and version2 is None:
        return 0
    if version1 is None:
        return -1
    if version2 is None:
        return 1

    components1 = version1.split(".")
    components2 = version2.split(".")
    for left, right in zip(components1, components2):
        try:
            comparison = _cmp(int(left), int(right))
        except ValueError:
            comparison = _cmp(left, right)
        if comparison != 0:
            return comparison
    return len(components1) - len(components2)


def compare_runtime_version(current: str, minimum: str) -> int:
    """Compare a runtime version against a minimum, ignoring qualifiers like -beta."""
    return compare(_strip_qualifier(current), _strip_qualifier(minimum))


def _strip_qualifier(version: str) -> str:
    return version.split("-", 1)[0]


def get_next_product_version(version: str) -> str:
    """Increment the last segment of a product version.

    Used to build the exclusive upper bound of an override jar range,
    e.g. 24.0.0.8 -> 24.0.0.9.

    Raises:
        VersionFormatError: If there is no period or the last segment is not an integer
    """
    head, separator, last = version.rpartition(".")
    if not separator:
        raise VersionFormatError(
            f"Product version {version} is not in the expected format. It must have period separated version segments."
        )
    try:
        next_segment = int(last) + 1
    except ValueError as e:
        raise VersionFormatError(
            f"Product version {version} is not in the expected format. Its last segment is expected to be an integer."
        ) from e
    return f"{head}.{next_segment}"


def extract_version(file_name: str, prefix: str, suffix: str) -> str | None:
    """Return the version token of a `<prefix>_<version><suffix>` file name."""
    start = len(prefix) + 1
    end = file_name.rfind(suffix)
    if start < end:
        return file_name[start:end]
    return None
