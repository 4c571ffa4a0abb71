"""
Runtime product information.

Reads the product properties shipped in lib/versions, scans the product
feature JSONs for Open Liberty features and runs the runtime's productInfo
command for post-install validation.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Iterable
from pathlib import Path

from archinstall import info
from archinstall.lib.exceptions import SysCallError
from archinstall.lib.general import SysCommand

from .exceptions import PluginExecutionError
from .models import ProductProperties, canonical_name
from .shared import CLOSED_LIBERTY_PRODUCT_ID, OPEN_LIBERTY_GROUP_ID, OPEN_LIBERTY_PRODUCT_ID, PRODUCT_INFO_TIMEOUT

PRODUCT_ID_KEY = "com.ibm.websphere.productId"
PRODUCT_VERSION_KEY = "com.ibm.websphere.productVersion"

# coreutils timeout exits with 124 when the time limit is hit
TIMEOUT_EXIT_CODE = 124

OPEN_LIBERTY_FEATURE_PATTERN = re.compile(re.escape(OPEN_LIBERTY_GROUP_ID) + r":([^:]*):")


def read_properties(content: str) -> dict[str, str]:
    """Parse `key=value` / `key: value` lines, skipping comments."""
    properties: dict[str, str] = {}
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped[0] in "#!":
            continue
        match = re.match(r"([^=:\s]+)\s*[=:]?\s*(.*)", stripped)
        if match:
            properties[match.group(1)] = match.group(2).strip()
    return properties


def load_properties(install_directory: Path) -> list[ProductProperties]:
    """Load product properties from `<install>/lib/versions/*.properties`.

    Raises:
        PluginExecutionError: If a file is unreadable, lacks the product keys,
            or no properties file exists at all
    """
    versions_dir = install_directory / "lib" / "versions"
    result: list[ProductProperties] = []

    for properties_file in sorted(versions_dir.glob("*.properties")):
        try:
            properties = read_properties(properties_file.read_text(encoding="iso-8859-1"))
        except OSError as e:
            raise PluginExecutionError(f"Cannot read the product properties file {properties_file.absolute()}") from e

        for key in (PRODUCT_ID_KEY, PRODUCT_VERSION_KEY):
            if key not in properties:
                raise PluginExecutionError(
                    f'Cannot find the "{key}" property in the file {properties_file.absolute()}. '
                    "Ensure the file is valid properties file for the Liberty product or extension."
                )
        result.append(ProductProperties(id=properties[PRODUCT_ID_KEY], version=properties[PRODUCT_VERSION_KEY]))

    if not result:
        raise PluginExecutionError(
            f"Could not find any properties file in the {versions_dir} directory. "
            f"Ensure the directory {install_directory} contains a Liberty installation."
        )
    return result


def get_open_liberty_version(properties_list: Iterable[ProductProperties]) -> str | None:
    for properties in properties_list:
        if properties.id == OPEN_LIBERTY_PRODUCT_ID:
            return properties.version
    return None


def is_closed_liberty(properties_list: Iterable[ProductProperties]) -> bool:
    return any(properties.id == CLOSED_LIBERTY_PRODUCT_ID for properties in properties_list)


def is_open_liberty_beta_version(version: str | None) -> bool:
    return version is not None and version.endswith("-beta")


def get_open_liberty_feature_set(jsons: Iterable[Path]) -> set[str]:
    """Collect the artifact ids published under the Open Liberty features group."""
    features: set[str] = set()
    for json_file in jsons:
        try:
            content = json_file.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise PluginExecutionError(f"The JSON file is not found at {json_file.absolute()}") from e
        features.update(OPEN_LIBERTY_FEATURE_PATTERN.findall(content))
    return features


def contains_ignore_case(reference: Iterable[str], target: Iterable[str]) -> bool:
    """Whether reference contains every string of target, ignoring case."""
    return {canonical_name(s) for s in target} <= {canonical_name(s) for s in reference}


def run_product_info(install_directory: Path, action: str) -> str:
    """Run `bin/productInfo <action>` and return its output.

    Raises:
        PluginExecutionError: If the command times out or exits non-zero
    """
    product_info = install_directory / "bin" / "productInfo"
    command = f"timeout {PRODUCT_INFO_TIMEOUT} {shlex.quote(str(product_info))} {action}"
    try:
        return SysCommand(command).decode()
    except SysCallError as e:
        if e.exit_code == TIMEOUT_EXIT_CODE:
            raise PluginExecutionError("productInfo command timed out") from e
        raise PluginExecutionError(
            f"productInfo exited with return code {e.exit_code}. The productInfo command run was `{product_info} {action}`"
        ) from e


def product_info_validate(install_directory: Path) -> None:
    """Fail unless `productInfo validate` produces output free of [ERROR] markers."""
    output = run_product_info(install_directory, "validate")
    if not output or not output.strip():
        raise PluginExecutionError("Could not perform product validation. The productInfo command returned with no output")
    if "[ERROR]" in output:
        raise PluginExecutionError(output)
    info("Product validation completed successfully.")
