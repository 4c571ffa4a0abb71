"""
Install configuration kept in a build plugin's JSON configuration file.

The install-feature parameters live in a `liberty_features` section next to
the plugin's own keys. The section is versioned so a plugin never applies
parameters written for a layout it does not know.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .exceptions import PluginExecutionError
from .models import InstallFeatureConfig

FEATURES_CONFIG_KEY = "liberty_features"
SCHEMA_VERSION_KEY = "schema_version"
CURRENT_SCHEMA_VERSION = 1
SUPPORTED_SCHEMA_VERSIONS = frozenset({CURRENT_SCHEMA_VERSION})


def _read_document(config_path: Path) -> dict[str, Any]:
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise PluginExecutionError(f"Cannot read the plugin configuration file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise PluginExecutionError(f"The plugin configuration file {config_path} does not contain a JSON object")
    return data


def read_features_section(config_path: Path) -> dict[str, Any]:
    """Return the install parameters of a plugin configuration file.

    Raises:
        PluginExecutionError: If the file is unreadable, has no section, or
            the section's schema version is missing or unsupported
    """
    section = _read_document(config_path).get(FEATURES_CONFIG_KEY)
    if not isinstance(section, dict):
        raise PluginExecutionError(f'The plugin configuration file {config_path} has no "{FEATURES_CONFIG_KEY}" section')

    version = section.get(SCHEMA_VERSION_KEY)
    # bool is an int subclass, True would pass as version 1
    if isinstance(version, bool) or version not in SUPPORTED_SCHEMA_VERSIONS:
        supported = ", ".join(str(v) for v in sorted(SUPPORTED_SCHEMA_VERSIONS))
        raise PluginExecutionError(
            f'The "{FEATURES_CONFIG_KEY}" section of {config_path} has schema version {version!r}. '
            f"Supported schema versions: {supported}"
        )
    return {key: value for key, value in section.items() if key != SCHEMA_VERSION_KEY}


def load_install_config(config_path: Path) -> InstallFeatureConfig:
    """Read and validate the install configuration of a plugin configuration file."""
    section = read_features_section(config_path)
    try:
        return InstallFeatureConfig.from_json(section)
    except ValidationError as e:
        raise PluginExecutionError(f'Invalid "{FEATURES_CONFIG_KEY}" section in {config_path}: {e}') from e


def save_install_config(config: InstallFeatureConfig, dest_path: Path) -> None:
    """Write the install configuration, keeping the plugin's other keys in place."""
    data = _read_document(dest_path) if dest_path.exists() else {}
    data[FEATURES_CONFIG_KEY] = {SCHEMA_VERSION_KEY: CURRENT_SCHEMA_VERSION, **config.to_json()}
    dest_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
