"""
Location of the install-map jar that hosts the install kernel.

A jar published for the exact runtime release is preferred. It is looked up
in the repository with the range [runtimeVersion, nextVersion). Otherwise
the newest com.ibm.ws.install.map_<version>.jar shipped in the runtime's lib
directory is used.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

from archinstall import debug

from ..exceptions import PluginExecutionError
from ..models import ArtifactCoordinate
from ..repository import ArtifactRepository
from ..shared import INSTALL_MAP_ARTIFACT_ID, INSTALL_MAP_PREFIX, JAR_EXT, OPEN_LIBERTY_GROUP_ID
from ..utils import parse_manifest
from ..versions import compare, extract_version, get_next_product_version

MANIFEST_ENTRY = "META-INF/MANIFEST.MF"


def find_kernel_jar(directory: Path, prefix: str = INSTALL_MAP_PREFIX, suffix: str = JAR_EXT) -> Path | None:
    """Find the newest `<prefix>_<version><suffix>` file in a directory.

    Args:
        directory: Directory to scan
        prefix: File name prefix
        suffix: File name suffix

    Returns:
        The jar with the highest version, or None if none matches
    """
    if not directory.is_dir():
        return None

    result: Path | None = None
    for jar in sorted(directory.iterdir()):
        if not (jar.name.startswith(prefix) and jar.name.endswith(suffix)):
            continue
        if result is None or compare(extract_version(result.name, prefix, suffix), extract_version(jar.name, prefix, suffix)) < 0:
            result = jar
    return result


def download_override_jar(repository: ArtifactRepository, group_id: str, artifact_id: str, runtime_version: str) -> Path | None:
    """Download the override jar released for this runtime version, if any."""
    try:
        version_range = ArtifactCoordinate.version_range(runtime_version, get_next_product_version(runtime_version))
        return repository.download_artifact(group_id, artifact_id, "jar", version_range)
    except PluginExecutionError as e:
        debug(f"Using jar from Liberty directory for {artifact_id} bundle: {e}")
        return None


def load_install_jar(install_directory: Path, repository: ArtifactRepository, runtime_version: str | None) -> Path | None:
    """Pick the install-map jar, preferring a downloaded override that exists on disk."""
    if runtime_version is not None:
        override = download_override_jar(repository, OPEN_LIBERTY_GROUP_ID, INSTALL_MAP_ARTIFACT_ID, runtime_version)
        if override is not None and override.exists():
            debug(f"Using install map override jar {override}")
            return override
    return find_kernel_jar(install_directory / "lib")


def extract_symbolic_name(jar: Path) -> str | None:
    """Read Bundle-SymbolicName from a jar manifest."""
    try:
        with zipfile.ZipFile(jar) as zf:
            content = zf.read(MANIFEST_ENTRY).decode("utf-8")
    except (OSError, KeyError, zipfile.BadZipFile) as e:
        raise PluginExecutionError(f"Could not load the jar {jar.absolute()}") from e
    return parse_manifest(content).get("Bundle-SymbolicName")


def get_override_bundle_descriptor(
    repository: ArtifactRepository, group_id: str, artifact_id: str, runtime_version: str | None
) -> str | None:
    """Return `<path>;<symbolic name>` for a downloaded override bundle, or None."""
    if runtime_version is None:
        return None
    override = download_override_jar(repository, group_id, artifact_id, runtime_version)
    if override is not None and override.exists():
        symbolic_name = extract_symbolic_name(override)
        if symbolic_name is not None:
            return f"{override.absolute()};{symbolic_name}"
    return None
