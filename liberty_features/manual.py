"""
Manual installation of user feature ESAs.

Runtimes older than 21.0.0.11 have no installer able to take a local user
feature ESA. For those the ESA contents are copied straight into the user
extension: the subsystem manifest into lib/features and the bundles into
lib. No dependency resolution, license check or verification happens.
"""

from __future__ import annotations

import shutil
import zipfile
from collections.abc import Iterable
from pathlib import Path

from archinstall import debug, info

from .exceptions import PluginExecutionError
from .models import canonical_name
from .utils import parse_manifest

SUBSYSTEM_MANIFEST_SUFFIX = "subsystem.mf"
LIBRARY_SUFFIX = ".jar"


class ManualFeatureInstaller:
    """Copies user feature ESAs into a runtime's user extension directory.

    Every feature placed this way is recorded in `installed`, keyed by its
    lower-cased symbolic name with its lower-cased short name as value.
    """

    def __init__(self, user_extension_directory: Path) -> None:
        self.lib_directory = user_extension_directory / "lib"
        self.features_directory = self.lib_directory / "features"
        self.installed: dict[str, str] = {}

    def is_installed(self, name: str) -> bool:
        """Whether a feature, by symbolic or short name, was placed manually."""
        key = canonical_name(name)
        return key in self.installed or key in self.installed.values()

    def install(self, esas: Iterable[str | Path]) -> None:
        self.lib_directory.mkdir(parents=True, exist_ok=True)
        self.features_directory.mkdir(parents=True, exist_ok=True)

        for esa in esas:
            debug(f"Copying {esa} to Liberty image.")
            try:
                self._copy_esa(Path(esa))
            except (OSError, UnicodeDecodeError, zipfile.BadZipFile) as e:
                raise PluginExecutionError(f"Could not install the user feature {esa}: {e}") from e

    def _copy_esa(self, esa: Path) -> None:
        with zipfile.ZipFile(esa) as zf:
            for entry in zf.infolist():
                file_name = entry.filename
                if file_name.lower().endswith(SUBSYSTEM_MANIFEST_SUFFIX):
                    attributes = parse_manifest(zf.read(entry).decode("utf-8"))
                    symbolic_name = attributes.get("Subsystem-SymbolicName")
                    if not symbolic_name:
                        raise PluginExecutionError(f"The subsystem manifest of {esa} has no Subsystem-SymbolicName")
                    symbolic_name = symbolic_name.split(";")[0].strip()
                    short_name = attributes.get("IBM-ShortName", "")
                    self.installed[canonical_name(symbolic_name)] = canonical_name(short_name)

                    target_file = _contained_target(esa, self.features_directory, f"{symbolic_name}.mf")
                    if target_file.exists():
                        info(f"The feature {esa} is already installed.")
                        break
                    _copy_entry(zf, entry, target_file)

                elif file_name.lower().endswith(LIBRARY_SUFFIX):
                    target_file = _contained_target(esa, self.lib_directory, file_name)
                    target_file.parent.mkdir(parents=True, exist_ok=True)
                    _copy_entry(zf, entry, target_file)


def _contained_target(esa: Path, directory: Path, name: str) -> Path:
    target_file = (directory / name).resolve()
    if not target_file.is_relative_to(directory.resolve()):
        raise PluginExecutionError(f"The user feature {esa} contains the entry {name} that resolves outside {directory}")
    return target_file


def _copy_entry(zf: zipfile.ZipFile, entry: zipfile.ZipInfo, target_file: Path) -> None:
    with zf.open(entry) as source, open(target_file, "wb") as target:
        shutil.copyfileobj(source, target)
