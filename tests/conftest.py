"""
Shared fixtures: a scripted install kernel channel, an in-memory artifact
repository and a minimal Liberty runtime layout.
"""

import zipfile
from collections.abc import Callable, Iterator, MutableMapping
from pathlib import Path
from typing import Any

import pytest
from liberty_features.exceptions import PluginExecutionError
from liberty_features.repository import ArtifactRepository

OUTPUT_KEYS = ("action.error.message", "action.install.result", "action.exception.stacktrace")

OPEN_LIBERTY_JSON = """[
  {"mavenCoordinates": "io.openliberty.features:servlet-6.0:24.0.0.8"},
  {"mavenCoordinates": "io.openliberty.features:jsonp-2.1:24.0.0.8"},
  {"mavenCoordinates": "io.openliberty.features:restfulws-3.1:24.0.0.8"}
]
"""


class FakeChannel(MutableMapping):
    """Key/value kernel channel answering trigger reads from scripted outputs.

    Reading a trigger key (e.g. `action.result`) pops the next scripted
    output, clears previous output keys and stores the new ones.
    """

    def __init__(self, outputs: dict[str, list[dict[str, Any]]] | None = None, clear_error: Exception | None = None) -> None:
        self.store: dict[str, Any] = {}
        self.outputs = outputs or {}
        self.puts: list[tuple[str, Any]] = []
        self.triggers: list[str] = []
        self.cleared = False
        self.clear_error = clear_error

    def __getitem__(self, key: str) -> Any:
        if key in self.outputs:
            self.triggers.append(key)
            queue = self.outputs[key]
            output = queue.pop(0) if queue else {}
            for output_key in OUTPUT_KEYS:
                self.store.pop(output_key, None)
            self.store.update(output)
            if key not in output:
                raise KeyError(key)
            return output[key]
        return self.store[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.puts.append((key, value))
        self.store[key] = value

    def __delitem__(self, key: str) -> None:
        del self.store[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.store)

    def __len__(self) -> int:
        return len(self.store)

    def clear(self) -> None:
        if self.clear_error is not None:
            raise self.clear_error
        self.cleared = True
        self.store.clear()

    def put_values(self, key: str) -> list[Any]:
        return [value for put_key, value in self.puts if put_key == key]


class FakeRepository(ArtifactRepository):
    """Repository serving ESAs and signatures on demand, other artifacts only when registered."""

    def __init__(self, root: Path, files: dict[tuple[str, str, str], bytes | str] | None = None) -> None:
        self.root = root
        self.files = files or {}
        self.downloads: list[tuple[str, str, str, str]] = []
        self.signature_downloads: list[tuple[Path, str]] = []
        self.missing_signatures = False
        self.root.mkdir(parents=True, exist_ok=True)

    def download_artifact(self, group_id: str, artifact_id: str, type: str, version: str) -> Path:
        self.downloads.append((group_id, artifact_id, type, version))
        key = (group_id, artifact_id, type)
        if type != "esa" and key not in self.files:
            raise PluginExecutionError(f"Could not find artifact {group_id}:{artifact_id}:{type}:{version}")
        path = self.root / f"{artifact_id}-{version}.{type}"
        content = self.files.get(key, b"")
        if isinstance(content, str):
            path.write_text(content)
        else:
            path.write_bytes(content)
        return path

    def download_signature(self, esa: Path, group_id: str, artifact_id: str, type: str, version: str) -> Path:
        self.signature_downloads.append((esa, artifact_id))
        if self.missing_signatures:
            raise PluginExecutionError(f"Could not find artifact {group_id}:{artifact_id}:{type}:{version}")
        signature = esa.with_suffix(".esa.asc")
        signature.write_text("signature")
        return signature

    @property
    def esa_downloads(self) -> list[str]:
        return [artifact_id for _, artifact_id, type, _ in self.downloads if type == "esa"]


@pytest.fixture
def make_runtime(tmp_path: Path) -> Callable[..., Path]:
    """Create a Liberty install directory for the given Open Liberty version."""

    def _make(version: str = "24.0.0.8", jar_versions: tuple[str, ...] = ("1.0.0.20240101",)) -> Path:
        install_dir = tmp_path / "wlp"
        versions_dir = install_dir / "lib" / "versions"
        versions_dir.mkdir(parents=True, exist_ok=True)
        (versions_dir / "openliberty.properties").write_text(
            f"com.ibm.websphere.productId=io.openliberty\ncom.ibm.websphere.productVersion={version}\n"
        )
        for jar_version in jar_versions:
            (install_dir / "lib" / f"com.ibm.ws.install.map_{jar_version}.jar").write_bytes(b"")
        (install_dir / "bin").mkdir(exist_ok=True)
        return install_dir

    return _make


@pytest.fixture
def repository(tmp_path: Path) -> FakeRepository:
    return FakeRepository(
        tmp_path / "repo",
        files={("io.openliberty.features", "features", "json"): OPEN_LIBERTY_JSON},
    )


@pytest.fixture
def make_channel() -> Callable[..., FakeChannel]:
    def _make(
        action_results: list[dict[str, Any]] | None = None,
        pubkeys: list[dict[str, Any]] | None = None,
        clear_error: Exception | None = None,
    ) -> FakeChannel:
        outputs: dict[str, list[dict[str, Any]]] = {"action.result": list(action_results or [])}
        outputs["download.pubkeys"] = list(pubkeys or [])
        return FakeChannel(outputs, clear_error=clear_error)

    return _make


SUBSYSTEM_MANIFEST = (
    "Subsystem-ManifestVersion: 1\n"
    "Subsystem-SymbolicName: com.example.myFeature; visibility:=public\n"
    "IBM-ShortName: myFeature\n"
    "Subsystem-Version: 1.0.0\n"
    "\n"
)


@pytest.fixture
def make_esa() -> Callable[..., Path]:
    """Build a user feature ESA with a subsystem manifest and two bundles."""

    def _make(path: Path, manifest: str = SUBSYSTEM_MANIFEST) -> Path:
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("OSGI-INF/SUBSYSTEM.MF", manifest)
            zf.writestr("com.example.myFeature_1.0.0.jar", b"bundle")
            zf.writestr("bundles/com.example.util_1.0.0.jar", b"util")
            zf.writestr("wlp/lib/features/l10n/myFeature.properties", "name=My Feature")
        return path

    return _make
