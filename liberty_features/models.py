from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from archinstall import debug
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .shared import VerifyOption


def canonical_name(name: str) -> str:
    """Canonical form used for every feature name comparison."""
    return name.strip().lower()


@dataclass(frozen=True)
class FeatureRequest:
    """A feature requested for installation.

    User features are written as `extension:name`; everything else is a bare
    name such as `servlet-6.0` or the versionless `servlet`.
    """

    raw: str
    name: str
    extension: str | None = None

    @classmethod
    def parse(cls, spec: str) -> FeatureRequest:
        if ":" in spec:
            parts = spec.split(":")
            return cls(raw=spec, name=canonical_name(parts[1]), extension=parts[0])
        return cls(raw=spec, name=canonical_name(spec))

    @property
    def is_user_feature(self) -> bool:
        return self.extension is not None

    @property
    def is_versionless(self) -> bool:
        return not self.is_user_feature and "-" not in self.name


@dataclass(frozen=True)
class ArtifactCoordinate:
    """Repository coordinate of a downloadable artifact."""

    group_id: str
    artifact_id: str
    type: str
    version: str

    @classmethod
    def parse(cls, coordinate: str, type: str = "esa") -> ArtifactCoordinate:
        """Parse a `groupId:artifactId:version` string."""
        parts = coordinate.split(":")
        if len(parts) < 3 or not all(parts[:3]):
            raise ValueError(f"Invalid artifact coordinate {coordinate}. Expected groupId:artifactId:version")
        return cls(group_id=parts[0], artifact_id=parts[1], type=type, version=parts[2])

    @staticmethod
    def version_range(low: str, high: str) -> str:
        """Half-open range `[low, high)`."""
        return f"[{low}, {high})"

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


@dataclass(frozen=True)
class ProductProperties:
    """Product id and version read from the runtime's lib/versions files."""

    id: str
    version: str


@dataclass
class InstallationResult:
    """Outcome of one install_features run."""

    requested_features: list[str] = field(default_factory=list)
    success: bool = False
    container: str | None = None
    nothing_to_do: bool = False
    installed_features: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add_error(self, error_msg: str) -> None:
        """Add an error message to the result."""
        self.errors.append(error_msg)
        debug(f"Installation error: {error_msg}")

    def get_summary(self) -> str:
        """Get human-readable installation summary."""
        target = f" on container {self.container}" if self.container else ""
        if not self.success:
            error_summary = "; ".join(self.errors) if self.errors else "Unknown error"
            return f"Feature installation failed{target}: {error_summary}"
        if self.nothing_to_do:
            return f"No features needed to be installed{target}"
        if not self.installed_features:
            return f"Installed features{target}: {', '.join(self.requested_features)}"
        return f"The following features have been installed{target}: {' '.join(self.installed_features)}"


class InstallFeatureConfig(BaseModel):
    """Plugin configuration for feature installation.

    Mirrors the install-feature goal parameters of the build plugins. The
    verify option is kept as the raw string so an invalid value is reported
    when the installer is constructed.
    """

    model_config = ConfigDict(populate_by_name=True)

    install_directory: Path
    build_directory: Path
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    plugin_listed_esas: list[str] = Field(default_factory=list)
    container_name: str | None = None
    container_command_prefix: str = "docker"
    additional_jsons: list[str] = Field(default_factory=list)
    verify: str = VerifyOption.ENFORCE.value
    key_map: list[dict[str, str]] = Field(default_factory=list)
    user_extension_path: Path | None = None

    @field_validator("additional_jsons")
    @classmethod
    def _validate_additional_jsons(cls, v: list[str]) -> list[str]:
        for coordinate in v:
            ArtifactCoordinate.parse(coordinate, type="json")
        return v

    @field_validator("plugin_listed_esas")
    @classmethod
    def _dedupe_esas(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @property
    def user_extension_directory(self) -> Path:
        return self.user_extension_path or self.install_directory / "usr" / "extension"

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, data: dict) -> InstallFeatureConfig:
        return cls.model_validate(data)
