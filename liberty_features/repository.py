"""
Artifact repository collaborator.

The build plugin hosting the installer owns artifact download and caching.
This module defines the boundary it implements and the download sequences
the installer needs on top of it: product feature JSONs, additional user
feature JSONs, and feature archives with their signatures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from archinstall import debug, warn

from .exceptions import PluginExecutionError
from .models import ArtifactCoordinate, ProductProperties
from .shared import FEATURES_JSON_ARTIFACT_ID, VerifyOption


class ArtifactRepository(ABC):
    """Downloads artifacts from the configured repositories."""

    @abstractmethod
    def download_artifact(self, group_id: str, artifact_id: str, type: str, version: str) -> Path:
        """Download an artifact, or return it from the cache.

        The version may be a literal or a half-open range such as
        `[24.0.0.8, 24.0.0.9)`.

        Raises:
            PluginExecutionError: If the artifact could not be downloaded
        """

    @abstractmethod
    def download_signature(self, esa: Path, group_id: str, artifact_id: str, type: str, version: str) -> Path:
        """Download the signature of an already downloaded ESA.

        Raises:
            PluginExecutionError: If the signature could not be downloaded
        """


def download_product_jsons(repository: ArtifactRepository, properties_list: Iterable[ProductProperties]) -> list[Path]:
    """Download the features JSON of every installed product, skipping missing ones."""
    jsons: list[Path] = []
    for properties in properties_list:
        json_group_id = f"{properties.id}.features"
        try:
            json_file = repository.download_artifact(json_group_id, FEATURES_JSON_ARTIFACT_ID, "json", properties.version)
        except PluginExecutionError as e:
            debug(f"Cannot find json for productId {properties.id}, productVersion {properties.version}: {e}")
            continue
        if json_file not in jsons:
            jsons.append(json_file)
    return jsons


def download_additional_jsons(repository: ArtifactRepository, coordinates: Iterable[str]) -> list[Path]:
    """Download user feature JSONs given as `groupId:artifactId:version` coordinates."""
    jsons: list[Path] = []
    for maven_coord in coordinates:
        coordinate = ArtifactCoordinate.parse(maven_coord, type="json")
        try:
            jsons.append(repository.download_artifact(coordinate.group_id, coordinate.artifact_id, "json", coordinate.version))
        except PluginExecutionError as e:
            warn(
                "Unable to find the following additional features JSON in the connected repositories: "
                f"{maven_coord}. Please ignore this warning if this is not a user feature."
            )
            debug(f"Unable to find additional features JSON: {e}")
    return jsons


def download_esa(repository: ArtifactRepository, coordinate: ArtifactCoordinate, verify_option: VerifyOption) -> Path:
    """Download a feature ESA and, unless verification is skipped, its signature.

    A missing signature is only fatal under VerifyOption.ALL since at this
    point it is unknown whether the feature is a Liberty or a user feature.
    """
    esa = repository.download_artifact(coordinate.group_id, coordinate.artifact_id, "esa", coordinate.version)
    if verify_option is VerifyOption.SKIP:
        return esa

    try:
        repository.download_signature(esa, coordinate.group_id, coordinate.artifact_id, "esa.asc", coordinate.version)
    except PluginExecutionError as e:
        if verify_option is VerifyOption.ALL:
            raise
        warn(f"Signature at coordinates {coordinate} could not be downloaded. {e}")
    return esa
