"""
Error types raised while installing features.

Scenario errors mean the requested combination can never work and are raised
before anything is modified. Execution errors carry the message of whatever
failed during resolve, download, verify, install or validation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .conflicts import ConflictReport

CONFLICT_MESSAGE = "A feature conflict error occurred while installing features: "


class PluginError(Exception):
    """Base class for all feature installation errors."""


class PluginScenarioError(PluginError):
    """The current scenario is not supported."""


class PluginExecutionError(PluginError):
    """A step of the feature installation failed."""


class FeatureConflictError(PluginExecutionError):
    """The kernel reported conflicting feature definitions."""

    def __init__(self, features: list[str], kernel_message: str, conflict: ConflictReport | None = None) -> None:
        self.features = list(features)
        self.kernel_message = kernel_message
        self.conflict = conflict
        super().__init__(f"{CONFLICT_MESSAGE}{self.features}: {kernel_message}")


class VersionFormatError(PluginExecutionError):
    """A product version is not a dotted version with an integer last segment."""
