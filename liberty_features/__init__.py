from liberty_features.exceptions import (
    FeatureConflictError,
    PluginError,
    PluginExecutionError,
    PluginScenarioError,
    VersionFormatError,
)
from liberty_features.installer import FeatureInstaller, combine_to_set
from liberty_features.models import InstallationResult, InstallFeatureConfig
from liberty_features.shared import VerifyOption

__all__ = [
    "FeatureConflictError",
    "FeatureInstaller",
    "InstallFeatureConfig",
    "InstallationResult",
    "PluginError",
    "PluginExecutionError",
    "PluginScenarioError",
    "VerifyOption",
    "VersionFormatError",
    "combine_to_set",
]
