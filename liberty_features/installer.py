"""
Feature installation orchestration.

This module provides the FeatureInstaller that build plugins use to install
features into a Liberty runtime. It decides between the manual user feature
path, the container path and the install kernel path, then drives the
kernel through resolve, download, verify, install and validation.
"""

from __future__ import annotations

import shutil
from collections.abc import Collection, Iterable
from pathlib import Path

from archinstall import debug, error, info, warn

from .config_io import load_install_config
from .conflicts import classify
from .container import CommandRunner, ContainerFeatureInstaller, SysCommandRunner
from .exceptions import FeatureConflictError, PluginExecutionError, PluginScenarioError
from .kernel import (
    ChannelFactory,
    InstallKernel,
    InstallRequest,
    KernelStatus,
    PublicKeysRequest,
    ResolveRequest,
    VerifyRequest,
    get_override_bundle_descriptor,
    jar_caching_disabled,
    load_install_jar,
    load_install_kernel,
)
from .manual import ManualFeatureInstaller
from .models import ArtifactCoordinate, FeatureRequest, InstallationResult, InstallFeatureConfig, ProductProperties, canonical_name
from .product import (
    contains_ignore_case,
    get_open_liberty_feature_set,
    get_open_liberty_version,
    load_properties,
    product_info_validate,
)
from .repository import ArtifactRepository, download_additional_jsons, download_esa, download_product_jsons
from .shared import (
    MIN_USER_FEATURE_VERSION,
    MIN_VERIFY_FEATURE_VERSION,
    MIN_VERSIONLESS_FEATURE_VERSION,
    OPEN_LIBERTY_GROUP_ID,
    REPOSITORY_RESOLVER_ARTIFACT_ID,
    TO_USER,
    VerifyOption,
)
from .versions import compare_runtime_version

SCHEMA_GEN_DIRECTORY = ".libertyls"


def parse_verify_option(value: str) -> VerifyOption:
    try:
        return VerifyOption(value)
    except ValueError as e:
        raise PluginExecutionError(
            f"The {value} verify option isn't valid. Specify one of the following valid options: enforce, warn, skip, all"
        ) from e


def combine_to_set(*collections: Iterable[str] | None) -> list[str]:
    """Merge collections ignoring case, keeping the first spelling seen.

    Blank entries are dropped with a warning.
    """
    seen: set[str] = set()
    result: list[str] = []
    for collection in collections:
        if collection is None:
            continue
        for value in collection:
            key = value.lower()
            if key in seen:
                continue
            seen.add(key)
            if not value.strip():
                warn("An empty feature was specified in a server configuration file. Ensure that the features are valid.")
                continue
            result.append(value)
    return result


class FeatureInstaller:
    """Installs features into a Liberty runtime.

    The constructor checks that the scenario is supported. For a local
    runtime it locates the install-map jar and downloads the product feature
    JSONs; when a container name is configured none of that is needed.

    Args:
        config: Plugin configuration
        repository: Repository the build plugin downloads artifacts from
        channel_factory: Opens the install kernel channel of an install-map jar
        command_runner: Runs container commands
        properties_list: Product properties, read from the install directory if omitted
    """

    def __init__(
        self,
        config: InstallFeatureConfig,
        repository: ArtifactRepository,
        channel_factory: ChannelFactory | None = None,
        command_runner: CommandRunner | None = None,
        properties_list: list[ProductProperties] | None = None,
    ) -> None:
        self.config = config
        self.repository = repository
        self.channel_factory = channel_factory
        self.command_runner = command_runner or SysCommandRunner()
        self.verify_option = parse_verify_option(config.verify)
        self.manual_installer = ManualFeatureInstaller(config.user_extension_directory)
        self.install_jar: Path | None = None
        self.downloaded_jsons: list[Path] = []

        if properties_list is None:
            properties_list = [] if config.container_name is not None else load_properties(config.install_directory)
        self.properties_list = properties_list
        self.open_liberty_version = get_open_liberty_version(properties_list)

        if config.container_name is None:
            self._prepare_local_install()

    @classmethod
    def from_config_file(
        cls,
        config_path: Path,
        repository: ArtifactRepository,
        channel_factory: ChannelFactory | None = None,
        command_runner: CommandRunner | None = None,
    ) -> FeatureInstaller:
        """Create an installer from the `liberty_features` section of a plugin configuration file."""
        debug(f"Loading install configuration from {config_path}")
        return cls(load_install_config(config_path), repository, channel_factory=channel_factory, command_runner=command_runner)

    def _prepare_local_install(self) -> None:
        if self.channel_factory is None:
            raise PluginScenarioError("No install kernel is available to install features into a local runtime.")

        self.install_jar = load_install_jar(self.config.install_directory, self.repository, self.open_liberty_version)
        if self.install_jar is None:
            raise PluginScenarioError("Install map jar not found.")

        self.downloaded_jsons = download_product_jsons(self.repository, self.properties_list)

        if self.config.additional_jsons and self._runtime_at_least(MIN_USER_FEATURE_VERSION):
            for json_file in download_additional_jsons(self.repository, self.config.additional_jsons):
                if json_file not in self.downloaded_jsons:
                    self.downloaded_jsons.append(json_file)

        if not self.downloaded_jsons:
            raise PluginScenarioError("Cannot find JSONs for to the installed runtime from the Maven repository.")

        if self.config.from_ is not None:
            debug(f"has from: {self.config.from_}")
            raise PluginScenarioError("Cannot install features from a Maven repository when using 'from' parameter.")

    @property
    def manually_installed_features(self) -> dict[str, str]:
        """Symbolic name to short name of user features copied without the kernel."""
        return self.manual_installer.installed

    def _runtime_at_least(self, minimum: str) -> bool:
        return self.open_liberty_version is not None and compare_runtime_version(self.open_liberty_version, minimum) >= 0

    def _runtime_below(self, minimum: str) -> bool:
        return self.open_liberty_version is not None and compare_runtime_version(self.open_liberty_version, minimum) < 0

    def install_features(self, accept_license: bool, features: Collection[str], platforms: Collection[str] | None = None) -> InstallationResult:
        """Resolve, download and install features.

        User feature ESAs listed in the plugin configuration are installed
        along with the requested features. On runtimes too old to install
        them through the kernel they are copied manually instead.

        Args:
            accept_license: Whether the license terms were accepted
            features: Feature names, `extension:name` for user features
            platforms: Platforms that versionless features resolve against

        Returns:
            InstallationResult describing what was installed

        Raises:
            PluginExecutionError: If any step fails
            FeatureConflictError: If the requested features conflict
        """
        platforms = list(platforms or [])
        feature_to_ext: dict[str, str] = {}
        features_to_install: dict[str, str] = {}
        individual_esas: list[Path] = []

        esas = self.config.plugin_listed_esas
        if self.open_liberty_version is not None:
            info(f"plugin listed esa: {esas}")
        if esas and self._runtime_below(MIN_USER_FEATURE_VERSION):
            info("Neither InstallUtility nor FeatureUtility is available to install user feature esa.")
            info("Attempting to manually install the user feature esa without resolving its dependencies.")
            info(
                f"Recommended user action: upgrade to OpenLiberty version {MIN_USER_FEATURE_VERSION} or higher "
                "and provide features-bom file for the user feature esa."
            )
            self.manual_installer.install(esas)
        else:
            for esa in esas:
                features_to_install.setdefault(esa.lower(), esa)
                individual_esas.append(Path(esa))

        contains_versionless_feature = False
        for spec in features:
            request = FeatureRequest.parse(spec)
            if not request.name:
                warn("An empty feature was specified in a server configuration file. Ensure that the features are valid.")
                continue
            if request.is_user_feature:
                feature_to_ext[request.name] = request.extension or ""
            else:
                contains_versionless_feature = contains_versionless_feature or request.is_versionless
                feature_to_ext.setdefault(request.name, "")
            # user features copied by the manual path may be named by symbolic or short name
            if self.manual_installer.is_installed(request.name):
                debug(f"Skipping {request.raw} since it was installed manually")
                continue
            features_to_install.setdefault(request.name, request.name)

        if (platforms or contains_versionless_feature) and self._runtime_below(MIN_VERSIONLESS_FEATURE_VERSION):
            if platforms:
                message = (
                    "Detected versionless feature(s) for installation. The minimum required Liberty version "
                    f"for versionless feature support is {MIN_VERSIONLESS_FEATURE_VERSION}"
                )
                error(message)
                raise PluginExecutionError(message)
            warn(
                "Detected possible versionless feature(s) for installation. The minimum required Liberty version "
                f"for versionless feature support is {MIN_VERSIONLESS_FEATURE_VERSION}"
            )

        to_install = list(features_to_install.values())
        if not to_install:
            debug("featuresToInstall is empty")
            return InstallationResult(success=True, nothing_to_do=True)

        if self.config.container_name is not None:
            container = ContainerFeatureInstaller(self.config.container_name, self.command_runner, self.config.container_command_prefix)
            return container.install(to_install, accept_license, self.verify_option)

        debug(f"JSON repos: {self.downloaded_jsons}")

        # Open Liberty features need no license acceptance
        accept_license_value = True if self._is_only_open_liberty_features(to_install) else accept_license

        with jar_caching_disabled():
            return self._install_with_kernel(to_install, platforms, accept_license_value, individual_esas, feature_to_ext)

    def _install_with_kernel(
        self,
        features: list[str],
        platforms: list[str],
        accept_license: bool,
        individual_esas: list[Path],
        feature_to_ext: dict[str, str],
    ) -> InstallationResult:
        assert self.install_jar is not None
        assert self.channel_factory is not None
        result = InstallationResult(requested_features=features)
        kernel: InstallKernel | None = None
        primary_error: BaseException | None = None

        try:
            bundle = get_override_bundle_descriptor(
                self.repository, OPEN_LIBERTY_GROUP_ID, REPOSITORY_RESOLVER_ARTIFACT_ID, self.open_liberty_version
            )
            kernel = load_install_kernel(self.install_jar, self.config.install_directory, bundle, self.channel_factory)

            coordinates = self._resolve_features(kernel, features, platforms, accept_license, individual_esas)
            if not coordinates:
                result.success = True
                result.nothing_to_do = True
                return result

            artifacts = self._download_esas(coordinates, feature_to_ext)

            if self.verify_option is not VerifyOption.SKIP:
                self._verify_features(kernel, list(artifacts))

            info(f"Installing features: {features}")
            for esa, ext in artifacts.items():
                response = kernel.install(InstallRequest(artifact=esa, accept_license=accept_license, to_extension=self._target_extension(ext)))
                if not response.ok:
                    debug(response.message)
                    raise PluginExecutionError(response.message)
                result.installed_features.extend(str(feature) for feature in response.payload)

            product_info_validate(self.config.install_directory)
            info(f"The following features have been installed: {' '.join(result.installed_features)}")

            self._remove_schema_cache()
            result.success = True
            return result
        except BaseException as e:
            primary_error = e
            raise
        finally:
            if kernel is not None:
                try:
                    kernel.close()
                except PluginExecutionError as e:
                    if primary_error is None:
                        raise
                    debug(f"Could not close install kernel after an earlier failure: {e}")

    def _resolve_features(
        self,
        kernel: InstallKernel,
        features: list[str],
        platforms: list[str],
        accept_license: bool,
        individual_esas: list[Path],
    ) -> list[str]:
        if platforms:
            info(f"Resolving features: {features} using platforms: {platforms}")
        else:
            info(f"Resolving features: {features}")

        response = kernel.resolve(
            ResolveRequest(
                features=features,
                platforms=platforms,
                json_repositories=list(self.downloaded_jsons),
                accept_license=accept_license,
                individual_esas=individual_esas,
            )
        )

        if response.status is KernelStatus.EMPTY:
            if response.message:
                info(response.message)
            info("The features are already installed, so no action is needed.")
            return []

        if not response.ok:
            message = response.message or ""
            conflict = classify(message)
            if conflict.is_conflict:
                raise FeatureConflictError(features, message, conflict)
            raise PluginExecutionError(message)

        return [str(coordinate) for coordinate in response.payload]

    def _download_esas(self, coordinates: list[str], feature_to_ext: dict[str, str]) -> dict[Path, str]:
        artifacts: dict[Path, str] = {}
        seen: set[ArtifactCoordinate] = set()
        for raw in coordinates:
            try:
                coordinate = ArtifactCoordinate.parse(raw)
            except ValueError as e:
                raise PluginExecutionError(f"The install kernel resolved an invalid coordinate: {e}") from e
            if coordinate in seen:
                continue
            seen.add(coordinate)
            esa = download_esa(self.repository, coordinate, self.verify_option)
            artifacts[esa] = feature_to_ext.get(canonical_name(coordinate.artifact_id), "")
        return artifacts

    def _verify_features(self, kernel: InstallKernel, artifacts: list[Path]) -> None:
        if not self._runtime_at_least(MIN_VERIFY_FEATURE_VERSION):
            warn(f"Skipping feature verification. Minimum required Liberty version is {MIN_VERIFY_FEATURE_VERSION}")
            return

        info("Downloading public key(s) for signature verification")
        response = kernel.download_public_keys(PublicKeysRequest(verify_option=self.verify_option, user_public_keys=list(self.config.key_map)))
        if not response.ok:
            raise PluginExecutionError(response.message)

        info("Verifying features")
        response = kernel.verify(VerifyRequest(artifacts=artifacts, verify_option=self.verify_option))
        if not response.ok:
            raise PluginExecutionError(response.message)

    def _target_extension(self, ext: str | None) -> str:
        to = self.config.to
        if ext and to is not None:
            warn(
                f'The product extension location "{ext}" specified in the server.xml file overrides '
                f'the to extension "{to}" specified in the build file.'
            )
        if ext:
            debug(f"Installing to extension from server.xml: {ext}")
            return ext
        if to is not None:
            debug(f"Installing to extension: {to}")
            return to
        return TO_USER

    def _is_only_open_liberty_features(self, features: list[str]) -> bool:
        result = contains_ignore_case(get_open_liberty_feature_set(self.downloaded_jsons), features)
        debug(f"Is installing only Open Liberty features? {result}")
        return result

    def _remove_schema_cache(self) -> None:
        # Liberty Tools regenerates its schema when this directory is missing
        schema_gen_dir = self.config.build_directory / SCHEMA_GEN_DIRECTORY
        if not schema_gen_dir.is_dir():
            return
        try:
            shutil.rmtree(schema_gen_dir)
            debug(f"Deleted {SCHEMA_GEN_DIRECTORY} directory after installing features.")
        except OSError as e:
            debug(f"Could not delete {SCHEMA_GEN_DIRECTORY} directory after installing features: {e}")
