"""
Install kernel capability and its key/value channel implementation.

The install-map jar exposes the kernel as a single mutable map. Writing
input keys stages a command; reading an output key such as `action.result`
runs it. MapBasedInstallKernel hides that protocol behind typed requests
and responses.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, MutableMapping
from pathlib import Path
from typing import Any

from archinstall import debug

from ..conflicts import is_already_installed
from ..exceptions import PluginExecutionError, PluginScenarioError
from .commands import InstallRequest, KernelResponse, PublicKeysRequest, ResolveRequest, VerifyRequest

ACTION_RESULT = "action.result"
ACTION_ERROR_MESSAGE = "action.error.message"
ACTION_EXCEPTION_STACKTRACE = "action.exception.stacktrace"
ACTION_INSTALL_RESULT = "action.install.result"

# Builds the kernel channel from (install-map jar, runtime install dir, override bundle descriptor).
# Returns None when the jar does not provide a map based install kernel.
ChannelFactory = Callable[[Path, Path, str | None], MutableMapping[str, Any] | None]


class InstallKernel(ABC):
    """Resolve, verify and install operations offered by the install kernel."""

    @abstractmethod
    def resolve(self, request: ResolveRequest) -> KernelResponse:
        """Resolve features to the coordinates of the ESAs to install."""

    @abstractmethod
    def download_public_keys(self, request: PublicKeysRequest) -> KernelResponse:
        """Fetch the public keys used to verify feature signatures."""

    @abstractmethod
    def verify(self, request: VerifyRequest) -> KernelResponse:
        """Verify the signatures of downloaded ESAs."""

    @abstractmethod
    def install(self, request: InstallRequest) -> KernelResponse:
        """Install a single ESA, answering with the installed feature names."""

    @abstractmethod
    def close(self) -> None:
        """Release everything held by the kernel."""


class MapBasedInstallKernel(InstallKernel):
    """InstallKernel driven through the install map's key/value channel."""

    def __init__(self, channel: MutableMapping[str, Any]) -> None:
        self.channel = channel

    def resolve(self, request: ResolveRequest) -> KernelResponse:
        channel = self.channel
        channel["install.local.esa"] = True
        channel["single.json.file"] = list(request.json_repositories)
        channel["features.to.resolve"] = list(request.features)
        channel["platforms"] = list(request.platforms)
        channel["license.accept"] = request.accept_license
        channel["is.install.server.feature"] = True
        if request.individual_esas:
            channel["install.individual.esas"] = True
            channel["individual.esas"] = list(request.individual_esas)

        resolved = channel.get(ACTION_RESULT)
        message = channel.get(ACTION_ERROR_MESSAGE)

        if resolved is None:
            self._debug_stacktrace()
            return KernelResponse.failure(message or f"Could not resolve features {request.features}")

        if not resolved:
            self._debug_stacktrace()
            if message is None:
                debug("resolvedFeatures was empty but the install kernel did not issue any messages")
                return KernelResponse.empty()
            if is_already_installed(message):
                return KernelResponse.empty(message)
            return KernelResponse.failure(message)

        return KernelResponse.success(list(resolved))

    def download_public_keys(self, request: PublicKeysRequest) -> KernelResponse:
        channel = self.channel
        channel.get("environment.variable.map")
        channel["verify.option"] = request.verify_option.value
        channel["user.public.keys"] = list(request.user_public_keys)
        channel.get("download.pubkeys")
        return self._outcome()

    def verify(self, request: VerifyRequest) -> KernelResponse:
        self.channel["verify.option"] = request.verify_option.value
        self.channel["action.verify"] = list(request.artifacts)
        self.channel.get(ACTION_RESULT)
        return self._outcome()

    def install(self, request: InstallRequest) -> KernelResponse:
        channel = self.channel
        channel["license.accept"] = request.accept_license
        channel["action.install"] = request.artifact
        channel["to.extension"] = request.to_extension

        debug(f"action.result: {channel.get(ACTION_RESULT)}")
        debug(f"action.error.message: {channel.get(ACTION_ERROR_MESSAGE)}")
        failure = self._outcome()
        if not failure.ok:
            return failure
        return KernelResponse.success(list(channel.get(ACTION_INSTALL_RESULT) or []))

    def close(self) -> None:
        try:
            self.channel.clear()
        except NotImplementedError as e:
            debug(f"This version of the install map does not support the clear operation: {e}")
        except Exception as e:
            raise PluginExecutionError("Could not close resources after installing features.") from e

    def _outcome(self) -> KernelResponse:
        message = self.channel.get(ACTION_ERROR_MESSAGE)
        if message is not None:
            self._debug_stacktrace()
            return KernelResponse.failure(message)
        return KernelResponse.empty()

    def _debug_stacktrace(self) -> None:
        stacktrace = self.channel.get(ACTION_EXCEPTION_STACKTRACE)
        if stacktrace is not None:
            debug(f"action.exception.stacktrace: {stacktrace}")


def load_install_kernel(
    jar: Path, install_directory: Path, bundle_descriptor: str | None, channel_factory: ChannelFactory
) -> InstallKernel:
    """Open the kernel channel hosted by an install-map jar.

    Raises:
        PluginScenarioError: If the jar does not provide a map based install kernel
        PluginExecutionError: If the jar could not be loaded
    """
    try:
        channel = channel_factory(jar, install_directory, bundle_descriptor)
    except OSError as e:
        raise PluginExecutionError(f"Could not load the jar {jar.absolute()}") from e

    if channel is None:
        raise PluginScenarioError(f"The install map jar {jar} does not provide a map based install kernel.")

    channel["runtime.install.dir"] = install_directory
    if bundle_descriptor is not None:
        channel["override.jar.bundles"] = [bundle_descriptor]
    debug(f"Loaded install kernel from {jar}")
    return MapBasedInstallKernel(channel)
