"""
Feature installation inside a running dev-mode container.

The install kernel is never loaded here. The runtime's own featureUtility is
run inside the container and its output is classified.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from archinstall import debug, error, info
from archinstall.lib.exceptions import SysCallError
from archinstall.lib.general import SysCommand

from .conflicts import classify, is_already_installed
from .exceptions import CONFLICT_MESSAGE
from .models import InstallationResult
from .shared import CONTAINER_EXEC_TIMEOUT, VerifyOption

# Marker appended to the output of a command that exited non-zero
ERROR_MARKER = " RC="
FEATURE_LOCAL_REPO = "/devmode-maven-cache"


class CommandRunner(ABC):
    """Runs a shell command and returns its combined output."""

    @abstractmethod
    def run(self, command: str, timeout: int) -> str:
        """Run the command.

        Returns:
            The command output, with ` RC=<exit code>` appended if it failed
        """


class SysCommandRunner(CommandRunner):
    """CommandRunner backed by archinstall's SysCommand."""

    def run(self, command: str, timeout: int) -> str:
        debug(f"Running command with {timeout}s timeout: {command}")
        try:
            return SysCommand(f"timeout {timeout} {command}").decode()
        except SysCallError as e:
            output = e.worker_log.decode("utf-8", errors="replace") if e.worker_log else str(e)
            return f"{output}{ERROR_MARKER}{e.exit_code}"


class ContainerFeatureInstaller:
    """Installs features by running featureUtility in a container."""

    def __init__(self, container_name: str, runner: CommandRunner, command_prefix: str = "docker") -> None:
        self.container_name = container_name
        self.runner = runner
        self.command_prefix = command_prefix

    def build_command(self, features: list[str], accept_license: bool, verify_option: VerifyOption | None) -> str:
        command = (
            f"{self.command_prefix} exec -e FEATURE_LOCAL_REPO={FEATURE_LOCAL_REPO} {self.container_name} "
            f"featureUtility installFeature {' '.join(features)}"
        )
        if accept_license:
            command += " --acceptLicense"
        if verify_option is not None:
            command += f" --verify={verify_option.value}"
        return command

    def install(self, features: list[str], accept_license: bool, verify_option: VerifyOption | None) -> InstallationResult:
        result = InstallationResult(requested_features=list(features), container=self.container_name)
        if not features:
            debug(f"Skipping installing features on container {self.container_name} since no features were specified.")
            result.success = True
            result.nothing_to_do = True
            return result

        info(f"Installing features {features} on container {self.container_name}")
        output = self.runner.run(self.build_command(features, accept_license, verify_option), CONTAINER_EXEC_TIMEOUT)

        if ERROR_MARKER not in output:
            debug(output)
            result.success = True
            return result

        if is_already_installed(output):
            debug(output)
            result.success = True
            result.nothing_to_do = True
            return result

        conflict = classify(output)
        if conflict.is_conflict:
            message = f"{CONFLICT_MESSAGE}{features}: {output}"
        else:
            message = f"An error occurred while installing features: {output}"
        error(message)
        result.add_error(message)
        return result
