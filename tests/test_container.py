"""
Tests for feature installation in a dev-mode container.
"""

from unittest.mock import Mock, patch

from archinstall.lib.exceptions import SysCallError
from liberty_features.container import ContainerFeatureInstaller, SysCommandRunner
from liberty_features.exceptions import CONFLICT_MESSAGE
from liberty_features.shared import VerifyOption


def make_installer(output: str = "All features were successfully installed.") -> tuple[ContainerFeatureInstaller, Mock]:
    runner = Mock()
    runner.run.return_value = output
    return ContainerFeatureInstaller("devc", runner), runner


class TestBuildCommand:
    """Test the featureUtility command run in the container."""

    def test_command(self) -> None:
        installer, _ = make_installer()

        command = installer.build_command(["servlet-6.0", "jsonp-2.1"], True, VerifyOption.WARN)

        assert command == (
            "docker exec -e FEATURE_LOCAL_REPO=/devmode-maven-cache devc "
            "featureUtility installFeature servlet-6.0 jsonp-2.1 --acceptLicense --verify=warn"
        )

    def test_command_without_options(self) -> None:
        installer = ContainerFeatureInstaller("devc", Mock(), command_prefix="podman")

        command = installer.build_command(["servlet-6.0"], False, None)

        assert command == "podman exec -e FEATURE_LOCAL_REPO=/devmode-maven-cache devc featureUtility installFeature servlet-6.0"


class TestContainerInstall:
    """Test classification of featureUtility output."""

    def test_success(self) -> None:
        installer, runner = make_installer()

        result = installer.install(["servlet-6.0"], True, VerifyOption.ENFORCE)

        assert result.success
        assert not result.nothing_to_do
        assert result.container == "devc"
        assert runner.run.call_args[0][1] == 600

    def test_no_features(self) -> None:
        installer, runner = make_installer()

        result = installer.install([], True, VerifyOption.ENFORCE)

        assert result.success
        assert result.nothing_to_do
        runner.run.assert_not_called()

    def test_already_installed(self) -> None:
        installer, _ = make_installer("CWWKF1250I: All features were already installed. RC=22")

        result = installer.install(["servlet-6.0"], True, VerifyOption.ENFORCE)

        assert result.success
        assert result.nothing_to_do

    def test_conflict(self) -> None:
        output = "CWWKF0044E: servlet-4.0 and servlet-6.0 cannot be installed together. RC=21"
        installer, _ = make_installer(output)

        with patch("liberty_features.container.error") as mock_error:
            result = installer.install(["servlet-6.0"], True, VerifyOption.ENFORCE)

        assert not result.success
        assert result.errors == [f"{CONFLICT_MESSAGE}['servlet-6.0']: {output}"]
        mock_error.assert_called_once()

    def test_other_failure(self) -> None:
        installer, _ = make_installer("CWWKF1259E: Unable to obtain the following features: foo-1.0 RC=21")

        result = installer.install(["foo-1.0"], True, VerifyOption.ENFORCE)

        assert not result.success
        assert result.errors[0].startswith("An error occurred while installing features: CWWKF1259E")
        assert "Feature installation failed on container devc" in result.get_summary()


class TestSysCommandRunner:
    """Test running container commands through SysCommand."""

    @patch("liberty_features.container.SysCommand")
    def test_run(self, mock_syscmd: Mock) -> None:
        mock_syscmd.return_value.decode.return_value = "installed"

        assert SysCommandRunner().run("docker exec devc true", 600) == "installed"
        mock_syscmd.assert_called_once_with("timeout 600 docker exec devc true")

    @patch("liberty_features.container.SysCommand")
    def test_run_failure_appends_exit_code(self, mock_syscmd: Mock) -> None:
        mock_syscmd.side_effect = SysCallError("featureUtility failed", exit_code=21, worker_log=b"CWWKF1259E: not found")

        assert SysCommandRunner().run("docker exec devc featureUtility", 600) == "CWWKF1259E: not found RC=21"
