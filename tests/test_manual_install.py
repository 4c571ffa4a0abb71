"""
Tests for manual user feature installation on runtimes without installer support.
"""

import zipfile
from pathlib import Path

import pytest
from liberty_features.exceptions import PluginExecutionError
from liberty_features.manual import ManualFeatureInstaller


class TestManualFeatureInstaller:
    """Test copying ESA contents into the user extension."""

    def test_install(self, tmp_path: Path, make_esa) -> None:
        esa = make_esa(tmp_path / "myFeature.esa")
        installer = ManualFeatureInstaller(tmp_path / "usr" / "extension")

        installer.install([esa])

        lib_dir = tmp_path / "usr" / "extension" / "lib"
        assert "IBM-ShortName: myFeature" in (lib_dir / "features" / "com.example.myFeature.mf").read_text()
        assert (lib_dir / "com.example.myFeature_1.0.0.jar").read_bytes() == b"bundle"
        assert (lib_dir / "bundles" / "com.example.util_1.0.0.jar").read_bytes() == b"util"
        assert not (lib_dir / "wlp").exists()
        assert installer.installed == {"com.example.myfeature": "myfeature"}

    def test_is_installed_by_either_name(self, tmp_path: Path, make_esa) -> None:
        installer = ManualFeatureInstaller(tmp_path)
        installer.install([make_esa(tmp_path / "myFeature.esa")])

        assert installer.is_installed("MyFeature")
        assert installer.is_installed("com.example.myFeature")
        assert not installer.is_installed("otherFeature")

    def test_already_installed_is_skipped(self, tmp_path: Path, make_esa) -> None:
        features_dir = tmp_path / "lib" / "features"
        features_dir.mkdir(parents=True)
        (features_dir / "com.example.myFeature.mf").write_text("existing")
        installer = ManualFeatureInstaller(tmp_path)

        installer.install([make_esa(tmp_path / "myFeature.esa")])

        assert (features_dir / "com.example.myFeature.mf").read_text() == "existing"
        assert not (tmp_path / "lib" / "com.example.myFeature_1.0.0.jar").exists()
        assert installer.is_installed("myFeature")

    def test_missing_short_name(self, tmp_path: Path, make_esa) -> None:
        esa = make_esa(tmp_path / "plain.esa", "Subsystem-SymbolicName: com.example.plain\n\n")
        installer = ManualFeatureInstaller(tmp_path)

        installer.install([esa])

        assert installer.installed == {"com.example.plain": ""}

    def test_missing_symbolic_name(self, tmp_path: Path, make_esa) -> None:
        esa = make_esa(tmp_path / "broken.esa", "IBM-ShortName: broken\n\n")

        with pytest.raises(PluginExecutionError, match="has no Subsystem-SymbolicName"):
            ManualFeatureInstaller(tmp_path).install([esa])

    def test_invalid_archive(self, tmp_path: Path) -> None:
        esa = tmp_path / "invalid.esa"
        esa.write_text("not a zip")

        with pytest.raises(PluginExecutionError, match="Could not install the user feature"):
            ManualFeatureInstaller(tmp_path).install([esa])

    @pytest.mark.parametrize("entry", ["../../../../escaped.jar", "/tmp/liberty-features-absolute.jar"])
    def test_entry_outside_extension_rejected(self, tmp_path: Path, entry: str) -> None:
        extension_dir = tmp_path / "wlp" / "usr" / "extension"
        esa = tmp_path / "evil.esa"
        with zipfile.ZipFile(esa, "w") as zf:
            zf.writestr("OSGI-INF/SUBSYSTEM.MF", "Subsystem-SymbolicName: com.example.evil\n\n")
            zf.writestr(entry, b"payload")

        with pytest.raises(PluginExecutionError, match="resolves outside") as excinfo:
            ManualFeatureInstaller(extension_dir).install([esa])

        assert str(esa) in str(excinfo.value)
        assert entry in str(excinfo.value)
        assert not (tmp_path / "escaped.jar").exists()
        assert not Path("/tmp/liberty-features-absolute.jar").exists()

    def test_symbolic_name_outside_features_rejected(self, tmp_path: Path, make_esa) -> None:
        esa = make_esa(tmp_path / "evil.esa", "Subsystem-SymbolicName: ../../../escaped\n\n")

        with pytest.raises(PluginExecutionError, match="resolves outside"):
            ManualFeatureInstaller(tmp_path / "ext").install([esa])

        assert not (tmp_path / "escaped.mf").exists()

    def test_undecodable_manifest(self, tmp_path: Path) -> None:
        esa = tmp_path / "latin.esa"
        with zipfile.ZipFile(esa, "w") as zf:
            zf.writestr("OSGI-INF/SUBSYSTEM.MF", b"Subsystem-SymbolicName: caf\xe9\n\n")

        with pytest.raises(PluginExecutionError, match="Could not install the user feature"):
            ManualFeatureInstaller(tmp_path / "ext").install([esa])
