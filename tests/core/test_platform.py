"""
Tests for platform detection and selectors.
"""

from unittest.mock import patch

import pytest

from devstrap.core.platform import (
    PlatformInfo,
    default_package_managers,
    detect_platform,
)


class TestMatches:
    """Test platform selector matching."""

    @pytest.mark.parametrize(
        "selector,expected",
        [
            ("linux", True),
            ("ubuntu", True),
            ("Ubuntu", True),
            ("linux:ubuntu", True),
            ("linux:debian", False),
            ("windows", False),
            ("debian", False),
        ],
    )
    def test_selectors(self, ubuntu, selector, expected):
        assert ubuntu.matches(selector) is expected

    def test_matches_any_empty_list(self, windows):
        assert windows.matches_any([]) is True

    def test_matches_any(self, windows):
        assert windows.matches_any(["linux", "windows"]) is True
        assert windows.matches_any(["linux", "macos"]) is False

    def test_str(self, ubuntu):
        assert str(ubuntu) == "linux-x64 (ubuntu 24.04)"


class TestDetectPlatform:
    """Test detect_platform with patched platform module."""

    def test_linux(self):
        with patch("platform.system", return_value="Linux"), patch(
            "platform.machine", return_value="x86_64"
        ), patch("distro.id", return_value="debian"), patch(
            "distro.version", return_value="12"
        ):
            info = detect_platform()

        assert info == PlatformInfo("linux", "x64", "debian", "12")

    def test_macos(self):
        with patch("platform.system", return_value="Darwin"), patch(
            "platform.machine", return_value="arm64"
        ), patch("platform.mac_ver", return_value=("14.5", ("", "", ""), "")):
            info = detect_platform()

        assert info.os == "macos"
        assert info.arch == "arm64"
        assert info.distribution == ""
        assert info.version == "14.5"

    def test_unsupported_os(self):
        with patch("platform.system", return_value="SunOS"):
            with pytest.raises(RuntimeError, match="Unsupported operating system"):
                detect_platform()

    def test_cached(self):
        with patch("platform.system", return_value="Windows"), patch(
            "platform.machine", return_value="AMD64"
        ), patch("platform.version", return_value="10.0"):
            first = detect_platform()
        second = detect_platform()
        assert first is second


class TestDefaultPackageManagers:
    """Test expected package managers per platform."""

    def test_ubuntu(self, ubuntu):
        assert default_package_managers(ubuntu) == ["apt", "snap", "brew"]

    def test_windows(self, windows):
        assert default_package_managers(windows) == ["winget", "choco"]

    def test_macos(self):
        assert default_package_managers(PlatformInfo("macos", "arm64")) == ["brew"]

    def test_other_linux(self):
        info = PlatformInfo("linux", "x64", "fedora", "40")
        assert default_package_managers(info) == ["brew"]
