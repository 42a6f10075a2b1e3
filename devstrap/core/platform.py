"""
Platform detection for devstrap.

Bootstrap recipes and steps are filtered by platform selectors such as
``linux``, ``ubuntu`` or ``linux:debian``. This module detects the current
operating system and Linux distribution and evaluates those selectors.

Usage:
    from devstrap.core.platform import detect_platform

    info = detect_platform()
    if info.matches("ubuntu"):
        ...
"""

import functools
import platform
from dataclasses import dataclass
from typing import Iterable, List

import distro


@dataclass(frozen=True)
class PlatformInfo:
    """
    Current platform information.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos')
        arch: CPU architecture ('x64', 'arm64', 'x86', 'arm')
        distribution: Linux distribution id ('ubuntu', 'debian', ...) or empty
        version: OS or distribution version string
    """

    os: str
    arch: str
    distribution: str = ""
    version: str = ""

    def matches(self, selector: str) -> bool:
        """
        Check whether a platform selector applies to this platform.

        A selector is an OS name, a distribution id, or ``os:distribution``.

        Example:
            >>> PlatformInfo("linux", "x64", "ubuntu").matches("linux:ubuntu")
            True
        """
        selector = selector.strip().lower()
        if ":" in selector:
            os_part, distro_part = selector.split(":", 1)
            return os_part == self.os and distro_part == self.distribution
        return selector in (self.os, self.distribution)

    def matches_any(self, selectors: Iterable[str]) -> bool:
        """Return True if no selectors are given or any selector matches."""
        selectors = list(selectors)
        if not selectors:
            return True
        return any(self.matches(s) for s in selectors)

    def __str__(self) -> str:
        parts = [f"{self.os}-{self.arch}"]
        if self.distribution:
            parts.append(f"({self.distribution} {self.version})".rstrip())
        return " ".join(parts)


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.
    """
    os_name = _detect_os()
    distribution = ""
    version = platform.release()

    if os_name == "linux":
        distribution = distro.id()
        version = distro.version()
    elif os_name == "macos":
        version = platform.mac_ver()[0]
    elif os_name == "windows":
        version = platform.version()

    return PlatformInfo(
        os=os_name,
        arch=_detect_architecture(),
        distribution=distribution,
        version=version,
    )


def clear_platform_cache() -> None:
    """Clear the cached platform detection result."""
    detect_platform.cache_clear()


def _detect_os() -> str:
    system = platform.system().lower()
    if system == "darwin":
        return "macos"
    if system in ("windows", "linux"):
        return system
    raise RuntimeError(f"Unsupported operating system: {platform.system()}")


def _detect_architecture() -> str:
    machine = platform.machine().lower()
    arch_map = {
        "x86_64": "x64",
        "amd64": "x64",
        "aarch64": "arm64",
        "arm64": "arm64",
        "i386": "x86",
        "i686": "x86",
        "x86": "x86",
        "armv7l": "arm",
    }
    return arch_map.get(machine, machine)


def default_package_managers(info: PlatformInfo) -> List[str]:
    """
    Package managers a workstation of this platform is expected to have.

    Args:
        info: Platform information

    Returns:
        Installer names, most fundamental first
    """
    if info.os == "windows":
        return ["winget", "choco"]
    if info.os == "macos":
        return ["brew"]
    if info.distribution in ("ubuntu", "debian", "linuxmint", "pop"):
        return ["apt", "snap", "brew"]
    return ["brew"]
