"""
Package-manager command builders for bootstrap recipes.

An installer only knows the command lines of its package manager; the
package manager itself does the work. Installers are looked up by name from
a registry so recipes can say ``manager: snap``.

Example:
    >>> installer = get_installer("apt")
    >>> installer.install_argv(PackageSpec("git"))
    ['sudo', 'apt-get', 'install', '-y', 'git']
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Type

from devstrap.core.exceptions import RecipeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageSpec:
    """
    A package to install.

    Attributes:
        name: Package identifier understood by the package manager
        args: Extra install arguments (e.g. ['--classic'] for snap)
    """

    name: str
    args: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Package name cannot be empty")


def _is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


class Installer(ABC):
    """
    Abstract base class for package manager command builders.

    Attributes:
        name: Registry name used in recipes
        executable: Program that must be on PATH
        needs_sudo: Whether install/update commands need elevation
    """

    name: str = ""
    executable: str = ""
    needs_sudo: bool = False

    def _elevate(self, argv: List[str]) -> List[str]:
        if self.needs_sudo and not _is_root():
            return ["sudo", *argv]
        return argv

    @abstractmethod
    def install_argv(self, package: PackageSpec) -> List[str]:
        """Command that installs one package."""
        pass

    def is_installed_argv(self, package: PackageSpec) -> Optional[List[str]]:
        """Command exiting 0 when the package is installed, or None if unknown."""
        return None

    def update_argv(self) -> Optional[List[str]]:
        """Command refreshing package indexes, or None if not applicable."""
        return None


class AptInstaller(Installer):
    name = "apt"
    executable = "apt-get"
    needs_sudo = True

    def install_argv(self, package: PackageSpec) -> List[str]:
        return self._elevate(["apt-get", "install", "-y", *package.args, package.name])

    def is_installed_argv(self, package: PackageSpec) -> Optional[List[str]]:
        # Local .deb files are never "installed" by path
        if package.name.startswith(("./", "/")):
            return None
        return ["dpkg", "-s", package.name]

    def update_argv(self) -> Optional[List[str]]:
        return self._elevate(["apt-get", "update"])


class BrewInstaller(Installer):
    name = "brew"
    executable = "brew"

    def install_argv(self, package: PackageSpec) -> List[str]:
        return ["brew", "install", *package.args, package.name]

    def is_installed_argv(self, package: PackageSpec) -> Optional[List[str]]:
        return ["brew", "list", "--versions", package.name]

    def update_argv(self) -> Optional[List[str]]:
        return ["brew", "update"]


class SnapInstaller(Installer):
    name = "snap"
    executable = "snap"
    needs_sudo = True

    def install_argv(self, package: PackageSpec) -> List[str]:
        return self._elevate(["snap", "install", package.name, *package.args])

    def is_installed_argv(self, package: PackageSpec) -> Optional[List[str]]:
        return ["snap", "list", package.name]


class NpmInstaller(Installer):
    name = "npm"
    executable = "npm"

    def install_argv(self, package: PackageSpec) -> List[str]:
        return ["npm", "install", "-g", *package.args, package.name]

    def is_installed_argv(self, package: PackageSpec) -> Optional[List[str]]:
        return ["npm", "ls", "-g", "--depth=0", package.name]


class DotnetToolInstaller(Installer):
    name = "dotnet-tool"
    executable = "dotnet"

    def install_argv(self, package: PackageSpec) -> List[str]:
        # `update` installs the tool when it is missing
        return ["dotnet", "tool", "update", "-g", package.name, *package.args]


class WingetInstaller(Installer):
    name = "winget"
    executable = "winget"

    def install_argv(self, package: PackageSpec) -> List[str]:
        return [
            "winget",
            "install",
            "--id",
            package.name,
            "--exact",
            "--accept-source-agreements",
            "--accept-package-agreements",
            *package.args,
        ]

    def is_installed_argv(self, package: PackageSpec) -> Optional[List[str]]:
        return ["winget", "list", "--id", package.name, "--exact"]


class ChocoInstaller(Installer):
    name = "choco"
    executable = "choco"

    def install_argv(self, package: PackageSpec) -> List[str]:
        return ["choco", "install", package.name, "-y", *package.args]


class InstallerRegistry:
    """Registry of installer classes by name."""

    def __init__(self):
        self._installers: Dict[str, Type[Installer]] = {}

    def register(self, installer_cls: Type[Installer]) -> None:
        """
        Register an installer class.

        Raises:
            ValueError: If an installer with the same name is registered
        """
        name = installer_cls.name
        if name in self._installers:
            raise ValueError(f"Installer '{name}' is already registered")
        self._installers[name] = installer_cls

    def has(self, name: str) -> bool:
        return name in self._installers

    def get(self, name: str) -> Installer:
        """
        Create an installer by name.

        Raises:
            RecipeError: If no installer has that name
        """
        try:
            return self._installers[name]()
        except KeyError:
            raise RecipeError(
                f"Unknown package manager: {name} (available: {', '.join(self.names())})"
            ) from None

    def names(self) -> List[str]:
        return sorted(self._installers)


_registry: Optional[InstallerRegistry] = None


def get_registry() -> InstallerRegistry:
    """Return the global registry with the built-in installers."""
    global _registry
    if _registry is None:
        _registry = InstallerRegistry()
        for installer_cls in (
            AptInstaller,
            BrewInstaller,
            SnapInstaller,
            NpmInstaller,
            DotnetToolInstaller,
            WingetInstaller,
            ChocoInstaller,
        ):
            _registry.register(installer_cls)
        logger.debug(f"Registered installers: {_registry.names()}")
    return _registry


def get_installer(name: str) -> Installer:
    return get_registry().get(name)
