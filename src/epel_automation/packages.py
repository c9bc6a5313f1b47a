from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging
import re
import shutil
import subprocess

from .backends import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

RPM_QUERYFORMAT = "%{VERSION}-%{RELEASE}\n"


class PackageError(RuntimeError):
    """Raised when the package manager cannot query or change a package."""


@dataclass(frozen=True)
class PackageStatus:
    installed_version: Optional[str] = None
    latest_version: Optional[str] = None

    @property
    def installed(self) -> bool:
        return self.installed_version is not None


class PackageBackend:
    name = "generic"

    def query(self, name: str) -> PackageStatus:
        raise NotImplementedError

    def install_or_upgrade(self, name: str, version_spec: str) -> None:
        raise NotImplementedError

    def remove(self, name: str) -> None:
        raise NotImplementedError


class RpmPackageBackend(PackageBackend):
    """Shared rpm plumbing for yum and dnf."""

    binary = "rpm"

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    def query(self, name: str) -> PackageStatus:
        installed = self.installed_version(name)
        latest = self.available_version(name)
        return PackageStatus(installed_version=installed, latest_version=latest or installed)

    def installed_version(self, name: str) -> Optional[str]:
        result = self._run(["rpm", "-q", "--queryformat", RPM_QUERYFORMAT, name], check=False)
        if result.returncode != 0:
            return None
        # Multiple installed versions print one per line, most recently installed last.
        versions = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return versions[-1] if versions else None

    def available_version(self, name: str) -> Optional[str]:
        raise NotImplementedError

    def install_or_upgrade(self, name: str, version_spec: str) -> None:
        if version_spec in {"latest", "present", "installed"}:
            if version_spec == "latest" and self.installed_version(name) is not None:
                self._run([self.binary, "-y", "-q", "update", name])
            else:
                self._run([self.binary, "-y", "-q", "install", name])
            return
        self._run([self.binary, "-y", "-q", "install", f"{name}-{version_spec}"])

    def remove(self, name: str) -> None:
        self._run([self.binary, "-y", "-q", "remove", name])

    def _run(self, command: list[str], *, check: bool = True) -> CommandResult:
        try:
            return self.runner.run(command, check=check)
        except subprocess.CalledProcessError as exc:
            message = (exc.stderr or exc.stdout or "").strip() or f"exit status {exc.returncode}"
            raise PackageError(f"{' '.join(command)}: {message}") from exc
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise PackageError(f"{' '.join(command)}: {exc}") from exc


class YumPackageBackend(RpmPackageBackend):
    name = "yum"
    binary = "yum"

    # e.g. "epel-release.noarch     7-14     epel"
    LIST_LINE_RE = re.compile(r"^(?P<name>\S+?)(?:\.(?P<arch>[\w]+))?\s+(?:\d+:)?(?P<version>\S+)\s+\S+")

    def available_version(self, name: str) -> Optional[str]:
        result = self._run(["yum", "-q", "list", "available", name], check=False)
        if result.returncode != 0:
            if "no matching packages" in result.stderr.lower():
                return None
            message = result.stderr.strip() or f"exit status {result.returncode}"
            raise PackageError(f"yum list available {name}: {message}")
        versions: list[str] = []
        for line in result.stdout.splitlines():
            match = self.LIST_LINE_RE.match(line.strip())
            if match and match.group("name") == name:
                versions.append(match.group("version"))
        # yum lists the newest candidate last.
        return versions[-1] if versions else None


class DnfPackageBackend(RpmPackageBackend):
    name = "dnf"
    binary = "dnf"

    def available_version(self, name: str) -> Optional[str]:
        result = self._run(
            [
                "dnf",
                "-q",
                "repoquery",
                "--latest-limit",
                "1",
                "--queryformat",
                "%{version}-%{release}",
                name,
            ]
        )
        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return lines[-1] if lines else None


class PackageBackendFactory:
    _BACKENDS = [
        ("dnf", "dnf", DnfPackageBackend),
        ("yum", "yum", YumPackageBackend),
    ]

    @classmethod
    def create(cls, preferred: Optional[str] = None, runner: Optional[CommandRunner] = None) -> PackageBackend:
        if isinstance(preferred, str) and preferred:
            preferred = preferred.lower()
            for _, key, backend_cls in cls._BACKENDS:
                if key == preferred:
                    return backend_cls(runner)
            raise ValueError(f"Unknown package manager '{preferred}'")
        for binary, _, backend_cls in cls._BACKENDS:
            if shutil.which(binary):
                logger.debug("package-manager=%s detected on PATH", binary)
                return backend_cls(runner)
        raise RuntimeError("No supported package manager found on PATH")
