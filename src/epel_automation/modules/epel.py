from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
import logging

from .base import Module
from .yum_repo import RepoStanza, coerce_bool, render_repo_file
from ..facts import FactSet
from ..resources.base import parse_mode
from ..types import Catalog, ResourceDeclaration, UnsupportedPlatform

logger = logging.getLogger(__name__)

REPO_DIR = "/etc/yum.repos.d"
EPEL_REPO = f"{REPO_DIR}/epel.repo"
EPEL_TESTING_REPO = f"{REPO_DIR}/epel-testing.repo"
RELEASE_PACKAGE = "epel-release"

METALINK = "https://mirrors.fedoraproject.org/metalink?repo={repo}-{release}&arch=$basearch"
ARCHIVE = "https://archives.fedoraproject.org/pub/archive/epel"
GPG_KEY = "file:///etc/pki/rpm-gpg/RPM-GPG-KEY-EPEL-{release}"

# Families that consume EPEL directly.
REDHAT_FAMILY = {
    "redhat",
    "centos",
    "scientific",
    "oraclelinux",
    "oel",
    "cloudlinux",
    "rocky",
    "almalinux",
}


@dataclass(frozen=True)
class EpelVariant:
    release: str
    package_ensure: str
    archived: bool = False
    # yum on EL5-7 understands failovermethod; dnf rejects it.
    failovermethod: bool = True


def _normalize_platform(operating_system: str, release: str) -> tuple[str, str]:
    family = operating_system.strip().lower()
    if family == "amazon":
        # Amazon Linux 1 tracks EL6 packages.
        return "redhat", "6"
    if family in REDHAT_FAMILY:
        return "redhat", release.strip()
    return family, release.strip()


class EpelModule(Module):
    """Manage the EPEL yum repository definitions and release package."""

    name = "epel"
    defaults: dict[str, Any] = {
        "mirrorlist": None,
        "baseurl": None,
        "proxy": None,
        "enabled": True,
        "gpgcheck": True,
        "testing_enabled": False,
        "package_ensure": None,
        "repo_mode": "0644",
    }

    VARIANTS: dict[tuple[str, str], EpelVariant] = {
        ("redhat", "5"): EpelVariant("5", package_ensure="present", archived=True),
        ("redhat", "6"): EpelVariant("6", package_ensure="latest"),
        ("redhat", "7"): EpelVariant("7", package_ensure="latest"),
        ("redhat", "8"): EpelVariant("8", package_ensure="latest", failovermethod=False),
        ("redhat", "9"): EpelVariant("9", package_ensure="latest", failovermethod=False),
    }

    def declare(self, facts: FactSet, catalog: Catalog) -> None:
        operating_system = self.require_fact(facts, "operating_system")
        release = self.require_fact(facts, "os_major_release")
        variant = self.select_variant(operating_system, release)
        logger.debug(
            "epel: os=%s release=%s variant=%s", operating_system, release, variant.release
        )
        mode = self._repo_mode()

        for path, stanzas in (
            (EPEL_REPO, self._main_stanzas(variant)),
            (EPEL_TESTING_REPO, self._testing_stanzas(variant)),
        ):
            catalog.add(
                ResourceDeclaration(
                    "File",
                    path,
                    {
                        "ensure": "file",
                        "mode": mode,
                        "content": render_repo_file(stanzas),
                    },
                )
            )

        ensure = self.params["package_ensure"] or variant.package_ensure
        catalog.add(ResourceDeclaration("Package", RELEASE_PACKAGE, {"ensure": str(ensure)}))

    @classmethod
    def select_variant(cls, operating_system: str, release: str) -> EpelVariant:
        key = _normalize_platform(operating_system, release)
        variant = cls.VARIANTS.get(key)
        if variant is not None:
            return variant
        if key[0] == "redhat":
            raise UnsupportedPlatform(
                f"epel: {operating_system} {release} is not a supported major release",
                operating_system=operating_system,
                release=release,
            )
        raise UnsupportedPlatform(
            f"epel: operating system '{operating_system}' is not supported",
            operating_system=operating_system,
            release=release,
        )

    def _repo_mode(self) -> str:
        mode = parse_mode(self.params["repo_mode"])
        if mode is None:
            raise ValueError("epel: repo_mode must not be empty")
        return f"{mode:04o}"

    def _main_stanzas(self, variant: EpelVariant) -> list[RepoStanza]:
        label = f"Extra Packages for Enterprise Linux {variant.release}"
        return [
            self._stanza(
                variant,
                "epel",
                f"{label} - $basearch",
                "$basearch",
                enabled=coerce_bool(self.params["enabled"]),
                primary=True,
            ),
            self._stanza(variant, "epel-debuginfo", f"{label} - $basearch - Debug", "$basearch/debug"),
            self._stanza(variant, "epel-source", f"{label} - $basearch - Source", "SRPMS"),
        ]

    def _testing_stanzas(self, variant: EpelVariant) -> list[RepoStanza]:
        label = f"Extra Packages for Enterprise Linux {variant.release} - Testing"
        testing = coerce_bool(self.params["testing_enabled"])
        return [
            self._stanza(variant, "epel-testing", f"{label} - $basearch", "$basearch", enabled=testing),
            self._stanza(
                variant, "epel-testing-debuginfo", f"{label} - $basearch - Debug", "$basearch/debug"
            ),
            self._stanza(variant, "epel-testing-source", f"{label} - $basearch - Source", "SRPMS"),
        ]

    def _stanza(
        self,
        variant: EpelVariant,
        repo: str,
        description: str,
        subdir: str,
        *,
        enabled: bool = False,
        primary: bool = False,
    ) -> RepoStanza:
        baseurl: Optional[str] = None
        mirrorlist: Optional[str] = None
        testing = repo.startswith("epel-testing")
        if primary and self.params["baseurl"]:
            baseurl = str(self.params["baseurl"])
        elif primary and self.params["mirrorlist"]:
            mirrorlist = str(self.params["mirrorlist"])
        elif variant.archived:
            area = f"testing/{variant.release}" if testing else variant.release
            baseurl = f"{ARCHIVE}/{area}/{subdir}"
        else:
            mirror_repo = repo.replace("-debuginfo", "-debug")
            mirrorlist = METALINK.format(repo=mirror_repo, release=variant.release)

        options: dict[str, Any] = {}
        if variant.failovermethod:
            options["failovermethod"] = "priority"
        options["proxy"] = self.params["proxy"]
        return RepoStanza(
            name=repo,
            description=description,
            baseurl=baseurl,
            mirrorlist=mirrorlist,
            enabled=enabled,
            gpgcheck=coerce_bool(self.params["gpgcheck"]),
            gpgkey=GPG_KEY.format(release=variant.release),
            options=options,
        )
