from __future__ import annotations

import logging

from .base import Backends, Resource
from ..packages import PackageError
from ..types import ResourceDeclaration, ResourceOutcome

logger = logging.getLogger(__name__)

PRESENT_STATES = {"present", "installed"}


class PackageResource(Resource):
    """Keep a package installed, current, pinned, or removed."""

    type_name = "Package"

    def __init__(self, declaration: ResourceDeclaration):
        super().__init__(declaration)
        self.name = str(declaration.get("name") or declaration.title)
        self.ensure = str(declaration.get("ensure", "present")).strip()
        if not self.ensure:
            raise ValueError("Package ensure must not be empty")

    def apply(self, backends: Backends, *, dry_run: bool = False) -> ResourceOutcome:
        status = backends.packages.query(self.name)
        installed = status.installed_version
        logger.debug(
            "package=%s installed=%s latest=%s ensure=%s",
            self.name,
            installed,
            status.latest_version,
            self.ensure,
        )

        if self.ensure == "absent":
            if installed is None:
                return self.outcome()
            if not dry_run:
                backends.packages.remove(self.name)
            return self.outcome({"ensure": (installed, "absent")})

        if self.ensure in PRESENT_STATES:
            if installed is not None:
                return self.outcome()
            target = status.latest_version or "present"
            version_spec = "present"
        elif self.ensure == "latest":
            latest = status.latest_version
            if latest is None:
                if installed is not None:
                    return self.outcome()
                raise PackageError(f"no installation candidate for '{self.name}'")
            if installed == latest:
                return self.outcome()
            target = latest
            version_spec = "latest"
        else:
            if installed == self.ensure:
                return self.outcome()
            target = version_spec = self.ensure

        if not dry_run:
            backends.packages.install_or_upgrade(self.name, version_spec)
        return self.outcome({"ensure": (installed, target)})
