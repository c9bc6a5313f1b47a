from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from .base import Backends, Resource, parse_mode
from ..backends import FileStat, content_hash
from ..types import ResourceDeclaration, ResourceOutcome


class FileResource(Resource):
    """Ensure a plain file exists with the declared content and mode."""

    type_name = "File"

    def __init__(self, declaration: ResourceDeclaration):
        super().__init__(declaration)
        self.path = Path(str(declaration.get("path") or declaration.title))
        if not self.path.is_absolute():
            raise ValueError(f"File path '{self.path}' must be absolute")
        self.ensure = str(declaration.get("ensure", "file"))
        if self.ensure == "present":
            self.ensure = "file"
        if self.ensure not in {"file", "absent"}:
            raise ValueError("File ensure must be 'file', 'present', or 'absent'")
        self.mode = parse_mode(declaration.get("mode"))
        raw_content = declaration.get("content")
        self.content: Optional[str] = None if raw_content is None else str(raw_content)
        source = declaration.get("source")
        self.source = Path(str(source)) if source else None
        if self.content is not None and self.source is not None:
            raise ValueError("File accepts either content or source, not both")

    def apply(self, backends: Backends, *, dry_run: bool = False) -> ResourceOutcome:
        current = backends.files.stat(self.path)
        if self.ensure == "absent":
            if not current.exists:
                return self.outcome()
            if not dry_run:
                backends.files.remove(self.path)
            return self.outcome({"ensure": ("file", "absent")})

        desired = self._desired_content(backends)
        changes = self._diff(current, desired)
        if not changes:
            return self.outcome()
        if not dry_run:
            if desired is None:
                # Only the mode is managed; keep whatever is on disk.
                desired = backends.files.read(self.path) if current.exists else ""
            backends.files.write(self.path, desired, self.mode)
        return self.outcome(changes)

    def _desired_content(self, backends: Backends) -> Optional[str]:
        if self.source is not None:
            return backends.files.read(self.source)
        return self.content

    def _diff(self, current: FileStat, desired: Optional[str]) -> dict[str, tuple[Any, Any]]:
        changes: dict[str, tuple[Any, Any]] = {}
        if not current.exists:
            changes["ensure"] = ("absent", "file")
        if desired is not None:
            wanted = content_hash(desired)
            if current.content_hash != wanted:
                changes["content"] = (current.content_hash, wanted)
        if self.mode is not None and current.mode != self.mode:
            changes["mode"] = (current.mode, self.mode)
        return changes
