from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..backends import FileBackend
from ..packages import PackageBackend
from ..types import ResourceDeclaration, ResourceOutcome, Status


@dataclass
class Backends:
    files: FileBackend
    packages: PackageBackend


class Resource(ABC):
    """Shared surface for resource handlers."""

    type_name = "Resource"

    def __init__(self, declaration: ResourceDeclaration):
        self.declaration = declaration
        self.title = declaration.title

    @abstractmethod
    def apply(self, backends: Backends, *, dry_run: bool = False) -> ResourceOutcome:
        """Converge the resource and report what happened."""

    def outcome(self, changes: Optional[dict[str, tuple[Any, Any]]] = None) -> ResourceOutcome:
        status = Status.CHANGED if changes else Status.UNCHANGED
        return ResourceOutcome(
            resource=self.title,
            type=self.type_name,
            status=status,
            changes=dict(changes or {}),
        )


def parse_mode(value: Optional[object]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid file mode {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text, 8)
    except ValueError:
        raise ValueError(f"invalid file mode '{text}'") from None
