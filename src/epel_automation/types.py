from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional


class DuplicateResourceError(ValueError):
    """Raised when a catalog receives the same (type, title) pair twice."""


class UnsupportedPlatform(RuntimeError):
    """Raised when no module branch matches the host facts."""

    def __init__(self, message: str, *, operating_system: Optional[str] = None, release: Optional[str] = None):
        super().__init__(message)
        self.operating_system = operating_system
        self.release = release


class Status(str, Enum):
    PENDING = "pending"
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    FAILED = "failed"


@dataclass(frozen=True)
class ResourceDeclaration:
    type: str
    title: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.type not in {"File", "Package"}:
            raise ValueError(f"unknown resource type '{self.type}'")
        if not self.title:
            raise ValueError(f"{self.type} declaration requires a title")
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, self.title)

    @property
    def ref(self) -> str:
        return f"{self.type}[{self.title}]"

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)


class Catalog:
    """Ordered, duplicate-free set of resource declarations for one run."""

    def __init__(self, resources: Optional[list[ResourceDeclaration]] = None):
        self._resources: list[ResourceDeclaration] = []
        self._index: dict[tuple[str, str], ResourceDeclaration] = {}
        for resource in resources or []:
            self.add(resource)

    def add(self, resource: ResourceDeclaration) -> ResourceDeclaration:
        if resource.key in self._index:
            raise DuplicateResourceError(f"duplicate declaration of {resource.ref}")
        self._index[resource.key] = resource
        self._resources.append(resource)
        return resource

    def get(self, type_: str, title: str) -> Optional[ResourceDeclaration]:
        return self._index.get((type_, title))

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __iter__(self) -> Iterator[ResourceDeclaration]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    @property
    def refs(self) -> list[str]:
        return [resource.ref for resource in self._resources]


@dataclass
class ResourceOutcome:
    resource: str
    type: str
    status: Status
    changes: dict[str, tuple[Any, Any]] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ref(self) -> str:
        return f"{self.type}[{self.resource}]"

    @property
    def details(self) -> str:
        if self.status is Status.FAILED:
            return self.error or "failed"
        if not self.changes:
            return "noop"
        return ", ".join(
            f"{name}: {_show(before)} -> {_show(after)}"
            for name, (before, after) in self.changes.items()
        )


@dataclass
class ReconciliationResult:
    outcomes: list[ResourceOutcome] = field(default_factory=list)
    not_started: list[str] = field(default_factory=list)
    dry_run: bool = False

    def _count(self, status: Status) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def changed(self) -> int:
        return self._count(Status.CHANGED)

    @property
    def unchanged(self) -> int:
        return self._count(Status.UNCHANGED)

    @property
    def failures(self) -> int:
        return self._count(Status.FAILED)

    @property
    def failed(self) -> bool:
        return self.failures > 0

    @property
    def aborted(self) -> bool:
        return bool(self.not_started)

    @property
    def is_noop(self) -> bool:
        return all(outcome.status is Status.UNCHANGED for outcome in self.outcomes)

    def outcome_for(self, type_: str, title: str) -> Optional[ResourceOutcome]:
        for outcome in self.outcomes:
            if outcome.type == type_ and outcome.resource == title:
                return outcome
        return None


def _show(value: Any) -> str:
    if value is None:
        return "absent"
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value:04o}"
    return str(value)
