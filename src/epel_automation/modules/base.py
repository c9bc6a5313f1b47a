from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from ..facts import FactSet
from ..types import Catalog, UnsupportedPlatform


class Module(ABC):
    """A named unit of logic that turns facts into resource declarations."""

    name = "module"
    defaults: dict[str, Any] = {}

    def __init__(self, params: Optional[Mapping[str, Any]] = None):
        params = dict(params or {})
        unknown = sorted(set(params) - set(self.defaults))
        if unknown:
            raise ValueError(f"{self.name}: unknown parameter(s) {', '.join(unknown)}")
        self.params = {**self.defaults, **params}

    @abstractmethod
    def declare(self, facts: FactSet, catalog: Catalog) -> None:
        """Add this module's declarations for ``facts`` to ``catalog``."""

    @staticmethod
    def require_fact(facts: FactSet, name: str) -> str:
        value = facts.get(name)
        if value is None or not str(value).strip():
            raise UnsupportedPlatform(f"required fact '{name}' is missing")
        return str(value).strip()
