from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]


# Legacy fact names mapped onto the names the modules read.
FACT_ALIASES = {
    "operatingsystem": "operating_system",
    "operatingsystemmajrelease": "os_major_release",
    "operatingsystemrelease": "os_release",
    "osfamily": "os_family",
}


class FactSet(Mapping[str, Optional[str]]):
    """Read-only host facts for a single run."""

    def __init__(self, facts: Optional[Mapping[str, Any]] = None):
        normalized: dict[str, Optional[str]] = {}
        for name, value in (facts or {}).items():
            name = str(name)
            key = FACT_ALIASES.get(name, name)
            # Canonical names win over their legacy spelling.
            if key != name and key in normalized:
                continue
            normalized[key] = None if value is None else str(value)
        if not normalized.get("os_major_release") and normalized.get("os_release"):
            normalized["os_major_release"] = str(normalized["os_release"]).split(".", 1)[0]
        self._facts = MappingProxyType(normalized)

    def __getitem__(self, key: str) -> Optional[str]:
        return self._facts[FACT_ALIASES.get(key, key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._facts)

    def __len__(self) -> int:
        return len(self._facts)

    def __repr__(self) -> str:
        return f"FactSet({dict(self._facts)!r})"


class FactProvider:
    def get_facts(self) -> FactSet:
        raise NotImplementedError


class StaticFactProvider(FactProvider):
    """Serves a fixed mapping, typically from tests or the command line."""

    def __init__(self, facts: Mapping[str, Any]):
        self._facts = FactSet(facts)

    def get_facts(self) -> FactSet:
        return self._facts


class FileFactProvider(FactProvider):
    """Reads facts from a TOML or JSON document."""

    def __init__(self, path: Path, overrides: Optional[Mapping[str, Any]] = None):
        self.path = Path(path)
        self.overrides = dict(overrides or {})

    def get_facts(self) -> FactSet:
        text = self.path.read_text()
        if self.path.suffix.lower() == ".json":
            try:
                data = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{self.path}:{exc.lineno}:{exc.colno} {exc.msg}") from None
        else:
            try:
                data = tomllib.loads(text)
            except tomllib.TOMLDecodeError as exc:
                raise ValueError(f"{self.path}: {exc}") from None
        if not isinstance(data, dict):
            raise ValueError(f"{self.path}: facts must be a mapping")
        facts = data.get("facts", data)
        if not isinstance(facts, dict):
            raise ValueError(f"{self.path}: facts must be a mapping")
        merged = {k: v for k, v in facts.items() if not isinstance(v, (dict, list))}
        merged.update(self.overrides)
        return FactSet(merged)


def parse_fact_args(values: Optional[list[str]]) -> dict[str, str]:
    facts: dict[str, str] = {}
    for raw in values or []:
        name, sep, value = raw.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"fact '{raw}' must look like name=value")
        facts[name.strip()] = value.strip()
    return facts
