from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class RepoStanza:
    """One ``[section]`` of a yum .repo file."""

    name: str
    description: str
    baseurl: Optional[str] = None
    mirrorlist: Optional[str] = None
    enabled: bool = True
    gpgcheck: bool = True
    gpgkey: Optional[str] = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not (self.baseurl or self.mirrorlist):
            raise ValueError(f"repo '{self.name}' requires baseurl or mirrorlist")

    def render(self) -> str:
        lines = [f"[{self.name}]"]
        lines.append(f"name={self.description}")
        if self.baseurl:
            lines.append(f"baseurl={self.baseurl}")
        if self.mirrorlist:
            lines.append(f"mirrorlist={self.mirrorlist}")
        for key, value in self.options.items():
            if value is None:
                continue
            lines.append(f"{key}={value}")
        lines.append(f"enabled={_bool_to_int(self.enabled)}")
        lines.append(f"gpgcheck={_bool_to_int(self.gpgcheck)}")
        if self.gpgkey:
            lines.append(f"gpgkey={self.gpgkey}")
        return "\n".join(lines) + "\n"


def render_repo_file(stanzas: list[RepoStanza]) -> str:
    return "\n".join(stanza.render() for stanza in stanzas)


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"cannot interpret '{value}' as a boolean")
    return bool(value)


def _bool_to_int(value: bool) -> int:
    return 1 if value else 0
