from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]


DEFAULT_CONFIG = Path("/etc/epel-automation/main.conf")
DEFAULT_MODULE = "epel"


@dataclass
class AutomationConfig:
    module: str = DEFAULT_MODULE
    facts_file: Optional[Path] = None
    root: Optional[Path] = None
    package_manager: Optional[str] = None
    params: dict[str, Any] = field(default_factory=dict)


def load_config(path: Path) -> AutomationConfig:
    if not path.exists():
        return AutomationConfig()
    try:
        data = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"{path}: {exc}") from None
    defaults = data.get("defaults", {})
    if not isinstance(defaults, dict):
        raise ValueError(f"{path}: [defaults] must be a table")
    params = data.get("params", {})
    if not isinstance(params, dict):
        raise ValueError(f"{path}: [params] must be a table")
    facts_file = defaults.get("facts_file")
    root = defaults.get("root")
    package_manager = defaults.get("package_manager")
    return AutomationConfig(
        module=str(defaults.get("module", DEFAULT_MODULE)),
        facts_file=Path(facts_file) if facts_file else None,
        root=Path(root) if root else None,
        package_manager=str(package_manager) if package_manager else None,
        params=dict(params),
    )
