from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from .facts import FactSet
from .modules import MODULE_REGISTRY
from .types import Catalog, UnsupportedPlatform

logger = logging.getLogger(__name__)


class CatalogCompiler:
    """Evaluates module logic against host facts to build a catalog.

    Compilation is all-or-nothing: any error raised by a module propagates
    and no partially built catalog is returned. Nothing here touches the
    file system or the package manager.
    """

    def __init__(self, registry: Optional[Mapping[str, Any]] = None):
        self.registry = dict(registry if registry is not None else MODULE_REGISTRY)

    def compile(
        self,
        facts: Mapping[str, Any],
        module: str = "epel",
        params: Optional[Mapping[str, Any]] = None,
    ) -> Catalog:
        fact_set = facts if isinstance(facts, FactSet) else FactSet(facts)
        module_cls = self.registry.get(module)
        if module_cls is None:
            raise KeyError(f"Module '{module}' is not defined")
        catalog = Catalog()
        module_cls(params).declare(fact_set, catalog)
        logger.debug("compiled module=%s resources=%s", module, ",".join(catalog.refs))
        return catalog


def compile_catalog(
    facts: Mapping[str, Any],
    module: str = "epel",
    params: Optional[Mapping[str, Any]] = None,
) -> Catalog:
    return CatalogCompiler().compile(facts, module, params)


__all__ = ["CatalogCompiler", "UnsupportedPlatform", "compile_catalog"]
