"""EPEL repository convergence toolkit."""

from .compiler import CatalogCompiler
from .engine import ConvergenceEngine

__all__ = ["CatalogCompiler", "ConvergenceEngine"]
