from .base import Module
from .epel import EpelModule

MODULE_REGISTRY = {
    "epel": EpelModule,
}

__all__ = ["Module", "EpelModule", "MODULE_REGISTRY"]
