from .base import Backends, Resource
from .file import FileResource
from .package import PackageResource

RESOURCE_REGISTRY = {
    "File": FileResource,
    "Package": PackageResource,
}

__all__ = [
    "Backends",
    "Resource",
    "FileResource",
    "PackageResource",
    "RESOURCE_REGISTRY",
]
