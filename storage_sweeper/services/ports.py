"""
Boundaries to platform collaborators (storage layout, package manager,
permission prompt) with static defaults driven by Settings.
"""

import os
from typing import Iterable, List, Protocol, Set

from storage_sweeper.services.features import FeatureKind, get_profile


class RootPathProvider(Protocol):
    async def list_root_paths(self, feature: FeatureKind) -> List[str]:
        ...


class PackageProvider(Protocol):
    async def list_installed_packages(self) -> Set[str]:
        ...


class PermissionGate(Protocol):
    async def request_storage_permission(self) -> bool:
        ...


class StorageLayout:
    """Feature roots resolved against one external storage root."""

    def __init__(self, storage_root: str):
        self.storage_root = os.path.normpath(storage_root)

    def resolve(self, subpath: str) -> str:
        return os.path.normpath(os.path.join(self.storage_root, subpath)) if subpath else self.storage_root

    async def list_root_paths(self, feature: FeatureKind) -> List[str]:
        roots: List[str] = []
        for subpath in get_profile(feature).root_subpaths:
            path = self.resolve(subpath)
            if path not in roots:
                roots.append(path)
        return roots


class StaticPackageProvider:
    def __init__(self, packages: Iterable[str] = ()):
        self._packages = set(packages)

    async def list_installed_packages(self) -> Set[str]:
        return set(self._packages)


class StaticPermissionGate:
    def __init__(self, granted: bool = True):
        self.granted = granted

    async def request_storage_permission(self) -> bool:
        return self.granted
