import re
from enum import Enum
from typing import AbstractSet, Iterable, Tuple

PACKAGE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)+$")

SYSTEM_PACKAGE_PREFIXES: Tuple[str, ...] = (
    "android.",
    "com.android.",
    "com.google.",
    "com.qualcomm.",
    "com.samsung.",
    "com.huawei.",
    "com.miui.",
    "com.oneplus.",
)


class CorpseVerdict(str, Enum):
    CORPSE = "corpse"  # Package-named, not system, not installed
    INSTALLED = "installed"
    NOT_A_PACKAGE = "not_a_package"
    SYSTEM = "system"
    UNKNOWN = "unknown"  # Installed list unavailable (degraded mode)


def is_package_name(name: str) -> bool:
    return PACKAGE_NAME_PATTERN.match(name) is not None


def is_system_package(name: str) -> bool:
    return name.startswith(SYSTEM_PACKAGE_PREFIXES)


class CorpseResolver:
    """
    Decides whether an app-data directory name belongs to an uninstalled app.

    An empty installed-package set means the package list could not be read.
    In that degraded mode no directory is ever declared a corpse; candidates
    are reported as UNKNOWN and callers treat them as plain cache candidates.
    """

    def __init__(self, installed_packages: Iterable[str]):
        self.installed_packages: AbstractSet[str] = frozenset(installed_packages)

    @property
    def degraded(self) -> bool:
        return not self.installed_packages

    def resolve(self, name: str) -> CorpseVerdict:
        if not is_package_name(name):
            return CorpseVerdict.NOT_A_PACKAGE
        if is_system_package(name):
            return CorpseVerdict.SYSTEM
        if self.degraded:
            return CorpseVerdict.UNKNOWN
        if name in self.installed_packages:
            return CorpseVerdict.INSTALLED
        return CorpseVerdict.CORPSE

    def is_corpse(self, name: str) -> bool:
        return self.resolve(name) == CorpseVerdict.CORPSE
