"""Capability provider index: maps capability strings to providing packages."""

from __future__ import annotations

from typing import Dict, Iterable, List, Set, TYPE_CHECKING

if TYPE_CHECKING:
    from pkginfo.models import Package


class ProviderIndex:
    """Capability -> names of the packages providing it.

    Every package implicitly provides its own name, so a requirement on a
    literal package name resolves through the same lookup as a virtual
    capability.
    """

    def __init__(self):
        self._providers: Dict[str, Set[str]] = {}

    @classmethod
    def build(cls, packages: Iterable["Package"]) -> "ProviderIndex":
        index = cls()
        for package in packages:
            index.add(package)
        return index

    def add(self, package: "Package") -> None:
        self._providers.setdefault(package.name, set()).add(package.name)
        for capability in package.provides:
            self._providers.setdefault(capability, set()).add(package.name)

    def providers(self, capability: str) -> List[str]:
        """Sorted provider names; empty when nothing provides ``capability``."""
        return sorted(self._providers.get(capability, ()))

    def __contains__(self, capability: object) -> bool:
        return capability in self._providers

    def __len__(self) -> int:
        return len(self._providers)
