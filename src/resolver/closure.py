"""Per-source-package dependency closures.

A DependencyClosure accumulates, for one source package, every capability
transitively required and provided by that source package and the binary
packages built from it. Closures are owned by a ResolutionContext that the
caller creates for a run; nothing here is module-global.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from pkginfo.models import Package, Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal lookup miss recorded during resolution."""
    kind: str  # "source_package" | "binary_package" | "bundle"
    name: str
    detail: str = ""


@dataclass
class DependencyClosure:
    """Transitive requires/provides of one source package.

    ``requires`` and ``provides`` only ever grow. ``rpmlib(...)`` tracking
    dependencies are satisfied by rpm itself, so with ``internal_rpmlib`` set
    they are recorded as provided the moment they are required.
    """
    name: str
    srpm: Optional[Package] = None
    packages: Dict[str, Package] = field(default_factory=dict)
    provides: Set[str] = field(default_factory=set)
    requires: Set[str] = field(default_factory=set)
    unresolved: Set[str] = field(default_factory=set)
    internal_rpmlib: bool = True

    def add_package(self, package: Package) -> None:
        self.packages[package.name] = package

    @property
    def missing(self) -> List[str]:
        return sorted(self.requires - self.provides)

    def _require(self, capability: str) -> None:
        self.requires.add(capability)
        if self.internal_rpmlib and capability.startswith(Constants.RPMLIB_PREFIX):
            self.provides.add(capability)

    def _providers(self, capability: str, repo: Repository) -> Iterator[Package]:
        names = repo.provider_index.providers(capability)
        if not names:
            if capability not in self.unresolved:
                self.unresolved.add(capability)
                if is_debug_enabled(logger):
                    logger.debug(
                        "No provider for capability",
                        extra=extra_context(
                            event="lookup_miss",
                            component="resolver",
                            action="resolve_capability",
                            target=capability,
                            repo=repo.repo_key.key,
                            closure=self.name,
                        ),
                    )
            return
        for name in names:
            dep = repo.find(name)
            if dep is not None:
                yield dep

    def _walk(self, package: Package, repo: Repository, visited: Set[str], collect) -> None:
        # Explicit stack: dependency chains in a distribution can be deep.
        stack = [package]
        while stack:
            current = stack.pop()
            if current.name in visited:
                continue
            visited.add(current.name)
            collect(current)
            pending = []
            for capability in current.requires:
                for dep in self._providers(capability, repo):
                    if dep.name not in visited:
                        pending.append(dep)
            stack.extend(reversed(pending))

    def recursive_requires(self, package: Package, repo: Repository, visited: Optional[Set[str]] = None) -> None:
        """Add every capability required by ``package`` and, transitively, by its providers.

        Each package name is visited at most once per ``visited`` set, which
        terminates cycles and diamonds.
        """
        visited = set() if visited is None else visited

        def collect(current: Package) -> None:
            for capability in current.requires:
                self._require(capability)

        self._walk(package, repo, visited, collect)

    def recursive_provides(self, package: Package, repo: Repository, visited: Optional[Set[str]] = None) -> None:
        """Add every capability provided by ``package`` and the packages it pulls in.

        Follows the same requirement edges as ``recursive_requires``; a
        package always provides its own name.
        """
        visited = set() if visited is None else visited

        def collect(current: Package) -> None:
            self.provides.add(current.name)
            self.provides.update(current.provides)

        self._walk(package, repo, visited, collect)


def missing_dependencies(closure: DependencyClosure) -> List[str]:
    """Capabilities required transitively but never provided, sorted."""
    return closure.missing


class ResolutionContext:
    """Caller-owned state of one resolution run."""

    def __init__(self, internal_rpmlib: bool = True):
        self.internal_rpmlib = internal_rpmlib
        self.closures: Dict[str, DependencyClosure] = {}
        self.diagnostics: List[Diagnostic] = []

    def record(self, kind: str, name: str, detail: str = "") -> None:
        diagnostic = Diagnostic(kind=kind, name=name, detail=detail)
        self.diagnostics.append(diagnostic)
        logger.warning("%s '%s' not found: %s", kind.replace("_", " "), name, detail)

    def get(self, source_name: str) -> Optional[DependencyClosure]:
        return self.closures.get(source_name)

    def __iter__(self) -> Iterator[DependencyClosure]:
        return iter(self.closures.values())

    def __len__(self) -> int:
        return len(self.closures)


def build_closure(
    context: ResolutionContext,
    binary_package: Package,
    binary_repo: Repository,
    source_repo: Repository,
) -> DependencyClosure:
    """Fold ``binary_package`` into the closure of its source package.

    The closure is created on first encounter of the source package and
    seeded with the source package's own transitive requires/provides (over
    ``source_repo``) before any binary package is added. A source package
    missing from ``source_repo`` is recorded as a diagnostic and the closure
    stays unseeded.

    Returns:
        DependencyClosure: The (possibly newly created) closure.
    """
    source_name = binary_package.source_name or binary_package.name
    closure = context.closures.get(source_name)
    if closure is None:
        closure = DependencyClosure(name=source_name, internal_rpmlib=context.internal_rpmlib)
        context.closures[source_name] = closure
        srpm = source_repo.find(source_name)
        if srpm is None:
            context.record(
                "source_package",
                source_name,
                f"required by {binary_package.name}; not in {source_repo.repo_key.key}",
            )
        else:
            closure.srpm = srpm
            closure.recursive_requires(srpm, source_repo)
            closure.recursive_provides(srpm, source_repo)

    closure.add_package(binary_package)
    closure.recursive_requires(binary_package, binary_repo)
    closure.recursive_provides(binary_package, binary_repo)
    return closure
