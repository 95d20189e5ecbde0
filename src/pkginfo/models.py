"""Data models for the package catalog: packages, repositories and bundles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from constants import Constants, RepoKinds
from common.errors import NotFoundError


@dataclass(frozen=True)
class PackageFile:
    """A single file shipped by a package."""
    path: str
    hash: str = ""
    type: str = ""


@dataclass(frozen=True)
class Package:
    """One installable unit (binary RPM or source RPM)."""
    name: str
    version: str = ""
    release: str = ""
    architecture: str = ""
    srpm_name: str = ""
    license: str = ""
    requires: Tuple[str, ...] = ()
    build_requires: Tuple[str, ...] = ()
    provides: Tuple[str, ...] = ()
    files: Tuple[PackageFile, ...] = ()

    @property
    def source_name(self) -> str:
        """Bare source-package name, trimming ``-<version>-<release>.src.rpm``."""
        suffix = f"-{self.version}-{self.release}{Constants.SRPM_SUFFIX}"
        if self.srpm_name.endswith(suffix):
            return self.srpm_name[: -len(suffix)]
        return self.srpm_name

    @property
    def file_paths(self) -> Set[str]:
        return {f.path for f in self.files}


@dataclass(frozen=True)
class RepoKey:
    """Identity of a repository in the metadata store."""
    name: str
    version: str
    kind: RepoKinds = RepoKinds.BINARY

    @property
    def key(self) -> str:
        """Metadata store key, shaped ``{name}{version}{kind}``."""
        return f"{self.name}{self.version}{self.kind.value}"


class Repository:
    """A named, versioned, typed collection of packages (at most one per name)."""

    def __init__(self, name: str, version: str, kind: RepoKinds = RepoKinds.BINARY):
        self.name = name
        self.version = version
        self.kind = kind
        self._packages: Dict[str, Package] = {}
        self._provider_index = None

    @property
    def repo_key(self) -> RepoKey:
        return RepoKey(self.name, self.version, self.kind)

    def add(self, package: Package) -> bool:
        """Add ``package`` unless its name is already present.

        Returns:
            bool: True when the package was added.
        """
        if package.name in self._packages:
            return False
        self._packages[package.name] = package
        self._provider_index = None
        return True

    def get(self, name: str) -> Package:
        """Return the package called ``name``.

        Raises:
            NotFoundError: If the repository holds no such package.
        """
        try:
            return self._packages[name]
        except KeyError:
            raise NotFoundError("package", name, self.repo_key.key) from None

    def find(self, name: str) -> Optional[Package]:
        return self._packages.get(name)

    @property
    def provider_index(self):
        """Capability index for this repository, built on first use."""
        if self._provider_index is None:
            # Local import keeps the catalog free of resolver imports at load time.
            from resolver.index import ProviderIndex  # pylint: disable=import-outside-toplevel
            self._provider_index = ProviderIndex.build(self._packages.values())
        return self._provider_index

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def __iter__(self) -> Iterator[Package]:
        return iter(self._packages.values())

    def __len__(self) -> int:
        return len(self._packages)

    def __repr__(self) -> str:
        return f"Repository({self.repo_key.key!r}, packages={len(self)})"


@dataclass
class BundleHeader:
    """Descriptive header of a bundle definition."""
    title: str = ""
    description: str = ""
    status: str = ""
    capabilities: str = ""
    maintainer: str = ""


@dataclass
class BundleDefinition:
    """A named group of packages; ``all_packages`` is the expanded closure."""
    name: str
    header: BundleHeader = field(default_factory=BundleHeader)
    includes: Set[str] = field(default_factory=set)
    direct_packages: Set[str] = field(default_factory=set)
    all_packages: Set[str] = field(default_factory=set)


@dataclass
class BundleInfo:
    """All bundle definitions of one mix version."""
    name: str
    version: str
    definitions: Dict[str, BundleDefinition] = field(default_factory=dict)

    def get_all_packages(self, bundle_name: str = "") -> Set[str]:
        """Return a bundle's expanded package set, or the union when no name is given.

        Raises:
            NotFoundError: If ``bundle_name`` is not defined.
        """
        if bundle_name:
            bundle = self.definitions.get(bundle_name)
            if bundle is None:
                raise NotFoundError("bundle", bundle_name, f"{self.name}{self.version}")
            return set(bundle.all_packages)
        packages: Set[str] = set()
        for bundle in self.definitions.values():
            packages |= bundle.all_packages
        return packages

    def bundle_names(self) -> List[str]:
        return sorted(self.definitions)
