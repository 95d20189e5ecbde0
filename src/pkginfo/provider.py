"""Metadata provider interface and a file-backed implementation.

The resolver and loaders only need a handful of capability-shaped lookups
from the metadata store. ``MetadataProvider`` names them; the
``FileMetadataProvider`` serves them from a YAML or JSON catalog dump, e.g.::

    repos:
      clear:
        "32000":
          B:    [{name: bash, srpm_name: bash-5.0-1.src.rpm, requires: [...], ...}]
          SRPM: [{name: bash, requires: [...], ...}]
    bundles:
      clear:
        "32000":
          os-core: {includes: [], direct_packages: [bash], all_packages: [bash]}
    manifests:
      clear:
        "32000":
          MoM:     [{name: os-core, hash: ..., version: 32000, flags: M...}]
          os-core: [{name: /usr/bin/bash, hash: ..., version: 31990}]
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Set

import yaml

from common.errors import ConfigError, NotFoundError
from manifest.models import ManifestFile
from pkginfo.models import BundleDefinition, BundleHeader, Package, PackageFile, RepoKey

logger = logging.getLogger(__name__)


class MetadataProvider(ABC):
    """Read-only access to package, bundle and manifest metadata."""

    @abstractmethod
    def fetch_package_names(self, repo_key: RepoKey) -> Set[str]:
        """Names of every package in the repository."""

    @abstractmethod
    def fetch_package(self, repo_key: RepoKey, name: str) -> Package:
        """A single package; raises NotFoundError when absent."""

    @abstractmethod
    def fetch_bundles(self, mix_name: str, version: str, bundle_name: str = "") -> Dict[str, BundleDefinition]:
        """Bundle definitions by name (one bundle, or all when no name is given)."""

    def fetch_bundle_all_packages(self, mix_name: str, version: str, bundle_name: str = "") -> Set[str]:
        """Expanded package set of one bundle, or the union across all bundles."""
        packages: Set[str] = set()
        for bundle in self.fetch_bundles(mix_name, version, bundle_name).values():
            packages |= bundle.all_packages
        return packages

    @abstractmethod
    def fetch_manifest_index(self, mix_name: str, version: str) -> List[ManifestFile]:
        """Component references of the release's MoM."""

    @abstractmethod
    def fetch_manifest_files(self, mix_name: str, version: str, component: str) -> List[ManifestFile]:
        """File entries of one component manifest."""


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    # Redis dumps serialize lists as "[a b c]"
    return str(value).strip("[]").split()


def package_from_dict(data: Dict[str, Any]) -> Package:
    """Build a Package from a catalog mapping.

    Raises:
        ConfigError: If the mapping has no name.
    """
    if not isinstance(data, dict) or not data.get("name"):
        raise ConfigError(f"package entry without a name: {data!r}")
    files = []
    for entry in _as_list(data.get("files")):
        if isinstance(entry, dict):
            files.append(PackageFile(path=str(entry.get("path", "")),
                                     hash=str(entry.get("hash", "")),
                                     type=str(entry.get("type", ""))))
        else:
            files.append(PackageFile(path=str(entry)))
    return Package(
        name=str(data["name"]),
        version=str(data.get("version", "")),
        release=str(data.get("release", "")),
        architecture=str(data.get("architecture", "")),
        srpm_name=str(data.get("srpm_name", "")),
        license=str(data.get("license", "")),
        requires=tuple(str(r) for r in _as_list(data.get("requires"))),
        build_requires=tuple(str(r) for r in _as_list(data.get("build_requires"))),
        provides=tuple(str(p) for p in _as_list(data.get("provides"))),
        files=tuple(files),
    )


def bundle_from_dict(name: str, data: Dict[str, Any]) -> BundleDefinition:
    """Build a BundleDefinition from a catalog mapping."""
    data = data or {}
    header = data.get("header") or {}
    return BundleDefinition(
        name=str(data.get("name", name)),
        header=BundleHeader(
            title=str(header.get("title", "")),
            description=str(header.get("description", "")),
            status=str(header.get("status", "")),
            capabilities=str(header.get("capabilities", "")),
            maintainer=str(header.get("maintainer", "")),
        ),
        includes=set(_as_list(data.get("includes"))),
        direct_packages=set(_as_list(data.get("direct_packages"))),
        all_packages=set(_as_list(data.get("all_packages"))),
    )


def manifest_file_from_dict(data: Dict[str, Any]) -> ManifestFile:
    """Build a ManifestFile from a catalog mapping.

    Raises:
        ConfigError: If name, hash or version are missing or malformed.
    """
    try:
        entry = ManifestFile(
            name=str(data["name"]),
            hash=str(data["hash"]),
            version=int(data["version"]),
            flags=str(data.get("flags", "F...")),
        )
        if len(entry.flags) != 4:
            raise ValueError(f"flags must have 4 characters, got {entry.flags!r}")
        # validates the type and status flags
        _ = (entry.type, entry.status)
        return entry
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"invalid manifest entry {data!r}: {exc}") from exc


class FileMetadataProvider(MetadataProvider):
    """Serve catalog metadata from a YAML or JSON dump."""

    def __init__(self, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise ConfigError("catalog must be a mapping")
        self._data = data

    @classmethod
    def from_path(cls, path: str) -> "FileMetadataProvider":
        """Load a catalog file (.json, or YAML for anything else).

        Raises:
            ConfigError: If the file is missing or cannot be parsed.
        """
        if not os.path.isfile(path):
            raise ConfigError(f"catalog file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as fh:
                if path.lower().endswith(".json"):
                    data = json.load(fh)
                else:
                    data = yaml.safe_load(fh)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigError(f"failed to load catalog {path}: {exc}") from exc
        logger.info("Loaded catalog from: %s", path)
        return cls(data or {})

    def _section(self, section: str, mix_name: str, version: str) -> Dict[str, Any]:
        by_name = self._data.get(section) or {}
        by_version = by_name.get(mix_name) or {}
        for key, value in by_version.items():
            if str(key) == str(version):
                return value or {}
        return {}

    def _repo_entries(self, repo_key: RepoKey) -> Dict[str, Dict[str, Any]]:
        entries = self._section("repos", repo_key.name, repo_key.version).get(repo_key.kind.value) or []
        return {str(e.get("name")): e for e in entries if isinstance(e, dict)}

    def fetch_package_names(self, repo_key: RepoKey) -> Set[str]:
        return set(self._repo_entries(repo_key))

    def fetch_package(self, repo_key: RepoKey, name: str) -> Package:
        entry = self._repo_entries(repo_key).get(name)
        if entry is None:
            raise NotFoundError("package", name, repo_key.key)
        return package_from_dict(entry)

    def fetch_bundles(self, mix_name: str, version: str, bundle_name: str = "") -> Dict[str, BundleDefinition]:
        section = self._section("bundles", mix_name, version)
        if bundle_name:
            if bundle_name not in section:
                raise NotFoundError("bundle", bundle_name, f"{mix_name}{version}")
            return {bundle_name: bundle_from_dict(bundle_name, section[bundle_name])}
        return {name: bundle_from_dict(name, data) for name, data in section.items()}

    def fetch_manifest_index(self, mix_name: str, version: str) -> List[ManifestFile]:
        section = self._section("manifests", mix_name, version)
        if "MoM" not in section:
            raise NotFoundError("manifest", "MoM", f"{mix_name}{version}")
        return [manifest_file_from_dict(e) for e in section["MoM"] or []]

    def fetch_manifest_files(self, mix_name: str, version: str, component: str) -> List[ManifestFile]:
        section = self._section("manifests", mix_name, version)
        if component not in section:
            raise NotFoundError("manifest", component, f"{mix_name}{version}")
        return [manifest_file_from_dict(e) for e in section[component] or []]
