"""Populate catalog objects from a metadata provider."""

from __future__ import annotations

import logging

from common.errors import CatalogError
from pkginfo.models import BundleInfo, Repository
from pkginfo.provider import MetadataProvider

logger = logging.getLogger(__name__)


def populate_repo(provider: MetadataProvider, repo: Repository) -> Repository:
    """Fill ``repo`` with every package the provider holds for it.

    Raises:
        CatalogError: If the provider has no packages for the repository.
    """
    names = provider.fetch_package_names(repo.repo_key)
    if not names:
        raise CatalogError(
            f"no repo data found for {repo.repo_key.key}. "
            "Import the repository metadata into the catalog first."
        )
    for name in sorted(names):
        repo.add(provider.fetch_package(repo.repo_key, name))
    logger.info("Populated %s with %d packages", repo.repo_key.key, len(repo))
    return repo


def populate_bundles(provider: MetadataProvider, bundle_info: BundleInfo, bundle_name: str = "") -> BundleInfo:
    """Fill ``bundle_info`` with one bundle definition, or all of them.

    Raises:
        CatalogError: If no bundle definitions are found.
    """
    definitions = provider.fetch_bundles(bundle_info.name, bundle_info.version, bundle_name)
    if not definitions:
        raise CatalogError(
            f"no bundle definitions found for {bundle_info.name}{bundle_info.version}. "
            "Import the bundle definitions into the catalog first."
        )
    bundle_info.definitions.update(definitions)
    logger.info("Populated %d bundle definitions", len(definitions))
    return bundle_info
