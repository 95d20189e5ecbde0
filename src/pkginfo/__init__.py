"""Package catalog: packages, repositories, bundles and their metadata source.

- models.py: Package, Repository, BundleDefinition, BundleInfo
- provider.py: MetadataProvider interface and the file-backed provider
- populate.py: fill catalog objects from a provider
"""

from .models import (
    BundleDefinition,
    BundleHeader,
    BundleInfo,
    Package,
    PackageFile,
    RepoKey,
    Repository,
)
from .provider import FileMetadataProvider, MetadataProvider
from .populate import populate_bundles, populate_repo

__all__ = [
    "BundleDefinition",
    "BundleHeader",
    "BundleInfo",
    "Package",
    "PackageFile",
    "RepoKey",
    "Repository",
    "MetadataProvider",
    "FileMetadataProvider",
    "populate_repo",
    "populate_bundles",
]
