"""Manifest tree loader: fetch and parse the MoM and every component manifest.

Local cache layout::

    {cache_root}/update/{version}/Manifest.{component}

A manifest present in the cache is trusted as-is; there is no invalidation.
Loading is strictly sequential and fails fast, so a partial tree is never
returned.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional

from constants import Constants
from common.errors import ExtractError
from common.http_client import download_file, get_text
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from .archive import Downloader, download_and_extract
from .models import Manifest, ManifestHeader, ManifestTree
from .parser import parse_manifest_file

if TYPE_CHECKING:
    from pkginfo.provider import MetadataProvider

logger = logging.getLogger(__name__)


def manifest_url(origin: str, version, component: str) -> str:
    return Constants.MANIFEST_URL_TEMPLATE.format(
        origin=origin.rstrip("/"), version=version, component=component
    )


def manifest_path(cache_root: str, version, component: str) -> str:
    return os.path.join(cache_root, "update", str(version), f"Manifest.{component}")


def fetch_manifest(
    origin: str,
    version,
    component: str,
    output_path: str,
    downloader: Downloader = download_file,
) -> str:
    """Make sure the manifest for ``component`` at ``version`` exists at ``output_path``.

    Nothing is fetched when ``output_path`` already exists.

    Raises:
        DownloadError: If the archive cannot be downloaded.
        ExtractError: If the archive cannot be extracted or lacks the manifest.
    """
    if os.path.lexists(output_path):
        if is_debug_enabled(logger):
            logger.debug(
                "Manifest cache hit",
                extra=extra_context(
                    event="cache_hit", component="loader", action="fetch_manifest", target=output_path
                ),
            )
        return output_path

    url = manifest_url(origin, version, component)
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    logger.info("Fetching manifest %s (version %s) from %s", component, version, safe_url(url))
    download_and_extract(url, output_path + Constants.ARCHIVE_SUFFIX, downloader)
    if not os.path.lexists(output_path):
        raise ExtractError(f"archive {safe_url(url)} did not contain Manifest.{component}", url=url)
    return output_path


def load_top_level(
    origin: str,
    version,
    cache_root: str,
    downloader: Downloader = download_file,
) -> Manifest:
    """Fetch (cache-aware) and parse the MoM for ``version``.

    Raises:
        FetchError: If the MoM cannot be fetched.
        ManifestParseError: If the MoM is malformed.
    """
    out = manifest_path(cache_root, version, Constants.MOM_NAME)
    fetch_manifest(origin, version, Constants.MOM_NAME, out, downloader)
    return parse_manifest_file(out, Constants.MOM_NAME)


def load_all(
    origin: str,
    version,
    cache_root: str,
    downloader: Downloader = download_file,
) -> ManifestTree:
    """Load the MoM and every component manifest it references.

    Each component is fetched at its own recorded version, which may be older
    than ``version``.

    Raises:
        FetchError: On the first manifest that cannot be fetched.
        ManifestParseError: On the first malformed manifest.
    """
    mom = load_top_level(origin, version, cache_root, downloader)
    tree = ManifestTree(version=str(version), mom=mom, origin=origin.rstrip("/"), cache_root=cache_root)

    for name, component_version in tree.components():
        out = manifest_path(cache_root, component_version, name)
        fetch_manifest(origin, component_version, name, out, downloader)
        tree.manifests[name] = parse_manifest_file(out, name)

    logger.info("Loaded %d component manifests for version %s", len(tree.manifests), version)
    return tree


def fetch_latest_version(origin: str, session=None) -> str:
    """Read the latest published release version from ``{origin}/latest``.

    Raises:
        DownloadError: If the origin cannot be reached.
        ValueError: If the document is not a version number.
    """
    text = get_text(Constants.LATEST_URL_TEMPLATE.format(origin=origin.rstrip("/")), session=session)
    if not text.isdigit():
        raise ValueError(f"unexpected latest version {text!r} from {safe_url(origin)}")
    return text


def load_from_provider(
    provider: "MetadataProvider",
    mix_name: str,
    version,
    origin: Optional[str] = None,
    cache_root: Optional[str] = None,
) -> ManifestTree:
    """Build a ManifestTree from manifest metadata held by the metadata store.

    Components are looked up at their own recorded version, as with
    ``load_all``.

    Raises:
        NotFoundError: If the MoM or a referenced component is not stored.
    """
    mom_files = provider.fetch_manifest_index(mix_name, str(version))
    mom = Manifest(
        name=Constants.MOM_NAME,
        header=ManifestHeader(version=int(version), filecount=len(mom_files)),
        files=list(mom_files),
    )
    tree = ManifestTree(
        version=str(version),
        mom=mom,
        origin=(origin or Constants.DEFAULT_ORIGIN).rstrip("/"),
        cache_root=cache_root or os.path.expanduser(Constants.DEFAULT_CACHE_DIR),
    )
    for name, component_version in tree.components():
        files = provider.fetch_manifest_files(mix_name, str(component_version), name)
        tree.manifests[name] = Manifest(
            name=name,
            header=ManifestHeader(version=component_version, filecount=len(files)),
            files=list(files),
        )
    return tree
