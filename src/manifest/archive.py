"""Download-and-extract helper for the tar archives served by the origin."""

from __future__ import annotations

import logging
import os
import tarfile
from typing import Callable

from common.errors import ExtractError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

# (url, dest) -> dest; raises DownloadError
Downloader = Callable[[str, str], str]


def extract_archive(archive_path: str, dest_dir: str) -> None:
    """Unpack ``archive_path`` into ``dest_dir``.

    The "tar" filter keeps members inside ``dest_dir`` but allows the absolute
    symlink targets that release content legitimately ships.

    Raises:
        ExtractError: If the archive is unreadable or unsafe.
    """
    try:
        with tarfile.open(archive_path) as tf:
            tf.extractall(path=dest_dir, filter="tar")  # noqa: S202
    except (OSError, tarfile.TarError) as exc:
        raise ExtractError(f"failed to extract {archive_path}: {exc}") from exc


def remove_archive(archive_path: str) -> None:
    try:
        os.remove(archive_path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove archive %s: %s", archive_path, exc)


def download_and_extract(url: str, archive_path: str, downloader: Downloader) -> None:
    """Download ``url`` to ``archive_path``, extract it beside itself, then delete it.

    The archive is removed whether or not extraction succeeds.

    Raises:
        DownloadError: If the download fails.
        ExtractError: If extraction fails.
    """
    dest_dir = os.path.dirname(archive_path) or "."
    with Timer() as t:
        try:
            downloader(url, archive_path)
            extract_archive(archive_path, dest_dir)
        finally:
            remove_archive(archive_path)
    if is_debug_enabled(logger):
        logger.debug(
            "Archive extracted",
            extra=extra_context(
                event="extract",
                component="archive",
                action="download_and_extract",
                outcome="success",
                duration_ms=t.duration_ms(),
                target=safe_url(url),
            ),
        )
