"""Shared HTTP helpers used by the manifest loader and content fetcher.

Encapsulates request/timeout/retry handling so callers only deal with
DownloadError. This module is dependency-light and can be safely imported by
both manifest/* and the CLI without cycles.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

import requests

from constants import Constants
from common.errors import DownloadError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {"User-Agent": Constants.USER_AGENT, "Accept": "*/*"}


def new_session() -> requests.Session:
    """Create a session carrying the default RelGate headers."""
    session = requests.Session()
    session.headers.update(_DEFAULT_HEADERS)
    return session


def _get_with_retries(
    url: str,
    *,
    session: Optional[requests.Session],
    stream: bool,
    **kwargs: Any,
) -> requests.Response:
    """GET ``url``, retrying connection-level failures with backoff.

    HTTP error statuses are not retried; the response is returned as-is.
    """
    getter = session.get if session is not None else requests.get
    safe_target = safe_url(url)
    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1,
                        ),
                    )
                response = getter(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    stream=stream,
                    **kwargs,
                )
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target,
                        ),
                    )
                return response
            except requests.Timeout:
                last_exception = "timeout"
            except requests.RequestException as exc:  # includes ConnectionError
                last_exception = str(exc)
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request exception",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action="GET",
                        outcome=last_exception,
                        attempt=attempt + 1,
                        target=safe_target,
                    ),
                )

    raise DownloadError(
        f"GET {safe_target} failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}",
        url=url,
    )


def download_file(
    url: str,
    dest: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
) -> str:
    """Stream ``url`` into ``dest``.

    A partially written file is removed on failure.

    Args:
        url: Source URL.
        dest: Destination file path; parent directories must exist.
        session: Optional session (one per worker thread).
        headers: Optional extra request headers.

    Returns:
        str: The destination path.

    Raises:
        DownloadError: On connection failure or a non-200 status.
    """
    response = _get_with_retries(url, session=session, stream=True, headers=headers)
    try:
        if response.status_code != 200:
            raise DownloadError(
                f"GET {safe_url(url)} returned HTTP {response.status_code}", url=url
            )
        try:
            with open(dest, "wb") as fh:
                for chunk in response.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
        except (OSError, requests.RequestException) as exc:
            _remove_quietly(dest)
            raise DownloadError(f"writing {dest} from {safe_url(url)} failed: {exc}", url=url) from exc
    finally:
        response.close()
    return dest


def get_text(url: str, *, session: Optional[requests.Session] = None) -> str:
    """Fetch a small text document and return its stripped body.

    Raises:
        DownloadError: On connection failure or a non-200 status.
    """
    response = _get_with_retries(url, session=session, stream=False, headers=_DEFAULT_HEADERS)
    if response.status_code != 200:
        raise DownloadError(f"GET {safe_url(url)} returned HTTP {response.status_code}", url=url)
    return response.text.strip()


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
