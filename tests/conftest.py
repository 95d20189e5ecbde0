"""Shared fixtures: an in-memory release origin and tar/manifest builders."""

import io
import os
import tarfile
import threading

import pytest

from constants import Constants
from common.errors import DownloadError


def build_tar(members):
    """Return tar archive bytes holding ``members`` (name -> bytes)."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tf:
        for name, data in members.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def manifest_text(entries, version, fmt=30, includes=()):
    """Render a swupd manifest; ``entries`` are (flags, hash, version, name) tuples."""
    lines = [
        f"MANIFEST\t{fmt}",
        f"version:\t{version}",
        "previous:\t0",
        f"filecount:\t{len(entries)}",
        "timestamp:\t1577836800",
        "contentsize:\t0",
    ]
    lines.extend(f"includes:\t{inc}" for inc in includes)
    lines.append("")
    lines.extend("\t".join(str(field) for field in entry) for entry in entries)
    return "\n".join(lines) + "\n"


class FakeOrigin:
    """Serves tar archives by URL and records every request."""

    def __init__(self, base="https://origin.test"):
        self.base = base
        self.archives = {}
        self.requests = []
        self._lock = threading.Lock()

    def add_manifest(self, version, component, text):
        url = f"{self.base}/update/{version}/Manifest.{component}.tar"
        self.archives[url] = build_tar({f"Manifest.{component}": text.encode("utf-8")})
        return url

    def add_file(self, version, digest, data=b"payload"):
        url = f"{self.base}/update/{version}/files/{digest}.tar"
        self.archives[url] = build_tar({digest: data})
        return url

    def __call__(self, url, dest, session=None):
        with self._lock:
            self.requests.append(url)
        if url not in self.archives:
            raise DownloadError(f"GET {url} returned HTTP 404", url=url)
        with open(dest, "wb") as fh:
            fh.write(self.archives[url])
        return dest


@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
def cache_root(tmp_path):
    path = tmp_path / "cache"
    path.mkdir()
    return str(path)


@pytest.fixture(autouse=True)
def _restore_constants():
    """CLI overrides mutate Constants; undo them after each test."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)


def cached(cache_root, *parts):
    return os.path.join(cache_root, "update", *[str(p) for p in parts])
