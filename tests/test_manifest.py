"""Tests for manifest parsing and manifest tree loading."""

import os
from unittest.mock import patch

import pytest

from conftest import build_tar, cached, manifest_text
from common.errors import DownloadError, ExtractError, ManifestParseError, NotFoundError
from manifest import (
    FileStatus,
    FileType,
    fetch_latest_version,
    fetch_manifest,
    load_all,
    load_from_provider,
    load_top_level,
    parse_manifest,
    parse_manifest_file,
)
from pkginfo import FileMetadataProvider


def lines(text):
    return text.splitlines(keepends=True)


class TestParser:
    """swupd manifest text format."""

    def test_parses_header_and_entries(self):
        text = manifest_text(
            [("F...", "aa11", 100, "/usr/bin/bash"), ("Fg..", "bb22", 90, "/usr/bin/old")],
            version=100,
            includes=["os-core"],
        )

        m = parse_manifest(lines(text), "editors")

        assert m.header.format == 30
        assert m.header.version == 100
        assert m.header.filecount == 2
        assert m.header.includes == ["os-core"]
        assert m.files[0].type is FileType.FILE
        assert m.files[1].status is FileStatus.GHOSTED
        assert [f.name for f in m.present_files()] == ["/usr/bin/bash"]

    def test_empty_component_manifest(self):
        m = parse_manifest(lines(manifest_text([], version=5)), "empty")

        assert m.files == []

    @pytest.mark.parametrize("text, message", [
        ("", "empty manifest"),
        ("NOTAMANIFEST\t30\n", "missing MANIFEST header"),
        ("MANIFEST\t30\nversion:\t1\n", "not terminated"),
        ("MANIFEST\t30\nversion\t1\n\n", "invalid header line"),
        ("MANIFEST\tthirty\n\n", "invalid format"),
        ("MANIFEST\t30\n\nF...\taa\t1\n", "expected 4 tab-separated fields"),
        ("MANIFEST\t30\n\nX...\taa\t1\t/x\n", "invalid flags"),
        ("MANIFEST\t30\n\nF...\taa\tone\t/x\n", "invalid entry version"),
        ("MANIFEST\t30\nfilecount:\t3\n\nF...\taa\t1\t/x\n", "filecount 3 does not match 1"),
    ])
    def test_malformed(self, text, message):
        with pytest.raises(ManifestParseError) as exc:
            parse_manifest(lines(text), "x", path="Manifest.x")

        assert message in str(exc.value)
        assert isinstance(exc.value, ValueError)

    def test_error_carries_line_number(self):
        text = "MANIFEST\t30\n\nF...\taa\t1\t/ok\nbroken\n"

        with pytest.raises(ManifestParseError) as exc:
            parse_manifest(lines(text), "x", path="Manifest.x")

        assert exc.value.line == 4
        assert str(exc.value).startswith("Manifest.x:4:")

    def test_parse_file_derives_name(self, tmp_path):
        path = tmp_path / "Manifest.os-core"
        path.write_text(manifest_text([("F...", "aa", 1, "/a")], version=1), encoding="utf-8")

        assert parse_manifest_file(str(path)).name == "os-core"

    def test_parse_missing_file(self, tmp_path):
        with pytest.raises(ManifestParseError):
            parse_manifest_file(str(tmp_path / "Manifest.none"))


def publish_release(origin):
    """MoM at 100 referencing os-core (changed at 100) and editors (last changed at 90)."""
    origin.add_manifest(100, "MoM", manifest_text(
        [("M...", "m1", 100, "os-core"), ("M...", "m2", 90, "editors")], version=100
    ))
    origin.add_manifest(100, "os-core", manifest_text([("F...", "aa", 100, "/usr/bin/bash")], version=100))
    origin.add_manifest(90, "editors", manifest_text([("F...", "bb", 90, "/usr/bin/vim")], version=90))


class TestLoader:
    """Cache-aware, sequential loading."""

    def test_load_all_fetches_components_at_their_own_version(self, origin, cache_root):
        publish_release(origin)

        tree = load_all(origin.base, 100, cache_root, downloader=origin)

        assert origin.requests == [
            "https://origin.test/update/100/Manifest.MoM.tar",
            "https://origin.test/update/100/Manifest.os-core.tar",
            "https://origin.test/update/90/Manifest.editors.tar",
        ]
        assert sorted(tree.manifests) == ["editors", "os-core"]
        assert tree.components() == [("os-core", 100), ("editors", 90)]
        assert tree.origin == origin.base
        assert os.path.isfile(cached(cache_root, 90, "Manifest.editors"))
        assert not os.path.exists(cached(cache_root, 90, "Manifest.editors.tar"))

    def test_cached_manifests_are_not_refetched(self, origin, cache_root):
        publish_release(origin)
        load_all(origin.base, 100, cache_root, downloader=origin)
        origin.requests.clear()

        tree = load_all(origin.base, 100, cache_root, downloader=origin)

        assert origin.requests == []
        assert tree.get("editors").files[0].name == "/usr/bin/vim"

    def test_load_top_level(self, origin, cache_root):
        publish_release(origin)

        mom = load_top_level(origin.base, 100, cache_root, downloader=origin)

        assert mom.name == "MoM"
        assert len(mom.files) == 2

    def test_malformed_component_fails_fast(self, origin, cache_root):
        origin.add_manifest(100, "MoM", manifest_text(
            [("M...", "m1", 100, "bad"), ("M...", "m2", 100, "good")], version=100
        ))
        origin.add_manifest(100, "bad", "garbage\n")
        origin.add_manifest(100, "good", manifest_text([], version=100))

        with pytest.raises(ManifestParseError):
            load_all(origin.base, 100, cache_root, downloader=origin)

        assert origin.requests[-1].endswith("Manifest.bad.tar")

    def test_missing_component_raises_download_error(self, origin, cache_root):
        origin.add_manifest(100, "MoM", manifest_text([("M...", "m1", 100, "ghost")], version=100))

        with pytest.raises(DownloadError):
            load_all(origin.base, 100, cache_root, downloader=origin)

    def test_malformed_origin_port_surfaces_as_download_error(self, cache_root):
        """Logging a bad origin URL must not pre-empt the download failure."""
        def reject(url, dest, session=None):
            raise DownloadError(f"invalid URL {url}", url=url)

        with pytest.raises(DownloadError):
            load_all("http://origin.test:bad", 100, cache_root, downloader=reject)

    def test_archive_without_manifest(self, origin, cache_root):
        url = "https://origin.test/update/100/Manifest.MoM.tar"
        origin.archives[url] = build_tar({"unrelated": b"x"})
        out = cached(cache_root, 100, "Manifest.MoM")

        with pytest.raises(ExtractError):
            fetch_manifest(origin.base, 100, "MoM", out, downloader=origin)

        assert not os.path.exists(out + ".tar")

    def test_fetch_manifest_cache_hit(self, origin, cache_root):
        out = cached(cache_root, 100, "Manifest.MoM")
        os.makedirs(os.path.dirname(out))
        with open(out, "w", encoding="utf-8") as fh:
            fh.write("anything")

        assert fetch_manifest(origin.base, 100, "MoM", out, downloader=origin) == out
        assert origin.requests == []


class TestLatestVersion:
    """Latest release lookup."""

    def test_reads_version(self):
        with patch("manifest.loader.get_text", return_value="33000") as get:
            assert fetch_latest_version("https://origin.test/") == "33000"

        assert get.call_args[0][0] == "https://origin.test/latest"

    def test_rejects_non_numeric(self):
        with patch("manifest.loader.get_text", return_value="<html>"):
            with pytest.raises(ValueError):
                fetch_latest_version("https://origin.test")


class TestLoadFromProvider:
    """Manifest trees built from stored manifest metadata."""

    CATALOG = {
        "manifests": {
            "clear": {
                "100": {"MoM": [{"name": "os-core", "hash": "m1", "version": 90, "flags": "M..."}]},
                "90": {"os-core": [
                    {"name": "/usr/bin/bash", "hash": "aa", "version": 90},
                    {"name": "/usr/bin/gone", "hash": "00", "version": 80, "flags": "Fd.."},
                ]},
            },
        },
    }

    def test_builds_tree(self, cache_root):
        provider = FileMetadataProvider(self.CATALOG)

        tree = load_from_provider(provider, "clear", 100, origin="https://origin.test/", cache_root=cache_root)

        assert tree.origin == "https://origin.test"
        assert tree.cache_root == cache_root
        assert [f.name for f in tree.get("os-core").present_files()] == ["/usr/bin/bash"]

    def test_missing_component(self):
        catalog = {"manifests": {"clear": {"100": {"MoM": [{"name": "x", "hash": "m", "version": 100}]}}}}

        with pytest.raises(NotFoundError):
            load_from_provider(FileMetadataProvider(catalog), "clear", 100)
