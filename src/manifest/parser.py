"""Parser for the swupd text manifest format.

A manifest starts with ``MANIFEST\\t<format>``, followed by ``key:\\tvalue``
header lines, a blank line, and one ``flags\\thash\\tversion\\tname`` line per
entry. Any deviation raises ManifestParseError: a manifest that cannot be
read completely cannot be trusted partially.
"""

from __future__ import annotations

import os
from typing import Iterable, Optional

from common.errors import ManifestParseError
from .models import FileStatus, FileType, Manifest, ManifestFile, ManifestHeader

_INT_HEADERS = ("version", "previous", "minversion", "filecount", "timestamp", "contentsize")
_VALID_TYPES = {t.value for t in FileType}
_VALID_STATUS = {s.value for s in FileStatus}


def _parse_int(value: str, what: str, path: Optional[str], lineno: int) -> int:
    try:
        return int(value)
    except ValueError:
        raise ManifestParseError(f"invalid {what} {value!r}", path, lineno) from None


def _parse_entry(line: str, path: Optional[str], lineno: int) -> ManifestFile:
    fields = line.split("\t")
    if len(fields) != 4:
        raise ManifestParseError(f"expected 4 tab-separated fields, got {len(fields)}", path, lineno)
    flags, digest, version, name = fields
    if len(flags) != 4 or flags[0] not in _VALID_TYPES or flags[1] not in _VALID_STATUS:
        raise ManifestParseError(f"invalid flags {flags!r}", path, lineno)
    if not digest or not name:
        raise ManifestParseError("entry without hash or name", path, lineno)
    return ManifestFile(
        name=name,
        hash=digest,
        version=_parse_int(version, "entry version", path, lineno),
        flags=flags,
    )


def parse_manifest(lines: Iterable[str], name: str, path: Optional[str] = None) -> Manifest:
    """Parse manifest text lines into a Manifest.

    Args:
        lines: Manifest lines (trailing newlines are ignored).
        name: Component name the manifest describes ("MoM" for the index).
        path: Optional source path, used in error messages.

    Raises:
        ManifestParseError: On any malformed header or entry.
    """
    header = ManifestHeader()
    manifest = Manifest(name=name, header=header)
    in_header = True
    seen_magic = False

    for lineno, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not seen_magic:
            parts = line.split("\t")
            if len(parts) != 2 or parts[0] != "MANIFEST":
                raise ManifestParseError("missing MANIFEST header", path, lineno)
            header.format = _parse_int(parts[1], "format", path, lineno)
            seen_magic = True
            continue
        if in_header:
            if not line:
                in_header = False
                continue
            key, sep, value = line.partition(":")
            if not sep:
                raise ManifestParseError(f"invalid header line {line!r}", path, lineno)
            key = key.strip()
            value = value.strip()
            if key in _INT_HEADERS:
                setattr(header, key, _parse_int(value, key, path, lineno))
            elif key == "includes":
                header.includes.append(value)
            elif key == "also-add":
                header.optional.append(value)
            # other header keys (e.g. actualcontentsize) carry nothing we use
            continue
        if not line:
            continue
        manifest.files.append(_parse_entry(line, path, lineno))

    if not seen_magic:
        raise ManifestParseError("empty manifest", path)
    if in_header:
        raise ManifestParseError("manifest header is not terminated by a blank line", path)
    if header.filecount and header.filecount != len(manifest.files):
        raise ManifestParseError(
            f"filecount {header.filecount} does not match {len(manifest.files)} entries", path
        )
    return manifest


def parse_manifest_file(path: str, name: Optional[str] = None) -> Manifest:
    """Parse the manifest at ``path``; the name defaults to the ``Manifest.<name>`` suffix.

    Raises:
        ManifestParseError: If the file cannot be read or is malformed.
    """
    if name is None:
        base = os.path.basename(path)
        name = base.split(".", 1)[1] if base.startswith("Manifest.") else base
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return parse_manifest(fh, name, path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestParseError(f"cannot read manifest: {exc}", path) from exc
