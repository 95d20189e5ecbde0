"""Data models for swupd manifests and the release manifest tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple


class FileType(Enum):
    """First manifest flag: kind of entry."""
    FILE = "F"
    DIRECTORY = "D"
    LINK = "L"
    MANIFEST = "M"
    IMPORTANT = "I"
    UNSET = "."


class FileStatus(Enum):
    """Second manifest flag: entry state at this version."""
    PRESENT = "."
    DELETED = "d"
    GHOSTED = "g"


@dataclass(frozen=True)
class ManifestFile:
    """One manifest entry: a content-addressed file, or a component reference in the MoM."""
    name: str
    hash: str
    version: int
    flags: str = "F..."

    @property
    def type(self) -> FileType:
        return FileType(self.flags[0])

    @property
    def status(self) -> FileStatus:
        return FileStatus(self.flags[1])

    @property
    def present(self) -> bool:
        """Deleted and ghosted entries are tombstones and carry no payload."""
        return self.status is FileStatus.PRESENT


@dataclass
class ManifestHeader:
    """Manifest header fields."""
    format: int = 0
    version: int = 0
    previous: int = 0
    minversion: int = 0
    filecount: int = 0
    timestamp: int = 0
    contentsize: int = 0
    includes: List[str] = field(default_factory=list)
    optional: List[str] = field(default_factory=list)


@dataclass
class Manifest:
    """A parsed manifest: the MoM or one component (bundle) manifest."""
    name: str
    header: ManifestHeader = field(default_factory=ManifestHeader)
    files: List[ManifestFile] = field(default_factory=list)

    def present_files(self) -> Iterator[ManifestFile]:
        return (f for f in self.files if f.present)


@dataclass
class ManifestTree:
    """The MoM plus every component manifest it references.

    ``origin`` and ``cache_root`` record where the tree was loaded from, so the
    content fetcher can derive archive URLs and cache paths from it.
    """
    version: str
    mom: Manifest
    manifests: Dict[str, Manifest] = field(default_factory=dict)
    origin: str = ""
    cache_root: str = ""

    def components(self) -> List[Tuple[str, int]]:
        """Component references as (name, last-changed version), in MoM order."""
        return [(f.name, f.version) for f in self.mom.files]

    def get(self, component: str) -> Optional[Manifest]:
        return self.manifests.get(component)
