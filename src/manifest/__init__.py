"""Release content: swupd manifests and the files they reference.

- models.py: ManifestFile, Manifest, ManifestTree
- parser.py: swupd text manifest parser
- archive.py: download-and-extract of origin tar archives
- loader.py: MoM and component manifest loading (sequential, cache-aware)
- fetcher.py: concurrent file archive retrieval
"""

from .models import FileStatus, FileType, Manifest, ManifestFile, ManifestHeader, ManifestTree
from .parser import parse_manifest, parse_manifest_file
from .loader import (
    fetch_latest_version,
    fetch_manifest,
    load_all,
    load_from_provider,
    load_top_level,
)
from .fetcher import ContentFetcher, FetchResult, FileJob, JobResult, JobState, collect_file_jobs

__all__ = [
    "FileStatus",
    "FileType",
    "Manifest",
    "ManifestFile",
    "ManifestHeader",
    "ManifestTree",
    "parse_manifest",
    "parse_manifest_file",
    "fetch_latest_version",
    "fetch_manifest",
    "load_all",
    "load_from_provider",
    "load_top_level",
    "ContentFetcher",
    "FetchResult",
    "FileJob",
    "JobResult",
    "JobState",
    "collect_file_jobs",
]
