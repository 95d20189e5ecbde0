"""Concurrent, cache-aware retrieval of the file archives a manifest tree references.

Local cache layout::

    {cache_root}/update/{version}/files/{hash}      (extracted)
    {cache_root}/update/{version}/files/{hash}.tar  (transient archive)

Jobs are deduplicated by output path, so no two workers ever touch the same
path and no cross-worker locking is needed.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from constants import Constants
from common.errors import FetchError
from common.http_client import download_file, new_session
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from .archive import extract_archive, remove_archive
from .models import ManifestTree

logger = logging.getLogger(__name__)


class JobState(Enum):
    """Lifecycle of one file job."""
    PENDING = "pending"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FileJob:
    """One archive to fetch: where it goes and where it comes from."""
    out: str
    url: str

    @property
    def extracted_path(self) -> str:
        if self.out.endswith(Constants.ARCHIVE_SUFFIX):
            return self.out[: -len(Constants.ARCHIVE_SUFFIX)]
        return self.out


@dataclass
class JobResult:
    """Terminal outcome of one job."""
    job: FileJob
    state: JobState
    cached: bool = False
    error: Optional[str] = None


@dataclass
class FetchResult:
    """Outcome of a ``fetch_all`` run."""
    total: int = 0
    downloaded: int = 0
    cached: int = 0
    failed: List[JobResult] = field(default_factory=list)
    cancelled: int = 0

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.cancelled


def file_url(origin: str, version, digest: str) -> str:
    return Constants.FILE_URL_TEMPLATE.format(origin=origin.rstrip("/"), version=version, hash=digest)


def file_archive_path(cache_root: str, version, digest: str) -> str:
    return os.path.join(cache_root, "update", str(version), "files", digest + Constants.ARCHIVE_SUFFIX)


def collect_file_jobs(tree: ManifestTree) -> Dict[str, FileJob]:
    """Every present file entry of every component, deduplicated by output path.

    Deleted and ghosted entries carry no payload and are skipped.
    """
    jobs: Dict[str, FileJob] = {}
    for manifest in tree.manifests.values():
        for entry in manifest.present_files():
            out = file_archive_path(tree.cache_root, entry.version, entry.hash)
            if out not in jobs:
                jobs[out] = FileJob(out=out, url=file_url(tree.origin, entry.version, entry.hash))
    return jobs


# (url, dest, session) -> dest; raises DownloadError
SessionDownloader = Callable[..., str]

_STOP = object()


class ContentFetcher:
    """Fixed-size worker pool that downloads and extracts file archives.

    Every job produces exactly one JobResult on an unbounded result queue, so
    no failure is lost however many jobs fail. An unexpected exception fails
    its job only and the worker moves on. Setting ``cancel_event`` stops
    workers from starting further downloads or extractions; jobs that had not
    started finish as CANCELLED. A fetcher that created its own event clears
    it at the start of every ``fetch_all``; a caller-supplied event is left as
    the caller set it.
    """

    def __init__(
        self,
        workers: int = Constants.FETCH_WORKERS,
        downloader: SessionDownloader = download_file,
        cancel_event: Optional[threading.Event] = None,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.workers = workers
        self.downloader = downloader
        self._owns_event = cancel_event is None
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    def fetch_all(self, tree: ManifestTree) -> FetchResult:
        """Fetch every file the tree references; return once all jobs are terminal.

        Per-job failures are collected in the result, never raised.
        """
        if self._owns_event:
            self.cancel_event.clear()
        jobs = collect_file_jobs(tree)
        result = FetchResult(total=len(jobs))
        if not jobs:
            return result

        work: "queue.Queue[object]" = queue.Queue()
        results: "queue.SimpleQueue[JobResult]" = queue.SimpleQueue()
        for job in jobs.values():
            work.put(job)
        width = min(self.workers, len(jobs))
        for _ in range(width):
            work.put(_STOP)

        logger.info("Fetching %d files with %d workers", len(jobs), width)
        threads = [
            threading.Thread(target=self._worker, args=(work, results), name=f"fetch-{i}", daemon=True)
            for i in range(width)
        ]
        with Timer() as t:
            for thread in threads:
                thread.start()
            try:
                for thread in threads:
                    thread.join()
            except KeyboardInterrupt:
                # let in-flight jobs reach a terminal state before unwinding
                self.cancel()
                for thread in threads:
                    thread.join()
                raise

        reported = {}
        while not results.empty():
            job_result = results.get()
            reported[job_result.job.out] = job_result
        # a worker that died outside a job leaves its queued jobs unreported
        for out, job in jobs.items():
            if out not in reported:
                reported[out] = JobResult(
                    job=job, state=JobState.FAILED, error="worker exited before running the job"
                )

        for job_result in reported.values():
            if job_result.state is JobState.DONE:
                if job_result.cached:
                    result.cached += 1
                else:
                    result.downloaded += 1
            elif job_result.state is JobState.CANCELLED:
                result.cancelled += 1
            else:
                result.failed.append(job_result)

        if result.failed:
            logger.warning("errors downloading %d files", result.failed_count)
        logger.info(
            "Fetched %d files (%d cached, %d failed, %d cancelled) in %.0f ms",
            result.downloaded, result.cached, result.failed_count, result.cancelled, t.duration_ms(),
        )
        return result

    def _worker(self, work: "queue.Queue[object]", results: "queue.SimpleQueue[JobResult]") -> None:
        session = new_session()
        try:
            while True:
                item = work.get()
                if item is _STOP:
                    return
                try:
                    job_result = self._run_job(item, session)
                except Exception as exc:  # pylint: disable=broad-except
                    logger.error("Unexpected error fetching %s: %s", safe_url(item.url), exc, exc_info=True)
                    job_result = JobResult(job=item, state=JobState.FAILED, error=f"unexpected: {exc!r}")
                results.put(job_result)
        finally:
            session.close()

    def _run_job(self, job: FileJob, session) -> JobResult:
        # extracted content already cached
        if os.path.lexists(job.extracted_path):
            return JobResult(job=job, state=JobState.DONE, cached=True)
        if self.cancel_event.is_set():
            return JobResult(job=job, state=JobState.CANCELLED)

        state = JobState.DOWNLOADING
        try:
            os.makedirs(os.path.dirname(job.out), exist_ok=True)
            self.downloader(job.url, job.out, session=session)
            if self.cancel_event.is_set():
                return JobResult(job=job, state=JobState.CANCELLED)
            state = JobState.EXTRACTING
            extract_archive(job.out, os.path.dirname(job.out))
        except (FetchError, OSError) as exc:
            if is_debug_enabled(logger):
                logger.debug(
                    "File job failed",
                    extra=extra_context(
                        event="job_failed",
                        component="fetcher",
                        action=state.value,
                        outcome=str(exc),
                        target=safe_url(job.url),
                    ),
                )
            return JobResult(job=job, state=JobState.FAILED, error=f"{state.value}: {exc}")
        finally:
            remove_archive(job.out)
        return JobResult(job=job, state=JobState.DONE)
