"""Bundle-level dependency resolution and its report."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from common.errors import NotFoundError
from pkginfo.models import BundleInfo, Repository
from .closure import Diagnostic, ResolutionContext, build_closure

logger = logging.getLogger(__name__)


@dataclass
class ResolutionReport:
    """Missing capabilities per source package, plus lookup diagnostics."""
    bundle: str
    missing: Dict[str, List[str]] = field(default_factory=dict)
    packages: Dict[str, List[str]] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def failed(self) -> int:
        """Number of source packages with at least one missing capability."""
        return sum(1 for caps in self.missing.values() if caps)

    @property
    def checked(self) -> int:
        return len(self.missing)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bundle": self.bundle or "*",
            "checked": self.checked,
            "failed": self.failed,
            "sources": [
                {
                    "source": name,
                    "packages": self.packages.get(name, []),
                    "missing": caps,
                }
                for name, caps in sorted(self.missing.items())
            ],
            "diagnostics": [
                {"kind": d.kind, "name": d.name, "detail": d.detail}
                for d in self.diagnostics
            ],
        }


def resolve_bundles(
    binary_repo: Repository,
    source_repo: Repository,
    bundle_info: BundleInfo,
    bundle_name: str = "",
    internal_rpmlib: bool = True,
) -> ResolutionReport:
    """Resolve closures for every package of a bundle (or of all bundles).

    Bundle packages absent from ``binary_repo`` are recorded as diagnostics
    and skipped; they never abort the run.

    Args:
        binary_repo: Populated binary repository.
        source_repo: Populated source repository.
        bundle_info: Populated bundle definitions.
        bundle_name: Bundle to check; empty string checks all bundles.
        internal_rpmlib: Treat ``rpmlib(...)`` requirements as provided.

    Returns:
        ResolutionReport: Missing capabilities per source package.
    """
    context = ResolutionContext(internal_rpmlib=internal_rpmlib)
    report = ResolutionReport(bundle=bundle_name)
    try:
        work_list = bundle_info.get_all_packages(bundle_name)
    except NotFoundError as exc:
        context.record("bundle", bundle_name, str(exc))
        report.diagnostics = list(context.diagnostics)
        return report

    logger.info("Resolving dependencies for %d bundle packages", len(work_list))
    for name in sorted(work_list):
        package = binary_repo.find(name)
        if package is None:
            context.record("binary_package", name, f"not in {binary_repo.repo_key.key}")
            continue
        build_closure(context, package, binary_repo, source_repo)

    for closure in context:
        report.missing[closure.name] = closure.missing
        report.packages[closure.name] = sorted(closure.packages)
        if closure.missing:
            logger.info("MISSING: %s: %s", closure.name, " || ".join(closure.missing))
    report.diagnostics = list(context.diagnostics)
    return report
