"""Dependency-closure resolver.

- index.py: capability -> provider index, built once per repository
- closure.py: DependencyClosure, ResolutionContext, build_closure
- report.py: bundle-level resolution and ResolutionReport
"""

from .index import ProviderIndex
from .closure import (
    DependencyClosure,
    Diagnostic,
    ResolutionContext,
    build_closure,
    missing_dependencies,
)
from .report import ResolutionReport, resolve_bundles

__all__ = [
    "ProviderIndex",
    "DependencyClosure",
    "Diagnostic",
    "ResolutionContext",
    "build_closure",
    "missing_dependencies",
    "ResolutionReport",
    "resolve_bundles",
]
