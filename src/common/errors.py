"""Exception taxonomy shared by the catalog, resolver and fetch pipelines."""

from __future__ import annotations

from typing import Optional


class RelGateError(Exception):
    """Base class for all RelGate errors."""


class ConfigError(RelGateError):
    """Configuration file is missing required structure or holds bad values."""


class CatalogError(RelGateError):
    """Required catalog data could not be populated from the metadata store."""


class NotFoundError(RelGateError, LookupError):
    """A package, bundle or manifest component is absent."""

    def __init__(self, kind: str, name: str, where: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.where = where
        location = f" in {where}" if where else ""
        super().__init__(f"{kind} '{name}' not found{location}")


class FetchError(RelGateError):
    """Base class for failures while retrieving remote content."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class DownloadError(FetchError):
    """The remote origin could not deliver an archive."""


class ExtractError(FetchError):
    """A downloaded archive could not be unpacked."""


class ManifestParseError(RelGateError, ValueError):
    """A manifest does not follow the swupd manifest format."""

    def __init__(self, message: str, path: Optional[str] = None, line: Optional[int] = None):
        self.path = path
        self.line = line
        where = ""
        if path:
            where = f"{path}:{line}: " if line else f"{path}: "
        super().__init__(f"{where}{message}")
