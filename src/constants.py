"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    EXIT_WARNINGS = 3
    CHECK_FAILED = 4
    INTERRUPTED = 130


class RepoKinds(Enum):
    """Kinds of package repositories held by the metadata store.

    Args:
        Enum (string): Repository kind suffix used in store keys.
    """

    BINARY = "B"
    SOURCE = "SRPM"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_ORIGIN = "https://cdn.download.clearlinux.org"
    DEFAULT_MIX_NAME = "clear"
    DEFAULT_CACHE_DIR = "~/.cache/relgate"
    MOM_NAME = "MoM"
    MANIFEST_URL_TEMPLATE = "{origin}/update/{version}/Manifest.{component}.tar"
    FILE_URL_TEMPLATE = "{origin}/update/{version}/files/{hash}.tar"
    LATEST_URL_TEMPLATE = "{origin}/latest"
    ARCHIVE_SUFFIX = ".tar"
    SRPM_SUFFIX = ".src.rpm"
    RPMLIB_PREFIX = "rpmlib("
    FETCH_WORKERS = 8
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "RELGATE_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    USER_AGENT = "RelGate/1.0"
