"""Argument parsing functionality for RelGate."""

import argparse
from constants import Constants


def _add_common(parser):
    """Options shared by every subcommand."""
    parser.add_argument("-n", "--name",
                        dest="MIX_NAME",
                        help="Name of the data group (mix) to check",
                        action="store", type=str,
                        default=None)
    parser.add_argument("-v", "--version",
                        dest="VERSION",
                        help="Release version to check",
                        action="store", type=str,
                        default="0")
    parser.add_argument("--latest",
                        dest="LATEST",
                        help="Use the latest version published by the origin",
                        action="store_true")
    parser.add_argument("-u", "--origin",
                        dest="ORIGIN",
                        help="Base URL of the release origin",
                        action="store", type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level (default: $RELGATE_LOG_LEVEL, else INFO)",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="relgate",
        description=(
            "RelGate - Release dependency closure and content integrity checker"
        ),
        add_help=True,
    )
    sub = parser.add_subparsers(dest="COMMAND", required=True)

    deps = sub.add_parser("deps", help="Report missing runtime dependencies per source package")
    _add_common(deps)
    deps.add_argument("--catalog",
                      dest="CATALOG",
                      help="Catalog dump (YAML or JSON) holding repo and bundle metadata",
                      action="store", type=str)
    deps.add_argument("-b", "--bundle",
                      dest="BUNDLE",
                      help="Check a single bundle (default: all bundles)",
                      action="store", type=str,
                      default="")
    deps.add_argument("--no-rpmlib",
                      dest="NO_RPMLIB",
                      help="Do not treat rpmlib(...) requirements as provided by rpm",
                      action="store_true")
    deps.add_argument("-o", "--output",
                      dest="OUTPUT",
                      help="Path to JSON report file",
                      action="store",
                      type=str)

    fetch = sub.add_parser("fetch", help="Download release manifests and content into the cache")
    _add_common(fetch)
    fetch.add_argument("--cache-dir",
                       dest="CACHE_DIR",
                       help="Local cache root",
                       action="store", type=str)
    fetch.add_argument("-w", "--workers",
                       dest="WORKERS",
                       help=f"Concurrent download workers (default: {Constants.FETCH_WORKERS})",
                       action="store", type=int)
    fetch.add_argument("--manifests-only",
                       dest="MANIFESTS_ONLY",
                       help="Only fetch manifests, not file content",
                       action="store_true")

    return parser.parse_args(argv)
