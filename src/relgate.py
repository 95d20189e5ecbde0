"""RelGate - Release dependency closure and content integrity checker

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys

from constants import ExitCodes, Constants, RepoKinds
from common.errors import (
    CatalogError,
    ConfigError,
    DownloadError,
    FetchError,
    ManifestParseError,
)
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import apply_config_overrides

logger = logging.getLogger(__name__)


def setup_logging(args):
    """Configure logging from --loglevel (falling back to RELGATE_LOG_LEVEL) and --logfile."""
    configure_logging(getattr(args, "LOG_LEVEL", None))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def resolve_version(args):
    """Return the version to check, asking the origin when --latest is set.

    Exits with CONNECTION_ERROR when the origin cannot be asked.
    """
    if not getattr(args, "LATEST", False):
        return str(args.VERSION)
    from manifest.loader import fetch_latest_version  # pylint: disable=import-outside-toplevel
    try:
        version = fetch_latest_version(Constants.DEFAULT_ORIGIN)
    except (DownloadError, ValueError) as e:
        logger.error("Could not determine latest version: %s", e)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    logger.info("Latest version from origin: %s", version)
    return version


def export_json(report, path):
    """Exports the resolution report to a JSON file.

    Args:
        report (ResolutionReport): Report to export.
        path (str): File path to export the JSON.
    """
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(report.to_dict(), file, ensure_ascii=False, indent=4)
        logger.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logger.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def run_deps(args, config):
    """Check runtime dependency closure of bundle packages.

    Returns:
        int: Exit code.
    """
    # pylint: disable=import-outside-toplevel
    from pkginfo import BundleInfo, FileMetadataProvider, Repository, populate_bundles, populate_repo
    from resolver import resolve_bundles

    catalog = getattr(args, "CATALOG", None) or config.get("catalog")
    if not catalog:
        logger.error("No catalog given; use --catalog or set 'catalog' in the config file.")
        return ExitCodes.FILE_ERROR.value

    version = resolve_version(args)
    mix_name = Constants.DEFAULT_MIX_NAME
    try:
        provider = FileMetadataProvider.from_path(catalog)
        logger.info("Populating repo and bundle data for %s version %s", mix_name, version)
        binary_repo = populate_repo(provider, Repository(mix_name, version, RepoKinds.BINARY))
        source_repo = populate_repo(provider, Repository(mix_name, version, RepoKinds.SOURCE))
        bundle_info = populate_bundles(provider, BundleInfo(mix_name, version))
    except (ConfigError, CatalogError) as e:
        logger.error("%s", e)
        return ExitCodes.FILE_ERROR.value
    logger.info("Data populated successfully")

    report = resolve_bundles(
        binary_repo,
        source_repo,
        bundle_info,
        bundle_name=args.BUNDLE,
        internal_rpmlib=not args.NO_RPMLIB,
    )
    for source, missing in sorted(report.missing.items()):
        if missing:
            print(f"MISSING: {source}: {' || '.join(missing)}")
    print(f"{report.checked} source packages checked, {report.failed} with missing dependencies")

    if getattr(args, "OUTPUT", None):
        export_json(report, args.OUTPUT)

    if report.failed:
        return ExitCodes.CHECK_FAILED.value
    if report.diagnostics:
        return ExitCodes.EXIT_WARNINGS.value
    return ExitCodes.SUCCESS.value


def run_fetch(args, config):  # pylint: disable=unused-argument
    """Fetch manifests and file content for a release into the cache.

    Returns:
        int: Exit code.
    """
    # pylint: disable=import-outside-toplevel
    from manifest import ContentFetcher, load_all

    version = resolve_version(args)
    cache_root = os.path.expanduser(Constants.DEFAULT_CACHE_DIR)
    origin = Constants.DEFAULT_ORIGIN

    try:
        tree = load_all(origin, version, cache_root)
    except FetchError as e:
        logger.error("Manifest download failed: %s", e)
        return ExitCodes.CONNECTION_ERROR.value
    except ManifestParseError as e:
        logger.error("Manifest is malformed: %s", e)
        return ExitCodes.FILE_ERROR.value
    except ValueError as e:
        # urllib and requests reject malformed origins (e.g. a non-numeric port)
        logger.error("Invalid origin %r: %s", origin, e)
        return ExitCodes.CONNECTION_ERROR.value

    if getattr(args, "MANIFESTS_ONLY", False):
        print(f"{len(tree.manifests)} manifests cached under {cache_root}")
        return ExitCodes.SUCCESS.value

    fetcher = ContentFetcher(workers=Constants.FETCH_WORKERS)
    result = fetcher.fetch_all(tree)
    for failed in result.failed:
        logger.error("Failed %s: %s", failed.job.url, failed.error)
    print(
        f"{result.total} files: {result.downloaded} downloaded, "
        f"{result.cached} cached, {result.failed_count} failed"
    )
    if result.failed_count:
        return ExitCodes.CHECK_FAILED.value
    return ExitCodes.SUCCESS.value


COMMANDS = {
    "deps": run_deps,
    "fetch": run_fetch,
}


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main", target=args.COMMAND)
        )

    try:
        config = apply_config_overrides(args)
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    try:
        code = COMMANDS[args.COMMAND](args, config)
    except KeyboardInterrupt:
        logger.warning("Interrupted.")
        code = ExitCodes.INTERRUPTED.value
    sys.exit(code)


if __name__ == "__main__":
    main()
