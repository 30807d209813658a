"""Command-line entry point for relbisect."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, List, Optional

from relbisect.args import parse_args
from relbisect.bisection.engine import BisectionEngine
from relbisect.bisection.models import BisectError
from relbisect.bisection.report import LoggingObserver, display_result
from relbisect.common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from relbisect.config import RelbisectConfig
from relbisect.constants import ExitCodes
from relbisect.runner.models import RunOptions, TestStatus
from relbisect.runner.process import ProcessRunner
from relbisect.runner.resolvers import LocalExecutableResolver, LocalPayloadResolver, ResolutionError
from relbisect.versioning.catalog import UnknownVersionError
from relbisect.versioning.refresh import RefreshingCatalog

logger = logging.getLogger(__name__)

_BISECT_EXIT_CODES = {
    BisectError.CONVERGENCE_FAILURE: ExitCodes.TEST_FAILED,
    BisectError.LAUNCH_FAILURE: ExitCodes.TEST_ERROR,
    BisectError.ABNORMAL_EXIT: ExitCodes.TEST_ERROR,
    BisectError.DEGENERATE_RANGE: ExitCodes.SYSTEM_ERROR,
    BisectError.UNKNOWN_VERSION: ExitCodes.SYSTEM_ERROR,
    BisectError.SYSTEM_ERROR: ExitCodes.SYSTEM_ERROR,
}

_TEST_EXIT_CODES = {
    TestStatus.PASSED: ExitCodes.SUCCESS,
    TestStatus.FAILED: ExitCodes.TEST_FAILED,
    TestStatus.INCONCLUSIVE: ExitCodes.TEST_ERROR,
}


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    configure_logging(getattr(args, "LOG_LEVEL", None))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        add_file_handler(log_file)
        logger.info("Logging to file: %s", log_file)


def build_catalog(config: RelbisectConfig) -> RefreshingCatalog:
    return RefreshingCatalog.create(
        config.cache_file,
        url=config.releases_url,
        ttl_sec=config.cache_ttl_sec,
        supported_count=config.supported_majors,
    )


def build_engine(
    config: RelbisectConfig,
    catalog: RefreshingCatalog,
    out: Optional[Any] = None,
) -> BisectionEngine:
    """Wire the engine with the local resolvers and a console observer."""
    executable_resolver = LocalExecutableResolver(
        catalog.is_version,
        builds_dir=config.builds_dir,
        executable_name=config.executable_name,
    )
    return BisectionEngine(
        catalog,
        ProcessRunner(),
        executable_resolver,
        LocalPayloadResolver(config.payload_entry),
        observer=LoggingObserver(out, compare_url_template=config.compare_url_template),
    )


def _run_options(args: Any, config: RelbisectConfig) -> RunOptions:
    return RunOptions(
        args=list(getattr(args, "EXTRA_ARGS", None) or []),
        headless=config.headless,
        out=None if getattr(args, "QUIET", False) else sys.stdout,
        show_config=not getattr(args, "HIDE_CONFIG", False),
    )


def run_bisect(args: Any, config: RelbisectConfig) -> ExitCodes:
    catalog = build_catalog(config)
    engine = build_engine(config, catalog, sys.stdout)
    result = engine.bisect(args.GOOD, args.BAD, args.PAYLOAD, _run_options(args, config))
    if result.succeeded:
        logger.info("Boundary found: %s -> %s", result.good, result.bad)
        return ExitCodes.SUCCESS
    logger.error("%s", result.message)
    return _BISECT_EXIT_CODES[result.error]


def run_test(args: Any, config: RelbisectConfig) -> ExitCodes:
    catalog = build_catalog(config)
    engine = build_engine(config, catalog, sys.stdout)
    try:
        result = engine.test(args.TARGET, args.PAYLOAD, _run_options(args, config))
    except ResolutionError as exc:
        logger.error("%s", exc)
        return ExitCodes.SYSTEM_ERROR
    sys.stdout.write(f"{display_result(result)} {args.TARGET}\n")
    return _TEST_EXIT_CODES[result.status]


def run_versions(args: Any, config: RelbisectConfig) -> ExitCodes:
    catalog = build_catalog(config)
    if getattr(args, "REFRESH", False) and not catalog.refresh():
        logger.warning("Could not refresh the release list; showing cached data")

    try:
        if getattr(args, "RANGE", None):
            versions = catalog.in_range(*args.RANGE)
        elif getattr(args, "MAJOR", None) is not None:
            versions = catalog.in_major(args.MAJOR)
        else:
            versions = catalog.versions
    except UnknownVersionError as exc:
        logger.error("%s", exc)
        return ExitCodes.USAGE_ERROR

    listing: List[str] = [str(v) for v in versions]
    latest = catalog.latest
    latest_stable = catalog.latest_stable
    summary = {
        "versions": listing,
        "latest": str(latest) if latest else None,
        "latest_stable": str(latest_stable) if latest_stable else None,
        "prerelease_majors": catalog.prerelease_majors,
        "supported_majors": catalog.supported_majors,
        "obsolete_majors": catalog.obsolete_majors,
    }

    if getattr(args, "JSON", False):
        sys.stdout.write(json.dumps(summary, indent=2) + "\n")
    else:
        for version in listing:
            sys.stdout.write(version + "\n")
        sys.stdout.write(
            f"\nlatest: {summary['latest']}  latest stable: {summary['latest_stable']}\n"
            f"supported majors: {summary['supported_majors']}\n"
            f"obsolete majors: {summary['obsolete_majors']}\n"
            f"prerelease majors: {summary['prerelease_majors']}\n"
        )
    return ExitCodes.SUCCESS


_COMMANDS = {
    "bisect": run_bisect,
    "test": run_test,
    "versions": run_versions,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    config = RelbisectConfig.load(getattr(args, "CONFIG_FILE", None))
    config.apply_args(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.action),
        )

    try:
        exit_code = _COMMANDS[args.action](args, config)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)  # Standard SIGINT exit code
    sys.exit(exit_code.value)


if __name__ == "__main__":
    main()
