"""Argument parsing functionality for relbisect."""

import argparse
from typing import List, Optional

from relbisect import __version__


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config",
                        dest="CONFIG_FILE",
                        help="Path to a YAML config file",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--cache-file",
                        dest="CACHE_FILE",
                        help="Where to keep the cached release list",
                        action="store",
                        type=str)
    parser.add_argument("--releases-url",
                        dest="RELEASES_URL",
                        help="URL of the JSON release feed",
                        action="store",
                        type=str)


def _add_run_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--builds-dir",
                        dest="BUILDS_DIR",
                        help="Directory holding one unpacked build per version (<dir>/<version>/)",
                        action="store",
                        type=str)
    parser.add_argument("--executable-name",
                        dest="EXECUTABLE_NAME",
                        help="Executable path inside a build directory",
                        action="store",
                        type=str)
    parser.add_argument("--entry",
                        dest="PAYLOAD_ENTRY",
                        help="Entry file name inside a payload directory",
                        action="store",
                        type=str)
    parser.add_argument("--headless",
                        dest="HEADLESS",
                        help="Run under a virtual display where the platform needs one",
                        action="store_true")
    parser.add_argument("--arg",
                        dest="EXTRA_ARGS",
                        help="Extra argument passed to the executable (repeatable; use --arg=--flag for dashed values)",
                        action="append",
                        default=[])
    parser.add_argument("--hide-config",
                        dest="HIDE_CONFIG",
                        help="Do not print the test header before each run",
                        action="store_true")
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not echo test output to the console.",
                        action="store_true")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses the arguments passed to the program."""
    common = argparse.ArgumentParser(add_help=False)
    _add_common_args(common)

    parser = argparse.ArgumentParser(
        prog="relbisect",
        description="relbisect - find the release where a test starts failing",
        add_help=True,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="action", required=True)

    bisect_parser = subparsers.add_parser(
        "bisect", parents=[common],
        help="Bisect a range of releases to find where a test changes outcome",
    )
    bisect_parser.add_argument("GOOD", help="One end of the range (usually a passing version)")
    bisect_parser.add_argument("BAD", help="Other end of the range (usually a failing version)")
    bisect_parser.add_argument("PAYLOAD", help="Payload directory or entry file")
    _add_run_args(bisect_parser)

    test_parser = subparsers.add_parser(
        "test", parents=[common],
        help="Run a payload once against a version or a local build",
    )
    test_parser.add_argument("TARGET", help="Version, build directory, or executable")
    test_parser.add_argument("PAYLOAD", help="Payload directory or entry file")
    _add_run_args(test_parser)

    versions_parser = subparsers.add_parser(
        "versions", parents=[common],
        help="List known releases and branch classification",
    )
    versions_parser.add_argument("--major",
                                 dest="MAJOR",
                                 help="Only list releases in this major branch",
                                 type=int)
    versions_parser.add_argument("--range",
                                 dest="RANGE",
                                 help="Only list releases between two versions (inclusive)",
                                 nargs=2,
                                 metavar=("A", "B"))
    versions_parser.add_argument("--refresh",
                                 dest="REFRESH",
                                 help="Fetch the release feed before listing",
                                 action="store_true")
    versions_parser.add_argument("--json",
                                 dest="JSON",
                                 help="Print machine-readable JSON",
                                 action="store_true")

    return parser.parse_args(argv)
