from __future__ import annotations

import argparse

from shipforge import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shipforge")

    parser.add_argument(
        "--config",
        default="shipforge.yml",
        help="Path to config file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
    )

    # run
    run = subparsers.add_parser("run", help="Run a macro or a single task")
    run.add_argument("name", help="Macro id (or task id)")
    run.add_argument(
        "-s",
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a variable, may be repeated",
    )
    run.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-task timeout in seconds (default: none)",
    )
    run.add_argument(
        "--connect-timeout",
        type=float,
        default=None,
        help="SSH connect timeout in seconds",
    )
    run.add_argument(
        "--pretend",
        action="store_true",
        help="Print the rendered scripts without running them",
    )
    run.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only print one status line per task",
    )

    # list
    subparsers.add_parser("list", help="List macros and tasks")

    # show
    show = subparsers.add_parser("show", help="Show the tasks a macro expands to")
    show.add_argument("name", help="Macro id")

    return parser
