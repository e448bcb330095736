from __future__ import annotations

import argparse
import logging
import sys
import threading

from shipforge.config import ConfigError, load_project
from shipforge.executor import TaskResult
from shipforge.runner import FailureKind, Project, RunController, RunReport
from shipforge.template import BindingError

from .args import build_parser

EXIT_OK = 0
EXIT_TASK_FAILED = 1
EXIT_CONFIG = 2
EXIT_CONNECTION = 3
EXIT_INTERRUPTED = 130

_EXIT_BY_KIND = {
    FailureKind.EXECUTION: EXIT_TASK_FAILED,
    FailureKind.BINDING: EXIT_CONFIG,
    FailureKind.CONNECTION: EXIT_CONNECTION,
    FailureKind.CANCELLED: EXIT_INTERRUPTED,
}


def main() -> None:
    sys.exit(run_cli())


def run_cli(argv: list[str] | None = None, *, cancel: threading.Event | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        _configure_logging(args.verbose)

        match args.command:
            case "run":
                return cmd_run(args, cancel=cancel)
            case "list":
                return cmd_list(args)
            case "show":
                return cmd_show(args)
            case _:
                return EXIT_CONFIG

    except (ConfigError, BindingError) as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_CONFIG

    except KeyboardInterrupt:
        return EXIT_INTERRUPTED


def cmd_run(args: argparse.Namespace, *, cancel: threading.Event | None = None) -> int:
    project = _load(args)
    bindings = project.bindings(_parse_overrides(args.overrides))
    controller = RunController(
        project, timeout=args.timeout, connect_timeout=args.connect_timeout
    )

    if args.pretend:
        for task, endpoints, script in controller.pretend(args.name, bindings):
            print(f"# {task.id} @ {', '.join(endpoints)}")
            print(script.rstrip("\n"))
            print()
        return EXIT_OK

    report = controller.run(
        args.name,
        bindings,
        cancel=cancel,
        on_result=lambda result: _print_result(
            result, project.tasks.get(result.task_id).message, quiet=args.quiet
        ),
    )
    _print_summary(report)

    if report.failure is not None:
        return _EXIT_BY_KIND[report.failure.kind]
    return EXIT_OK if report.ok else EXIT_TASK_FAILED


def cmd_list(args: argparse.Namespace) -> int:
    project = _load(args)
    for mid in project.macros.ids():
        print(f"macro {mid}: {' '.join(project.macros.get(mid).task_ids)}")
    for tid in project.tasks.ids():
        print(f"task {tid} @ {project.tasks.get(tid).target}")
    return EXIT_OK


def cmd_show(args: argparse.Namespace) -> int:
    project = _load(args)
    for task in project.plan(args.name):
        endpoints = ", ".join(e.label for e in project.hosts.resolve(task.target))
        line = f"{task.id} @ {task.target} ({endpoints})"
        print(f"{line}: {task.message}" if task.message else line)
    return EXIT_OK


def _load(args: argparse.Namespace) -> Project:
    return Project.from_config(load_project(args.config))


def _parse_overrides(items: list[str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or len(key.strip()) < 1:
            raise ConfigError(f"--set expects KEY=VALUE, got '{item}'")
        overrides[key.strip()] = value
    return overrides


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG

    logger = logging.getLogger("shipforge")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def _print_result(result: TaskResult, message: str | None, *, quiet: bool) -> None:
    status = "OK" if result.ok else ("TIMEOUT" if result.timed_out else "FAIL")
    banner = f": {message}" if message else ""
    print(
        f"{status} {result.task_id} @ {result.endpoint}{banner}, "
        f"{result.duration_s:.3f}s, exit code = {result.returncode}"
    )
    if quiet:
        return

    for line in result.script.splitlines():
        print(f"  $ {line}")
    for line in result.stdout.splitlines():
        print(f"  | {line}")
    for line in result.stderr.splitlines():
        print(f"  | {line}")


def _print_summary(report: RunReport) -> None:
    for tid in report.skipped:
        print(f"SKIP {tid}")

    failure = report.failure
    if failure is None:
        if report.ok:
            print(f"{report.name}: success")
        else:
            print(f"{report.name}: finished with failures in {', '.join(report.failed)}")
        return

    where = f" on {failure.endpoint}" if failure.endpoint else ""
    print(f"{report.name}: {failure.kind.value} failure in {failure.task_id}{where}: {failure.message}")
