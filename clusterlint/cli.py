"""Command line interface: list the registered checks or run them against a cluster."""

from __future__ import annotations

import argparse
import dataclasses
import json
import os
import re
from typing import Iterable, Optional, Sequence

from termcolor import colored

# Imported for their side effect of registering the built-in checks.
from clusterlint.checks import noop as _noop  # noqa: F401
from clusterlint.checks.doks import dobs_pod_owner as _dobs_pod_owner  # noqa: F401
from clusterlint.checks.doks import node_labels_taints as _node_labels_taints  # noqa: F401
from clusterlint.checks.doks import node_name_pod_selector as _node_name  # noqa: F401
from clusterlint.checks.doks import webhook_replacement as _webhook_replacement  # noqa: F401
from clusterlint.checks.doks import webhook_timeout as _webhook_timeout  # noqa: F401
from clusterlint.checks.registry import (
    Check,
    Severity,
    contains,
    get,
    get_groups,
    list_checks,
)
from clusterlint.checks.run_checks import CheckResult, run
from clusterlint.checks.security import privileged_containers as _privileged  # noqa: F401
from clusterlint.checks.security import run_as_non_root as _non_root  # noqa: F401
from clusterlint.kube.object_filter import new_object_filter
from clusterlint.kube.objects import new_client
from clusterlint.kube.options import (
    in_cluster,
    with_kube_context,
    with_merged_config_files,
    with_timeout,
)

_KUBECONFIG_DELIMITER = ":"
_DEFAULT_TIMEOUT = 30.0

_COLORS = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.SUGGESTION: "blue",
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def _parse_duration(text: str) -> float:
    """Parse a duration such as "30s" or "1m30s" into seconds."""
    original = text
    text = text.strip()
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise argparse.ArgumentTypeError(f"invalid duration {original!r}")
    total = 0.0
    position = 0
    while position < len(text):
        found = _DURATION_PART.match(text, position)
        if found is None:
            raise argparse.ArgumentTypeError(f"invalid duration {original!r}")
        total += float(found.group(1)) * _DURATION_UNITS[found.group(2)]
        position = found.end()
    return sign * total


def _names(values: Optional[Iterable[str]]) -> list[str]:
    """Split comma separated values and drop surrounding whitespace."""
    return [
        part.strip()
        for value in values or ()
        for part in value.split(",")
        if part.strip()
    ]


def select_checks(
    groups: Optional[Iterable[str]],
    ignore_groups: Optional[Iterable[str]],
    include_checks: Optional[Iterable[str]],
    ignore_checks: Optional[Iterable[str]],
) -> list[Check]:
    """Pick the checks to run from group and check names, sorted by name.

    Named checks win over named groups; with neither, every registered check
    is taken. Checks in the ignored groups or named as ignored are dropped.
    Unknown check or group names raise CheckNotFoundError.
    """
    wanted_checks = _names(include_checks)
    wanted_groups = _names(groups)
    if wanted_checks:
        selected = [get(name) for name in wanted_checks]
    elif wanted_groups:
        selected = get_groups(wanted_groups)
    else:
        selected = list_checks()

    excluded = {check.name for check in get_groups(_names(ignore_groups))}
    ignored = list(ignore_checks or ())

    unique: dict[str, Check] = {}
    for check in selected:
        if check.name in excluded or contains(ignored, check.name):
            continue
        unique.setdefault(check.name, check)
    return [unique[name] for name in sorted(unique)]


def list_command(args: argparse.Namespace) -> None:
    """Print the name and description of each selected check."""
    for check in select_checks(args.groups, args.ignore_groups, None, None):
        print(f"{check.name} : {check.description}")


def _kubeconfig_paths(kubeconfig: Optional[str]) -> list[str]:
    if kubeconfig:
        return [kubeconfig]
    value = os.environ.get("KUBECONFIG", "")
    if value:
        return value.split(_KUBECONFIG_DELIMITER)
    return []


def run_command(args: argparse.Namespace) -> None:
    """Connect to the cluster, run the selected checks and print the result."""
    options = [
        with_merged_config_files(_kubeconfig_paths(args.kubeconfig)),
        with_kube_context(args.context or ""),
        with_timeout(args.timeout),
    ]
    if args.in_cluster:
        options.append(in_cluster())
    client = new_client(*options)

    checks = select_checks(args.groups, args.ignore_groups, args.checks, args.ignore_checks)
    object_filter = new_object_filter(args.namespace or "", args.ignore_namespace or "")
    result = run(client, checks, args.level or None, object_filter)
    write(result, args.output or "text", args.no_color)


def write(check_result: CheckResult, output: str, no_color: bool) -> None:
    """Print the result as JSON or as one, possibly coloured, line per diagnostic."""
    if output == "json":
        document = {
            "Diagnostics": [dataclasses.asdict(d) for d in check_result.diagnostics],
            "Durations": {
                name: round(seconds * 1e9)
                for name, seconds in check_result.durations.items()
            },
        }
        print(json.dumps(document))
        return

    for diagnostic in check_result.diagnostics:
        line = str(diagnostic)
        color = _COLORS.get(diagnostic.severity)
        if color is not None and not no_color:
            line = colored(line, color)
        print(line)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clusterlint", description="Linter for k8s objects from a live cluster"
    )
    parser.add_argument("--kubeconfig", help="absolute path to the kubeconfig file")
    parser.add_argument(
        "--context", help="context for the kubernetes client. default: current context"
    )
    parser.add_argument(
        "--timeout",
        type=_parse_duration,
        default=_DEFAULT_TIMEOUT,
        help="configure timeout for the kubernetes client. default: 30s",
    )
    parser.add_argument(
        "--in-cluster",
        action="store_true",
        help="Enable accessing the Kubernetes API from a Pod",
    )
    commands = parser.add_subparsers(dest="command")

    list_parser = commands.add_parser("list", help="list all checks in the registry")
    list_parser.add_argument(
        "-g", "--groups", action="append", default=[],
        help="list all checks in groups GROUP1, GROUP2",
    )
    list_parser.add_argument(
        "-G", "--ignore-groups", action="append", default=[],
        help="list all checks not in groups GROUP1, GROUP2",
    )
    list_parser.set_defaults(handler=list_command)

    run_parser = commands.add_parser("run", help="run all checks in the registry")
    run_parser.add_argument(
        "-g", "--groups", action="append", default=[],
        help="run all checks in groups GROUP1, GROUP2",
    )
    run_parser.add_argument(
        "-G", "--ignore-groups", action="append", default=[],
        help="run all checks not in groups GROUP1, GROUP2",
    )
    run_parser.add_argument(
        "-c", "--checks", action="append", default=[], help="run a specific check"
    )
    run_parser.add_argument(
        "-C", "--ignore-checks", action="append", default=[], help="skip a specific check"
    )
    run_parser.add_argument("-n", "--namespace", help="run checks in specific namespace")
    run_parser.add_argument(
        "-N", "--ignore-namespace", help="run checks not in specific namespace"
    )
    run_parser.add_argument(
        "-o", "--output", default="text", help="output format [text|json]. Default: text"
    )
    run_parser.add_argument(
        "-l", "--level",
        help="Filter output messages based on severity [error|warning|suggestion]. Default: all",
    )
    run_parser.add_argument("--no-color", action="store_true", help="Disable color output")
    run_parser.set_defaults(handler=run_command)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line tool and return its exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    try:
        args.handler(args)
    except Exception as exc:  # every failure is reported the same way
        print(f"failed: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())