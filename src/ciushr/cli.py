"""Command line entry points for the ciushr invoice tools."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from .commands import build, info, parse, roundtrip, validate
from .config import get_settings
from .errors import ConfigError

CommandCallable = Callable[[Sequence[str] | None], int | None]

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class CommandSpec:
    """Metadata describing a CLI command exposed by :mod:`ciushr.cli`."""

    name: str
    summary: str
    handler: CommandCallable
    module: str

    def run(self, argv: Sequence[str] | None) -> int:
        """Execute the command and normalise the resulting exit code."""

        try:
            result = self.handler(argv)
        except SystemExit as exc:  # argparse reports usage errors this way
            code = exc.code
            if code is None:
                return 0
            if isinstance(code, int):
                return code
            print(str(code), file=sys.stderr)
            return 2
        if result is None:
            return 0
        return int(result)


_COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec(
        name="validate",
        summary="Validate JSON invoice descriptions, optionally writing an Excel report.",
        handler=validate.main,
        module="ciushr.commands.validate",
    ),
    CommandSpec(
        name="build",
        summary="Generate a UBL 2.1 invoice (Croatian CIUS-2025) from JSON input.",
        handler=build.main,
        module="ciushr.commands.build",
    ),
    CommandSpec(
        name="parse",
        summary="Extract invoice data from a UBL document as JSON.",
        handler=parse.main,
        module="ciushr.commands.parse",
    ),
    CommandSpec(
        name="roundtrip",
        summary="Build and re-parse an invoice, reporting any lost fields.",
        handler=roundtrip.main,
        module="ciushr.commands.roundtrip",
    ),
    CommandSpec(
        name="info",
        summary="Show the supported profile and features.",
        handler=info.main,
        module="ciushr.commands.info",
    ),
)

_COMMAND_INDEX: Mapping[str, CommandSpec] = {spec.name: spec for spec in _COMMANDS}


def available_commands() -> Iterable[CommandSpec]:
    """Return the commands registered in the CLI."""

    return _COMMANDS


def build_parser() -> argparse.ArgumentParser:
    """Return the base argument parser shared across commands."""

    parser = argparse.ArgumentParser(
        prog="ciushr", description="Croatian CIUS-2025 e-invoice tools"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v for INFO, -vv for DEBUG)",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True

    for spec in _COMMANDS:
        subparser = subparsers.add_parser(
            spec.name,
            help=spec.summary,
            description=spec.summary,
            add_help=False,
        )
        subparser.add_argument("args", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)

    return parser


def configure_logging(verbosity: int) -> None:
    """Configure the root logger from ``-v`` flags or the ``log_level`` setting."""

    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = getattr(logging, get_settings().log_level)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _normalise_args(namespace: argparse.Namespace) -> tuple[str, list[str]]:
    command = getattr(namespace, "command")
    remainder = getattr(namespace, "args", [])
    return command, list(remainder)


def run(command: str, argv: Sequence[str] | None = None) -> int:
    """Execute *command* forwarding ``argv`` to the underlying handler."""

    spec = _COMMAND_INDEX.get(command)
    if spec is None:
        raise ValueError(f"Unknown command: {command}")
    return spec.run(list(argv or []))


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the command line interface."""

    parser = build_parser()
    try:
        namespace, extras = parser.parse_known_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 2
    command, remainder = _normalise_args(namespace)

    try:
        configure_logging(namespace.verbose)
    except ConfigError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2

    forwarded = remainder + extras
    if forwarded and forwarded[0] in {"-h", "--help"}:
        # Ask the command itself for its detailed help.
        return run(command, ["--help"])

    try:
        return run(command, forwarded)
    except ConfigError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2


__all__ = [
    "CommandSpec",
    "available_commands",
    "build_parser",
    "configure_logging",
    "run",
    "main",
]


if __name__ == "__main__":  # pragma: no cover - direct execution
    raise SystemExit(main())
