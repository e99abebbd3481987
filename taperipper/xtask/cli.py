"""Command line for the project's build and run tasks."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Callable, Optional, Sequence

from taperipper.xtask.build import build_taperipper
from taperipper.xtask.ovmf import build_debug_maps, build_firmware
from taperipper.xtask.paths import ProjectPaths
from taperipper.xtask.pe import PEError
from taperipper.xtask.qemu import run_qemu, run_shell
from taperipper.xtask.utils import TargetType, XtaskError

_log = logging.getLogger(__name__)

LOG_LEVEL_ENV = "TAPERIPPER_XTASK_LOG_LEVEL"

_LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 1,
}


def _add_target_type(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "target_type",
        nargs="?",
        choices=["debug", "release"],
        default="debug",
        metavar="TARGET_TYPE",
    )


def build_parser() -> argparse.ArgumentParser:
    """Return the parser with one sub-command per task."""
    parser = argparse.ArgumentParser(prog="taperipper-xtask")
    commands = parser.add_subparsers(dest="command")

    _add_target_type(commands.add_parser("build"))
    commands.add_parser("build-ovmf-fw", help="Build the EDK2 OVMF Firmware")
    commands.add_parser("build-ovmf-dbg", help="Build the EDK2 OVMF Debug maps")

    run = commands.add_parser("run-qemu", help="Run Taperipper in QEMU")
    run.add_argument(
        "-c",
        "--cores",
        type=int,
        default=4,
        metavar="CORES",
        help="Number of CPU cores to use",
    )
    _add_target_type(run)

    commands.add_parser("uefi-shell")
    _add_target_type(
        commands.add_parser("build-taperipper", help="Build the Taperipper UEFI image")
    )
    return parser


def _target(args: argparse.Namespace) -> TargetType:
    return TargetType.from_arg(getattr(args, "target_type", None))


def _build(args: argparse.Namespace, paths: ProjectPaths) -> None:
    build_debug_maps(paths)
    build_taperipper(paths, _target(args))


_COMMANDS: dict[str, Callable[[argparse.Namespace, ProjectPaths], None]] = {
    "build": _build,
    "build-ovmf-fw": lambda args, paths: build_firmware(paths),
    "build-ovmf-dbg": lambda args, paths: build_debug_maps(paths),
    "run-qemu": lambda args, paths: run_qemu(paths, _target(args), getattr(args, "cores", 2)),
    "uefi-shell": lambda args, paths: run_shell(paths),
    "build-taperipper": lambda args, paths: build_taperipper(paths, _target(args)),
}


def run_command(name: str, args: argparse.Namespace, paths: ProjectPaths) -> None:
    """Run the task called name."""
    try:
        task = _COMMANDS[name]
    except KeyError:
        raise XtaskError(f"Unimplemented subcommand '{name}'") from None
    task(args, paths)


def _setup_logging() -> None:
    wanted = os.environ.get(LOG_LEVEL_ENV, "").strip().lower()
    logging.basicConfig(level=_LOG_LEVELS.get(wanted, logging.INFO))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse the command line and run the chosen task."""
    _setup_logging()
    args = build_parser().parse_args(argv)

    if args.command is None:
        _log.error("Unable to find command!")
        return 1

    try:
        run_command(args.command, args, ProjectPaths())
    except (XtaskError, PEError, OSError, ValueError) as err:
        _log.error("Command Failed!")
        _log.error("%s", err)
        return 1
    return 0