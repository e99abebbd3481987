"""Filesystem helpers, hex parsing and the common QEMU command line."""

from __future__ import annotations

import logging
import os
import re
import shutil
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional, Union

if TYPE_CHECKING:
    from taperipper.xtask.paths import ProjectPaths

_log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_HEX_DIGITS = re.compile(r"\+?[0-9a-fA-F]+")
_U64_MAX = (1 << 64) - 1


class XtaskError(Exception):
    """A build task failed."""


class TargetType(Enum):
    """Which build profile to use."""

    RELEASE = "release"
    DEBUG = "debug"

    @classmethod
    def from_arg(cls, value: Optional[str]) -> "TargetType":
        """'release' selects a release build; anything else is debug."""
        return cls.RELEASE if value == "release" else cls.DEBUG

    @property
    def cargo_profile(self) -> str:
        return "release" if self is TargetType.RELEASE else "dev"


def from_hex(text: str) -> int:
    """Parse an unsigned 64-bit hex number, with or without a 0x prefix."""
    if text.startswith("0x"):
        digits = text[2:]
    elif text.startswith("0X"):
        digits = text[2:]
    else:
        digits = text
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"invalid hex number: {text!r}")
    value = int(digits, 16)
    if value > _U64_MAX:
        raise ValueError(f"hex number too large: {text!r}")
    return value


def filter_dir(path: PathLike, suffix: str) -> Iterator[Path]:
    """Yield the entries of a directory whose extension equals suffix."""
    _log.debug("Iterating dir %r and filtering for %s", path, suffix)
    entries = list(Path(path).iterdir())
    return (entry for entry in entries if entry.suffix and entry.suffix[1:] == suffix)


def need_dir(path: PathLike) -> bool:
    """Ensure a directory exists; return whether it already did."""
    target = Path(path)
    if not target.exists():
        _log.debug("Path %r does not exist, creating...", path)
        target.mkdir(parents=True, exist_ok=True)
        return False
    return True


def is_newer(source: PathLike, target: PathLike) -> bool:
    """Whether source was modified after target, or target is missing."""
    source_path, target_path = Path(source), Path(target)
    if not source_path.exists():
        raise XtaskError("Source file does not exist!")
    if not target_path.exists():
        _log.debug("%r does not exist, source is newer", target)
        return True
    source_mtime = source_path.stat().st_mtime_ns
    target_mtime = target_path.stat().st_mtime_ns
    _log.debug("%r age %d", source, source_mtime)
    _log.debug("%r age %d", target, target_mtime)
    return source_mtime > target_mtime


def copy_if_newer(source: PathLike, target: PathLike) -> None:
    """Copy source over target when source is newer."""
    if is_newer(source, target):
        _log.debug("Copying %r to %r", source, target)
        shutil.copy(source, target)


def copy_if_missing(source: PathLike, target: PathLike) -> None:
    """Copy source to target only when target does not exist."""
    if not Path(target).exists():
        _log.debug("Copying %r to %r", source, target)
        shutil.copy(source, target)


def qemu_command(paths: "ProjectPaths", efi_root: Optional[PathLike] = None) -> list[str]:
    """Build the QEMU argument list shared by every run."""
    command = [
        os.environ.get("QEMU", "qemu-system-x86_64"),
        "-drive",
        f"if=pflash,format=raw,readonly=on,file={paths.ovmf_file_code}",
        "-drive",
        f"if=pflash,format=raw,readonly=on,file={paths.ovmf_file_vars}",
        "-device",
        f"uefi-vars-x64,jsonfile={paths.uefi_vars}",
    ]
    if efi_root is not None:
        command += ["-drive", f"format=raw,file=fat:rw:{efi_root}"]
    return command