"""Building the boot image and writing a debugger script for it."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from taperipper.xtask.paths import ProjectPaths
from taperipper.xtask.pe import find_section, parse_sections
from taperipper.xtask.utils import TargetType, XtaskError

_log = logging.getLogger(__name__)

# The firmware has always loaded the image here, so debugging bets on it.
LOAD_ADDRESS = 0x00005E7D000
GDB_REMOTE = "127.0.0.1:1234"


def render_gdbinit(
    prelude: os.PathLike | str,
    image: os.PathLike | str,
    text_addr: int,
    data_addr: int,
    rdata_addr: int,
) -> str:
    """Return a gdb script that loads symbols and attaches to the emulator."""
    return (
        f"source {prelude}\n"
        f"add-symbol-file {image} -s .text {text_addr:#018x}"
        f" -s .data {data_addr:#018x} -s .rdata {rdata_addr:#018x}\n"
        f"tar remote {GDB_REMOTE}\n"
    )


def build_taperipper(paths: ProjectPaths, target_type: TargetType) -> Path:
    """Build the boot image, then write target/.gdbinit; return its path."""
    cargo = os.environ.get("CARGO", "cargo")
    _log.info("Building taperipper UEFI image")

    config = paths.root / "taperipper" / ".cargo" / "config.toml"
    result = subprocess.run(
        [
            cargo,
            "build",
            "--bin",
            "taperipper",
            "--config",
            str(config),
            "--profile",
            target_type.cargo_profile,
        ],
        cwd=paths.root,
    )
    if result.returncode != 0:
        raise XtaskError("Unable to build taperipper")

    _log.info("Done...")

    efi_img = paths.target_dir_for_type(target_type) / "taperipper.efi"
    sections = parse_sections(efi_img.read_bytes())
    text = find_section(sections, ".text")
    data = find_section(sections, ".data")
    rdata = find_section(sections, ".rdata")

    text_rebase = text.virtual_address + LOAD_ADDRESS
    data_rebase = data.virtual_address + LOAD_ADDRESS
    rdata_rebase = rdata.virtual_address + LOAD_ADDRESS
    _log.debug("Rebased .text load addr from %#018x to %#018x", text.virtual_address, text_rebase)
    _log.debug("Rebased .data load addr from %#018x to %#018x", data.virtual_address, data_rebase)
    _log.debug(
        "Rebased .rdata load addr from %#018x to %#018x", rdata.virtual_address, rdata_rebase
    )

    gdbinit = paths.target_dir / ".gdbinit"
    gdbinit.write_text(
        render_gdbinit(paths.ovmf_gdb_prelude, efi_img, text_rebase, data_rebase, rdata_rebase)
    )
    return gdbinit