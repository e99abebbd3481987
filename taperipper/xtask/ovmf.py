"""Building the OVMF firmware and the gdb symbol prelude for its modules."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from taperipper.xtask.paths import ProjectPaths
from taperipper.xtask.pe import PEError, find_section, parse_sections
from taperipper.xtask.utils import (
    XtaskError,
    copy_if_missing,
    copy_if_newer,
    filter_dir,
    from_hex,
    need_dir,
    qemu_command,
)

_log = logging.getLogger(__name__)

EDKII_TAG = "edk2-stable202408.01"
EDKII_REPO_ENV = "EDK2_REPO"

BUILD_ARGS = (
    "-DFD_SIZE_4MB",
    "-DNETWORK_HTTP_BOOT_ENABLED",
    "-DNETWORK_IP6_ENABLE",
    "-DTPM_CONFIG_ENABLE",
    "-DTPM_ENABLE",
    "-DTPM1_ENABLE",
    "-DTPM2_ENABLE",
)


def _ovmf_build_dir(paths: ProjectPaths) -> Path:
    return paths.edk2_dir / "Build" / "OvmfX64" / "DEBUG_GCC"


def _run(
    command: Sequence[str],
    cwd: Path,
    error: str,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    result = subprocess.run(list(command), cwd=cwd, env=env)
    if result.returncode != 0:
        raise XtaskError(error)


def parse_loaded_images(lines: Iterable[str]) -> Iterator[Tuple[str, int]]:
    """Yield (image name, address) for each 'Loading ... X.efi' log line."""
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not (line.startswith("Loading") and line.endswith(".efi")):
            continue
        parts = line.rsplit(" ", 2)
        if len(parts) < 2:
            raise XtaskError(f"malformed image line: {line!r}")
        efi_img = parts[-1]
        address_field = parts[-2].split("=")
        if len(address_field) < 2:
            raise XtaskError(f"malformed image line: {line!r}")
        yield efi_img, from_hex(address_field[1])


def gdb_prelude_line(debug_path: os.PathLike | str, text_addr: int, data_addr: int) -> str:
    """Return the gdb command that loads one module's symbols."""
    return (
        f"add-symbol-file {debug_path} -s .text {text_addr:#018x}"
        f" -s .date {data_addr:#018x}\n"
    )


def _clone_edk2(paths: ProjectPaths, make: str) -> None:
    repo = os.environ.get(EDKII_REPO_ENV)
    if not repo:
        raise XtaskError(f"{EDKII_REPO_ENV} is not set; cannot clone EDK II")

    _log.info("Cloning EDK II Repo")
    _run(["git", "clone", repo, str(paths.edk2_dir)], paths.target_dir, "Unable to clone EDK II")

    _log.info("Checking out tag %s", EDKII_TAG)
    _run(["git", "checkout", EDKII_TAG], paths.edk2_dir, f"Unable to check out {EDKII_TAG}")

    _log.info("Initializing submodules")
    _run(
        ["git", "submodule", "update", "--init"],
        paths.edk2_dir,
        "Unable to update submodules",
    )

    _log.info("Building base tools")
    _run(
        [make, "-C", "BaseTools"],
        paths.edk2_dir,
        "Unable to build OVMF",
        env={**os.environ, "CC": "gcc-13"},
    )


def build_firmware(paths: ProjectPaths) -> None:
    """Fetch and build the OVMF firmware unless it is already in place."""
    build_dir = _ovmf_build_dir(paths)
    build_fv = build_dir / "FV"

    if paths.ovmf_file_code.exists():
        _log.info("%s exists, don't need to build OVMF", paths.ovmf_file_code)
        return

    need_dir(paths.ovmf_img_dir)

    shell = os.environ.get("SHELL", "sh")
    make = os.environ.get("MAKE", "make")

    if not paths.edk2_dir.exists():
        _clone_edk2(paths, make)

    _log.info("EDK II checked out...")

    if not (build_fv / "OVMF_CODE.fd").exists():
        _log.info("OVMF_CODE not found, building...")
        script = (
            "source edksetup.sh && BaseTools/BinWrappers/PosixLike/build "
            "-p OvmfPkg/OvmfPkgX64.dsc -a X64 -b DEBUG -t GCC " + " ".join(BUILD_ARGS)
        )
        _run([shell, "-c", script], paths.edk2_dir, "Unable to build OVMF")

    _log.info("OVMF built...")

    _log.info("Copying OVMF_CODE and OVMF_VARS to %s if needed", paths.ovmf_dir)
    copy_if_newer(build_fv / "OVMF_CODE.fd", paths.ovmf_file_code)
    copy_if_newer(build_fv / "OVMF_VARS.fd", paths.ovmf_file_vars)

    _log.info("Copying OVMF Debug symbols and binaries if needed")
    for suffix in ("efi", "debug"):
        for img in filter_dir(build_dir / "X64", suffix):
            target = paths.ovmf_img_dir / img.name
            _log.debug("Copying %s to %s", img.name, target)
            copy_if_missing(img, target)

    _log.info("OVMF setup completed")


def _read_log_lines(path: Path) -> Iterator[str]:
    with path.open("rb") as log_file:
        for raw in log_file:
            try:
                yield raw.decode("utf-8")
            except UnicodeDecodeError:
                continue


def build_debug_maps(paths: ProjectPaths) -> None:
    """Write a gdb prelude that loads symbols for every firmware module."""
    build_firmware(paths)

    debug_log = paths.ovmf_dir / "qemu.log"

    if paths.ovmf_gdb_prelude.exists():
        _log.info("OVMF GDB Debug script prelude exists, no need to regen")
        return

    if not need_dir(paths.ovmf_esp):
        (paths.ovmf_esp / "startup.nsh").write_text("reset -s")

    if not debug_log.exists():
        _log.info("OVMF Debug log does not exist, generating")
        command = qemu_command(paths, paths.ovmf_esp) + [
            "-enable-kvm",
            "-debugcon",
            f"file:{debug_log}",
            "-global",
            "isa-debugcon.iobase=0x402",
        ]
        _run(command, paths.ovmf_dir, "Unable to generate OVMF startup debug logs")

    _log.info("Getting loaded EFI modules")

    with paths.ovmf_gdb_prelude.open("w") as prelude:
        for efi_img, load_addr in parse_loaded_images(_read_log_lines(debug_log)):
            _log.debug("Found EFI Image %s loaded at %#018x", efi_img, load_addr)

            img_path = paths.ovmf_img_dir / efi_img
            dbg_path = img_path.with_suffix(".debug")

            if not img_path.exists():
                _log.warning("OVMF Image %s wasn't found?", img_path)
                continue
            if not dbg_path.exists():
                _log.warning("debug info for OVMF Image %s wasn't found?", img_path)
                continue

            try:
                sections = parse_sections(img_path.read_bytes())
            except PEError as err:
                _log.warning("Skipping %s, unable to read PE file.", img_path)
                _log.warning("Parse Error: %s", err)
                continue

            text = find_section(sections, ".text")
            data = find_section(sections, ".data")

            text_rebase = text.virtual_address + load_addr
            data_rebase = data.virtual_address + load_addr
            _log.debug(
                "Rebased .text load addr from %#018x to %#018x",
                text.virtual_address,
                text_rebase,
            )
            _log.debug(
                "Rebased .data load addr from %#018x to %#018x",
                data.virtual_address,
                data_rebase,
            )
            prelude.write(gdb_prelude_line(dbg_path, text_rebase, data_rebase))

    _log.info("Done writing OVMF GDB prelude")