"""Firmware variable store and running the boot image in QEMU."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import uuid
from dataclasses import dataclass, field
from typing import Any

from taperipper.xtask.build import build_taperipper
from taperipper.xtask.ovmf import build_debug_maps
from taperipper.xtask.paths import ProjectPaths
from taperipper.xtask.utils import TargetType, XtaskError, copy_if_newer, qemu_command

_log = logging.getLogger(__name__)

_U32_MAX = (1 << 32) - 1

TAPERIPPER_UUID = uuid.UUID(
    bytes=bytes(
        [0x8B, 0xE4, 0xDF, 0x61, 0x93, 0xCA, 0x11, 0xD2,
         0xAA, 0x0D, 0x00, 0xE0, 0x98, 0x03, 0x2B, 0x8C]
    )
)


def _u32(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U32_MAX:
        raise ValueError(f"{what} must be an unsigned 32-bit integer")
    return value


def _string(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{what} must be a string")
    return value


@dataclass
class UefiVar:
    """One firmware variable as stored in the emulator's JSON file."""

    name: str
    guid: uuid.UUID
    attr: int
    data: str

    def to_dict(self) -> dict:
        return {"name": self.name, "guid": str(self.guid), "attr": self.attr, "data": self.data}

    @classmethod
    def from_dict(cls, raw: Any) -> "UefiVar":
        if not isinstance(raw, dict):
            raise ValueError("variable must be an object")
        missing = {"name", "guid", "attr", "data"} - raw.keys()
        if missing:
            raise ValueError(f"variable is missing {sorted(missing)}")
        return cls(
            name=_string(raw["name"], "name"),
            guid=uuid.UUID(_string(raw["guid"], "guid")),
            attr=_u32(raw["attr"], "attr"),
            data=_string(raw["data"], "data"),
        )


@dataclass
class UefiVars:
    """The emulator's firmware variable store."""

    version: int = 0
    variables: list[UefiVar] = field(default_factory=list)

    def to_json(self) -> str:
        document = {
            "version": self.version,
            "variables": [var.to_dict() for var in self.variables],
        }
        return json.dumps(document, separators=(",", ":"))

    @staticmethod
    def from_json(text: str) -> "UefiVars":
        raw = json.loads(text)
        if not isinstance(raw, dict):
            raise ValueError("variable store must be an object")
        if "version" not in raw or "variables" not in raw:
            raise ValueError("variable store needs 'version' and 'variables'")
        variables = raw["variables"]
        if not isinstance(variables, list):
            raise ValueError("variables must be a list")
        return UefiVars(
            version=_u32(raw["version"], "version"),
            variables=[UefiVar.from_dict(var) for var in variables],
        )

    @staticmethod
    def load(path: os.PathLike | str) -> "UefiVars":
        with open(path, encoding="utf-8") as store:
            return UefiVars.from_json(store.read())

    def save(self, path: os.PathLike | str) -> None:
        with open(path, "w", encoding="utf-8") as store:
            store.write(self.to_json())


def run_qemu(paths: ProjectPaths, target_type: TargetType, cores: int = 4) -> None:
    """Build everything, stage the boot image and start it in QEMU."""
    build_debug_maps(paths)
    build_taperipper(paths, target_type)

    if not paths.efi_boot_dir.exists():
        _log.debug("EFI boot directory does not exist, creating")
        paths.efi_boot_dir.mkdir(parents=True, exist_ok=True)

    if not paths.uefi_vars.exists():
        _log.debug("UEFI Variables don't exist, creating default")
        store = UefiVars()
    else:
        _log.debug("Reading UEFI Variables")
        store = UefiVars.load(paths.uefi_vars)

    boot_img = paths.efi_boot_dir / "BOOTx64.efi"
    copy_if_newer(paths.target_dir_for_type(target_type) / "taperipper.efi", boot_img)

    store.save(paths.uefi_vars)

    command = qemu_command(paths, paths.efi_root) + [
        "-enable-kvm",
        "-debugcon",
        "stdio",
        "-smp",
        str(cores),
    ]
    if subprocess.run(command, cwd=paths.ovmf_dir).returncode != 0:
        raise XtaskError("QEMU Exited with an error condition!")


def run_shell(paths: ProjectPaths) -> None:
    """Start QEMU with the firmware only, dropping into its shell."""
    if subprocess.run(qemu_command(paths, None), cwd=paths.ovmf_dir).returncode != 0:
        raise XtaskError("QEMU Exited with an error condition!")