"""Locations of build inputs and outputs inside the project tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from taperipper.xtask.utils import TargetType

_UEFI_TARGET = "x86_64-unknown-uefi"


def project_root() -> Path:
    """Return the directory that holds this package's source tree."""
    return Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class ProjectPaths:
    """All well-known paths, relative to one project root."""

    root: Path = field(default_factory=project_root)

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root))

    @property
    def target_dir(self) -> Path:
        return self.root / "target"

    @property
    def contrib_dir(self) -> Path:
        return self.root / "contrib"

    @property
    def efi_root(self) -> Path:
        return self.target_dir / "esp"

    @property
    def efi_boot_dir(self) -> Path:
        return self.efi_root / "EFI" / "boot"

    @property
    def ovmf_dir(self) -> Path:
        return self.target_dir / ".ovmf"

    @property
    def edk2_dir(self) -> Path:
        return self.target_dir / ".edk2.git"

    @property
    def ovmf_img_dir(self) -> Path:
        return self.ovmf_dir / "efi"

    @property
    def ovmf_esp(self) -> Path:
        return self.ovmf_dir / "esp"

    @property
    def ovmf_file_code(self) -> Path:
        return self.ovmf_dir / "OVMF_CODE.4m.fd"

    @property
    def ovmf_file_vars(self) -> Path:
        return self.ovmf_dir / "OVMF_VARS.4m.fd"

    @property
    def ovmf_gdb_prelude(self) -> Path:
        return self.ovmf_dir / "prelude.gdb"

    @property
    def target_debug(self) -> Path:
        return self.target_dir / _UEFI_TARGET / "debug"

    @property
    def target_release(self) -> Path:
        return self.target_dir / _UEFI_TARGET / "release"

    @property
    def uefi_vars(self) -> Path:
        return self.target_dir / "uefi-vars.json"

    def target_dir_for_type(self, target_type: TargetType) -> Path:
        """Return the build output directory for a build type."""
        if target_type is TargetType.RELEASE:
            return self.target_release
        return self.target_debug