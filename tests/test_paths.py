from pathlib import Path

from taperipper.xtask.paths import ProjectPaths, project_root
from taperipper.xtask.utils import TargetType


def test_project_root_holds_package():
    assert (project_root() / "taperipper" / "xtask" / "paths.py").is_file()


def test_default_root_is_project_root():
    assert ProjectPaths().root == project_root()


def test_target_layout(tmp_path):
    paths = ProjectPaths(tmp_path)
    assert paths.target_dir == tmp_path / "target"
    assert paths.contrib_dir == tmp_path / "contrib"
    assert paths.efi_root == tmp_path / "target" / "esp"
    assert paths.efi_boot_dir == tmp_path / "target" / "esp" / "EFI" / "boot"
    assert paths.uefi_vars == tmp_path / "target" / "uefi-vars.json"
    assert paths.edk2_dir == tmp_path / "target" / ".edk2.git"


def test_ovmf_layout(tmp_path):
    paths = ProjectPaths(tmp_path)
    ovmf = tmp_path / "target" / ".ovmf"
    assert paths.ovmf_dir == ovmf
    assert paths.ovmf_file_code == ovmf / "OVMF_CODE.4m.fd"
    assert paths.ovmf_file_vars == ovmf / "OVMF_VARS.4m.fd"
    assert paths.ovmf_gdb_prelude == ovmf / "prelude.gdb"
    assert paths.ovmf_esp == ovmf / "esp"
    assert paths.ovmf_img_dir == ovmf / "efi"


def test_target_dir_for_type(tmp_path):
    paths = ProjectPaths(tmp_path)
    base = tmp_path / "target" / "x86_64-unknown-uefi"
    assert paths.target_dir_for_type(TargetType.DEBUG) == base / "debug"
    assert paths.target_dir_for_type(TargetType.RELEASE) == base / "release"


def test_root_accepts_string(tmp_path):
    paths = ProjectPaths(str(tmp_path))
    assert paths.root == Path(tmp_path)
    assert paths.target_dir.parent == paths.root