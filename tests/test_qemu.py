import json
import struct
import subprocess
import uuid
from unittest.mock import patch

import pytest

from taperipper.xtask.paths import ProjectPaths
from taperipper.xtask.qemu import TAPERIPPER_UUID, UefiVar, UefiVars, run_qemu, run_shell
from taperipper.xtask.utils import TargetType, XtaskError


def _pe(sections):
    header = bytearray(0x40)
    header[0:2] = b"MZ"
    struct.pack_into("<I", header, 0x3C, 0x40)
    coff = struct.pack("<HHIIIHH", 0x8664, len(sections), 0, 0, 0, 0, 0)
    table = b"".join(
        struct.pack("<8sIIIIIIHHI", name.encode(), 0x100, vaddr, 0, 0, 0, 0, 0, 0, 0)
        for name, vaddr in sections
    )
    return bytes(header) + b"PE\0\0" + coff + table


def test_default_store_json():
    assert UefiVars().to_json() == '{"version":0,"variables":[]}'


def test_store_round_trip_with_global_guid():
    store = UefiVars(
        version=2,
        variables=[UefiVar("TAPERIPPER_LOG_LEVEL", TAPERIPPER_UUID, 0x07, "4465627567")],
    )
    text = store.to_json()
    assert json.loads(text)["variables"][0]["guid"] == "8be4df61-93ca-11d2-aa0d-00e098032b8c"
    assert UefiVars.from_json(text) == store


def test_save_and_load(tmp_path):
    path = tmp_path / "vars.json"
    store = UefiVars(variables=[UefiVar("A", uuid.UUID(int=5), 1, "00")])
    store.save(path)
    assert UefiVars.load(path) == store


@pytest.mark.parametrize(
    "text",
    [
        '{"version":0}',
        '{"version":-1,"variables":[]}',
        '{"version":0,"variables":[{"name":"A","guid":"nope","attr":1,"data":""}]}',
        '{"version":0,"variables":[{"name":"A","attr":1,"data":""}]}',
        "[]",
        "not json",
    ],
)
def test_from_json_rejects_bad_input(text):
    with pytest.raises(ValueError):
        UefiVars.from_json(text)


def test_run_shell_success(tmp_path, monkeypatch):
    monkeypatch.setenv("QEMU", "qemu-test")
    paths = ProjectPaths(tmp_path)
    with patch("subprocess.run", return_value=subprocess.CompletedProcess([], 0)) as run:
        run_shell(paths)
    command = run.call_args[0][0]
    assert command[0] == "qemu-test"
    assert run.call_args[1]["cwd"] == paths.ovmf_dir
    assert not any(arg.startswith("format=raw,file=fat") for arg in command)


def test_run_shell_failure(tmp_path):
    with patch("subprocess.run", return_value=subprocess.CompletedProcess([], 1)):
        with pytest.raises(XtaskError):
            run_shell(ProjectPaths(tmp_path))


def test_run_qemu_stages_image_and_runs(tmp_path, monkeypatch):
    monkeypatch.setenv("QEMU", "qemu-test")
    monkeypatch.setenv("CARGO", "cargo-test")
    paths = ProjectPaths(tmp_path)
    paths.ovmf_dir.mkdir(parents=True)
    paths.ovmf_file_code.write_bytes(b"code")
    paths.ovmf_gdb_prelude.write_text("")
    paths.target_debug.mkdir(parents=True)
    image = _pe([(".text", 0x1000), (".data", 0x2000), (".rdata", 0x3000)])
    (paths.target_debug / "taperipper.efi").write_bytes(image)

    with patch("subprocess.run", return_value=subprocess.CompletedProcess([], 0)) as run:
        run_qemu(paths, TargetType.DEBUG, cores=2)

    assert (paths.efi_boot_dir / "BOOTx64.efi").read_bytes() == image
    assert UefiVars.load(paths.uefi_vars) == UefiVars()
    command = run.call_args[0][0]
    assert command[0] == "qemu-test"
    assert command[-2:] == ["-smp", "2"]
    assert f"format=raw,file=fat:rw:{paths.efi_root}" in command


def test_run_qemu_keeps_existing_vars(tmp_path, monkeypatch):
    monkeypatch.setenv("QEMU", "qemu-test")
    paths = ProjectPaths(tmp_path)
    paths.ovmf_dir.mkdir(parents=True)
    paths.ovmf_file_code.write_bytes(b"code")
    paths.ovmf_gdb_prelude.write_text("")
    paths.target_release.mkdir(parents=True)
    (paths.target_release / "taperipper.efi").write_bytes(
        _pe([(".text", 0x1000), (".data", 0x2000), (".rdata", 0x3000)])
    )
    store = UefiVars(version=1, variables=[UefiVar("X", uuid.UUID(int=9), 3, "01")])
    store.save(paths.uefi_vars)

    with patch("subprocess.run", return_value=subprocess.CompletedProcess([], 4)):
        with pytest.raises(XtaskError):
            run_qemu(paths, TargetType.RELEASE)

    assert UefiVars.load(paths.uefi_vars) == store