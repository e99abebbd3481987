# taperipper

Support code for the Taperipper UEFI application, in two halves:

- **Console logging** (`taperipper.display`, `taperipper.log`): colours and
  text styles with scoped changes, log outputs that can be combined and
  filtered by level or predicate, a `ConsoleSubscriber` that writes spans and
  events with timestamps, coloured level labels, hard line wrapping and span
  indentation, and a `ConsoleHandler` that feeds standard `logging` records
  through it.
- **Developer tasks** (`taperipper.xtask`): building the OVMF firmware and its
  gdb symbol prelude, building the Taperipper EFI image and its `.gdbinit`,
  and running the image under QEMU.

It also has a reader for the section table of PE images
(`taperipper.xtask.pe`) and an unwind table that maps addresses to function
entries (`taperipper.debug.unwind`).

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

The developer tasks are reached through one command:

```
taperipper-xtask build [debug|release]
taperipper-xtask build-ovmf-fw
taperipper-xtask build-ovmf-dbg
taperipper-xtask build-taperipper [debug|release]
taperipper-xtask run-qemu [debug|release] --cores 4
taperipper-xtask uefi-shell
```

- `build-ovmf-fw` does nothing when `target/.ovmf/OVMF_CODE.4m.fd` exists.
  Otherwise it clones EDK II (when `target/.edk2.git` is missing), checks out
  `edk2-stable202408.01`, builds the base tools and OVMF, and copies the
  firmware files and module images into `target/.ovmf`. Cloning needs the
  repository location in the `EDK2_REPO` environment variable.
- `build-ovmf-dbg` runs `build-ovmf-fw`, boots the firmware once in QEMU to
  record which modules it loads, and writes `target/.ovmf/prelude.gdb` with an
  `add-symbol-file` line for each module. It does nothing when the prelude
  already exists.
- `build-taperipper` runs `cargo build` for the image and writes
  `target/.gdbinit`, which sources the prelude, loads the image's symbols at
  the firmware's usual load address and attaches to `127.0.0.1:1234`.
- `build` runs `build-ovmf-dbg`, then `build-taperipper`.
- `run-qemu` runs both builds, copies the image to
  `target/esp/EFI/boot/BOOTx64.efi` when it is newer, creates or rewrites the
  UEFI variable store `target/uefi-vars.json`, and starts QEMU with the given
  number of cores (default 4).
- `uefi-shell` starts QEMU with the firmware only.

The target type defaults to `debug`. The emulator, shell, `make` and `cargo`
come from the `QEMU`, `SHELL`, `MAKE` and `CARGO` environment variables;
otherwise `qemu-system-x86_64`, `sh`, `make` and `cargo` are used. The log
level comes from `TAPERIPPER_XTASK_LOG_LEVEL` (`trace`, `debug`, `info`,
`warn`, `error` or `off`; default `info`). The command exits with status 1
when no task is given or a task fails.

## Library use

```python
import logging

from taperipper.display.formatting import Color, to_rgb
from taperipper.log.tracer import ConsoleHandler, ConsoleSubscriber
from taperipper.log.writer import DebugconOutput, Level, WithMaxLevel
from taperipper.xtask.utils import from_hex

to_rgb(Color.RED)       # Rgb(r=235, g=111, b=146)
from_hex("0x5E7D000")   # 99078144

# Send log records, wrapped and labelled, to standard error as UTF-8.
subscriber = ConsoleSubscriber(WithMaxLevel(DebugconOutput(), Level.INFO))
logger = logging.getLogger("demo")
logger.addHandler(ConsoleHandler(subscriber))
logger.warning("disk %s missing", "sda", extra={"fields": {"retries": 3}})
```

`UefiVars` in `taperipper.xtask.qemu` loads and saves the emulator's variable
store as JSON; `parse_sections` and `find_section` in `taperipper.xtask.pe`
read section names and addresses from PE image bytes; `build_unwind_table`
builds an `UnwindTable` from function records and a symbol map, and
`UnwindTable.lookup` finds the entry holding an address.

## What it does not do

This package does not contain the boot application itself: there is no
framebuffer drawing, no firmware text-console output, no task scheduler and no
panic handling. The unwind table is built from function records that the
caller supplies; the package does not read unwind data or symbols out of an
image, and it does not walk a stack. The PE reader reads only the section
table.