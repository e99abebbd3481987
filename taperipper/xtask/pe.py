"""Reading the section table of a PE image."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable

_DOS_MAGIC = b"MZ"
_PE_SIGNATURE = b"PE\0\0"
_LFANEW_OFFSET = 0x3C
_COFF = struct.Struct("<HHIIIHH")
_SECTION = struct.Struct("<8sIIIIIIHHI")


class PEError(Exception):
    """The image is not a readable PE file or lacks a section."""


@dataclass(frozen=True)
class Section:
    """One entry of the PE section table."""

    name: str
    virtual_size: int
    virtual_address: int
    raw_size: int
    raw_offset: int
    characteristics: int


def _unpack(layout: struct.Struct, data: bytes, offset: int, what: str) -> tuple:
    if offset < 0 or offset + layout.size > len(data):
        raise PEError(f"truncated {what}")
    return layout.unpack_from(data, offset)


def parse_sections(data: bytes) -> list[Section]:
    """Return the sections of a PE image, in table order."""
    if data[:2] != _DOS_MAGIC:
        raise PEError("missing DOS header")
    (pe_offset,) = _unpack(struct.Struct("<I"), data, _LFANEW_OFFSET, "DOS header")
    if data[pe_offset : pe_offset + 4] != _PE_SIGNATURE:
        raise PEError("missing PE signature")

    coff_offset = pe_offset + len(_PE_SIGNATURE)
    _machine, count, _stamp, _symtab, _nsyms, opt_size, _chars = _unpack(
        _COFF, data, coff_offset, "COFF header"
    )

    table = coff_offset + _COFF.size + opt_size
    sections = []
    for position in range(count):
        raw_name, vsize, vaddr, rsize, roffset, _r, _l, _nr, _nl, chars = _unpack(
            _SECTION, data, table + position * _SECTION.size, "section table"
        )
        try:
            name = raw_name.rstrip(b"\0").decode("utf-8")
        except UnicodeDecodeError:
            raise PEError(f"unreadable section name {raw_name!r}") from None
        sections.append(Section(name, vsize, vaddr, rsize, roffset, chars))
    return sections


def find_section(sections: Iterable[Section], name: str) -> Section:
    """Return the first section called name."""
    for section in sections:
        if section.name == name:
            return section
    raise PEError(f"No {name} section!")