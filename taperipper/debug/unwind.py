"""Unwind table entries for an image and address lookup over them."""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

_log = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class UnwindEntry:
    """The address range of one function and its unwind codes."""

    start: int
    end: int
    prolog: int = 0
    codes: tuple = field(default_factory=tuple)
    name: Optional[str] = None

    def relocate(self, base: int) -> "UnwindEntry":
        """Return a copy with the range shifted by base."""
        return replace(self, start=self.start + base, end=self.end + base)

    def contains(self, addr: int) -> bool:
        return self.start <= addr < self.end

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnwindEntry):
            return NotImplemented
        return self.start == other.start and self.end == other.end

    def __hash__(self) -> int:
        return hash((self.start, self.end))

    def __lt__(self, other: "UnwindEntry") -> bool:
        return self.end <= other.start

    def __gt__(self, other: "UnwindEntry") -> bool:
        return other.end <= self.start

    def __le__(self, other: "UnwindEntry") -> bool:
        return self < other or self == other

    def __ge__(self, other: "UnwindEntry") -> bool:
        return self > other or self == other

    def __str__(self) -> str:
        label = self.name if self.name is not None else "<UNNAMED>"
        return f"{label} {self.start:#018x}-{self.end:#018x}\n"

    def __repr__(self) -> str:
        return (
            f"UnwindEntry(start={self.start:#018x}, end={self.end:#018x}, "
            f"prolog={self.prolog}, codes={list(self.codes)!r}, name={self.name!r})"
        )


class UnwindTable:
    """Unwind entries kept sorted by address."""

    def __init__(self, entries: Iterable[UnwindEntry] = ()) -> None:
        self._entries = sorted(entries, key=lambda e: (e.start, e.end))
        self._starts = [entry.start for entry in self._entries]

    def lookup(self, addr: int) -> Optional[UnwindEntry]:
        """Return the entry whose range holds addr, or None."""
        idx = bisect.bisect_right(self._starts, addr) - 1
        if idx >= 0 and self._entries[idx].contains(addr):
            return self._entries[idx]
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[UnwindEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> UnwindEntry:
        return self._entries[index]


def build_unwind_table(
    functions: Iterable[Sequence[Any]],
    symbols: Mapping[int, str],
    runtime_base: int,
    load_base: int,
) -> UnwindTable:
    """Build a table from image function records.

    Each function record is (begin, end, prolog_size, unwind_codes), with
    image-relative addresses. Symbols map image-relative start addresses to
    names. Every function is entered twice: relocated to the runtime base
    and to the load base.
    """
    entries = []
    for begin, end, prolog, codes in functions:
        entry = UnwindEntry(
            start=begin,
            end=end,
            prolog=prolog,
            codes=tuple(codes),
            name=symbols.get(begin),
        )
        entries.append(entry.relocate(runtime_base))
        entries.append(entry.relocate(load_base))

    _log.debug("Found %d unwinding table entries", len(entries) // 2)
    return UnwindTable(entries)