"""Small formatting helpers for log values and indented output."""

from __future__ import annotations

import pprint
from typing import Any, Callable, Generic, Iterable, Optional, Protocol, TypeVar

T = TypeVar("T")


class _Writer(Protocol):
    def write(self, text: str) -> Any: ...


class FormatWith(Generic[T]):
    """Wraps a value so that its repr is produced by a custom function."""

    def __init__(self, value: T, fmt: Callable[[T], str]) -> None:
        self.value = value
        self._fmt = fmt

    def __repr__(self) -> str:
        return self._fmt(self.value)

    __str__ = __repr__


def as_ptr(value: int) -> FormatWith[int]:
    """Show an address as a hex pointer."""
    if value < 0:
        raise ValueError("pointer value must not be negative")
    return FormatWith(value, lambda v: f"{v:#x}")


def as_hex(value: int) -> FormatWith[int]:
    """Show an integer in prefixed lowercase hex."""
    return FormatWith(value, lambda v: f"{v:#x}")


def as_bin(value: int) -> FormatWith[int]:
    """Show an integer in prefixed binary."""
    return FormatWith(value, lambda v: f"{v:#b}")


def as_alt(value: Any) -> FormatWith[Any]:
    """Show a value pretty-printed over several lines where needed."""
    return FormatWith(value, pprint.pformat)


class FmtOption(Generic[T]):
    """Formats an optional value, falling back to a fixed text when absent."""

    def __init__(self, value: Optional[T], fallback: str = "") -> None:
        self.value = value
        self._fallback = fallback

    def or_else(self, text: str) -> "FmtOption[T]":
        return FmtOption(self.value, text)

    def __str__(self) -> str:
        return self._fallback if self.value is None else str(self.value)

    def __repr__(self) -> str:
        return self._fallback if self.value is None else repr(self.value)

    def __format__(self, spec: str) -> str:
        return self._fallback if self.value is None else format(self.value, spec)


def opt(value: Optional[T]) -> FmtOption[T]:
    """Shorthand for FmtOption(value)."""
    return FmtOption(value)


def comma_delimited(writer: _Writer, values: Iterable[Any]) -> None:
    """Write values separated by ', '."""
    for position, value in enumerate(values):
        writer.write(str(value) if position == 0 else f", {value}")


class IndentWriter:
    """Writer that indents every line following a newline."""

    def __init__(self, writer: _Writer, indent: int) -> None:
        self.writer = writer
        self.indent = indent

    def write(self, text: str) -> int:
        for chunk in text.splitlines(keepends=True):
            self.writer.write(chunk)
            if chunk.endswith("\n"):
                self.writer.write(" " * self.indent)
        return len(text)


def with_indent(writer: _Writer, indent: int) -> IndentWriter:
    """Wrap writer so each new line is indented by `indent` spaces."""
    return IndentWriter(writer, indent)