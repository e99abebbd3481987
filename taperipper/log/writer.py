"""Log output sinks, their combinators and level filters."""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, BinaryIO, Callable, Optional

from taperipper.display.formatting import Color, ColorLike, Formatting, Style


class Level(IntEnum):
    """Log verbosity; a more verbose level compares greater."""

    ERROR = 1
    WARN = 2
    INFO = 3
    DEBUG = 4
    TRACE = 5

    @classmethod
    def parse(cls, text: str) -> "Level":
        """Parse a level name (any case) or its number, 1 to 5."""
        cleaned = text.strip()
        if cleaned.isdigit():
            try:
                return cls(int(cleaned))
            except ValueError:
                raise ValueError(f"invalid log level: {text!r}") from None
        try:
            return cls[cleaned.upper()]
        except KeyError:
            raise ValueError(f"invalid log level: {text!r}") from None


@dataclass(frozen=True)
class Metadata:
    """What is known about a log event or span before it is written."""

    name: str
    level: Level
    target: str = ""


class LogOutput(ABC):
    """Something that can hand out writers for log records."""

    @abstractmethod
    def make_writer(self) -> Any:
        """Return a fresh writer for this output."""

    def make_writer_for(self, metadata: Metadata) -> Optional[Any]:
        """Return a writer if this output takes the record, else None."""
        if self.enabled(metadata):
            return self.make_writer()
        return None

    def enabled(self, metadata: Metadata) -> bool:
        return False

    def line_len(self) -> int:
        return 80


class _FixedFormatting(Formatting):
    """Formatting that ignores changes and always reports the defaults."""

    @property
    def fg_color(self) -> ColorLike:
        return Color.DEFAULT

    @fg_color.setter
    def fg_color(self, color: ColorLike) -> None:
        pass

    @property
    def bg_color(self) -> ColorLike:
        return Color.DEFAULT

    @bg_color.setter
    def bg_color(self, color: ColorLike) -> None:
        pass

    @property
    def style(self) -> Style:
        return Style.NONE

    @style.setter
    def style(self, style: Style) -> None:
        pass


class CallableOutput(LogOutput):
    """An output whose writers come from calling a factory."""

    def __init__(self, factory: Callable[[], Any]) -> None:
        self.factory = factory

    def make_writer(self) -> Any:
        return self.factory()


class NoOutput(_FixedFormatting, LogOutput):
    """An output and writer that discards everything."""

    def make_writer(self) -> "NoOutput":
        return NoOutput()

    def enabled(self, metadata: Metadata) -> bool:
        return False

    def make_writer_for(self, metadata: Metadata) -> None:
        return None

    def write(self, text: str) -> int:
        return len(text)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, NoOutput)

    def __hash__(self) -> int:
        return hash(NoOutput)

    def __repr__(self) -> str:
        return "NoOutput()"


def none() -> NoOutput:
    """Return an output that writes nothing."""
    return NoOutput()


class OptionalOutput(LogOutput):
    """Wraps an output that may be absent."""

    def __init__(self, output: Optional[LogOutput]) -> None:
        self.output = output

    def make_writer(self) -> Any:
        if self.output is None:
            return NoOutput()
        return self.output.make_writer()

    def enabled(self, metadata: Metadata) -> bool:
        return self.output is not None and self.output.enabled(metadata)

    def make_writer_for(self, metadata: Metadata) -> Optional[Any]:
        if self.output is None:
            return None
        return self.output.make_writer_for(metadata)

    def line_len(self) -> int:
        return 80 if self.output is None else self.output.line_len()


class OrElse(LogOutput):
    """Uses the primary output, falling back to the secondary."""

    def __init__(self, primary: LogOutput, secondary: LogOutput) -> None:
        self.primary = primary
        self.secondary = secondary

    def make_writer(self) -> Any:
        return self.primary.make_writer()

    def enabled(self, metadata: Metadata) -> bool:
        return self.primary.enabled(metadata) or self.secondary.enabled(metadata)

    def make_writer_for(self, metadata: Metadata) -> Optional[Any]:
        writer = self.primary.make_writer_for(metadata)
        if writer is not None:
            return writer
        return self.secondary.make_writer_for(metadata)


class _Wrapped(LogOutput):
    """Base for outputs that add a condition in front of another output."""

    output: LogOutput

    def make_writer(self) -> Any:
        return self.output.make_writer()

    def make_writer_for(self, metadata: Metadata) -> Optional[Any]:
        if self.enabled(metadata):
            return self.output.make_writer_for(metadata)
        return None

    def line_len(self) -> int:
        return self.output.line_len()


class WithMaxLevel(_Wrapped):
    """Takes only records at most as verbose as the given level."""

    def __init__(self, output: LogOutput, level: Level) -> None:
        self.output = output
        self.level = level

    def enabled(self, metadata: Metadata) -> bool:
        return metadata.level <= self.level and self.output.enabled(metadata)


class WithMinLevel(_Wrapped):
    """Takes only records at least as verbose as the given level."""

    def __init__(self, output: LogOutput, level: Level) -> None:
        self.output = output
        self.level = level

    def enabled(self, metadata: Metadata) -> bool:
        return metadata.level >= self.level and self.output.enabled(metadata)


class WithFilter(_Wrapped):
    """Takes only records for which a predicate holds."""

    def __init__(self, output: LogOutput, predicate: Callable[[Metadata], bool]) -> None:
        self.output = output
        self.predicate = predicate

    def enabled(self, metadata: Metadata) -> bool:
        return bool(self.predicate(metadata)) and self.output.enabled(metadata)


class DebugconOutput(_FixedFormatting, LogOutput):
    """Emits raw UTF-8 bytes to a debug console sink.

    When inactive, records are refused and writes do nothing. Without an
    explicit sink, bytes go to standard error.
    """

    PORT = 0xE9

    def __init__(self, sink: Optional[BinaryIO] = None, active: bool = True) -> None:
        self.sink = sink
        self.active = active

    def make_writer(self) -> "DebugconOutput":
        return DebugconOutput(self.sink, self.active)

    def enabled(self, metadata: Metadata) -> bool:
        return self.active

    def line_len(self) -> int:
        return 130

    def write(self, text: str) -> int:
        if not self.active:
            return len(text)
        sink = self.sink if self.sink is not None else sys.stderr.buffer
        sink.write(text.encode("utf-8"))
        return len(text)