"""Console log subscriber that writes wrapped, indented and coloured records."""

from __future__ import annotations

import copy
import datetime
import json
import logging
import re
import string
import threading
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

from taperipper.display.fmt import as_alt
from taperipper.display.formatting import Color, ColorLike, Formatting, Style
from taperipper.log.writer import Level, LogOutput, Metadata, NoOutput

PRI_BIT = 1 << 0
SEC_BIT = 1 << 1

_CONTINUATION = " " * 14
_MAX_WRAPS = 25
_PIECES = re.compile(r"[^\n]*\n|[^\n]+")

_LEVEL_LABELS = {
    Level.TRACE: (Color.CYAN, "TRACE"),
    Level.DEBUG: (Color.MAGENTA, "DEBUG"),
    Level.INFO: (Color.GREEN, " INFO"),
    Level.WARN: (Color.YELLOW, " WARN"),
    Level.ERROR: (Color.RED, "ERROR"),
}

Clock = Callable[[], Optional[Any]]
Fields = Union[Mapping[str, Any], Iterable[Tuple[str, Any]], None]


def _local_time() -> datetime.time:
    return datetime.datetime.now().time()


def write_level(writer: Formatting, level: Level) -> None:
    """Write the fixed-width, coloured label of a level."""
    color, label = _LEVEL_LABELS[level]
    with writer.with_fg_color(color) as out:
        out.write(label)


def write_timestamp(writer: Formatting, clock: Optional[Clock]) -> None:
    """Write 'HH:MM:SS ' from the clock, or '??:??:?? ' if it has no time."""
    now = None
    if clock is not None:
        try:
            now = clock()
        except OSError:
            now = None
    if now is None:
        text = "??:??:?? "
    else:
        text = f"{now.hour:02}:{now.minute:02}:{now.second:02} "
    with writer.with_fg_color(Color.BRIGHT_BLACK) as out:
        out.write(text)


class WrappingWriter(Formatting):
    """Hard-wraps long lines and indents continuation lines."""

    def __init__(
        self,
        writer: Any,
        line_length: int,
        depth: Optional[Callable[[], int]] = None,
    ) -> None:
        self.writer = writer
        self.line_length = line_length
        self._depth = depth if depth is not None else (lambda: 0)
        self.current_line_len = 0

    @property
    def fg_color(self) -> ColorLike:
        return getattr(self.writer, "fg_color", Color.DEFAULT)

    @fg_color.setter
    def fg_color(self, color: ColorLike) -> None:
        if hasattr(self.writer, "fg_color"):
            self.writer.fg_color = color

    @property
    def bg_color(self) -> ColorLike:
        return getattr(self.writer, "bg_color", Color.DEFAULT)

    @bg_color.setter
    def bg_color(self, color: ColorLike) -> None:
        if hasattr(self.writer, "bg_color"):
            self.writer.bg_color = color

    @property
    def style(self) -> Style:
        return getattr(self.writer, "style", Style.NONE)

    @style.setter
    def style(self, style: Style) -> None:
        if hasattr(self.writer, "style"):
            self.writer.style = style

    def _write_indent(self, chars: str) -> None:
        self.writer.write(chars)
        self.current_line_len += len(chars)

    def _write_newline(self) -> None:
        self.current_line_len = 0
        self._write_indent(_CONTINUATION)

    def indent(self) -> None:
        """Write one space plus one per level of span nesting."""
        self._write_indent(" " * (self._depth() + 1))

    def finish(self) -> None:
        """End the record with a newline."""
        self.writer.write("\n")

    def write(self, text: str) -> int:
        for piece in _PIECES.findall(text):
            wraps = 0
            while self.current_line_len + len(piece) >= self.line_length:
                if wraps > _MAX_WRAPS:
                    raise RuntimeError("line wrapping is stuck")
                end = self.line_length - self.current_line_len
                if end < 0:
                    raise RuntimeError("line wrapping is stuck")
                self.writer.write(piece[:end])
                self.writer.write("\n")
                self._write_newline()
                self.writer.write(" ")
                self.current_line_len += 1
                piece = piece[end:]
                wraps += 1

            if piece:
                self.writer.write(piece)
            if piece.endswith("\n"):
                self._write_newline()
                self.writer.write(" ")
            self.current_line_len += len(piece)
        return len(text)


class WriterPair(Formatting):
    """Sends everything to a primary and a secondary writer, either optional."""

    def __init__(
        self,
        primary: Optional[WrappingWriter] = None,
        secondary: Optional[WrappingWriter] = None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary

    def _present(self) -> list:
        return [w for w in (self.primary, self.secondary) if w is not None]

    def _each(self, action: Callable[[Any], Any]) -> None:
        failure: Optional[BaseException] = None
        if self.primary is not None:
            try:
                action(self.primary)
            except Exception as exc:
                failure = exc
        if self.secondary is not None:
            action(self.secondary)
        if failure is not None:
            raise failure

    def _first(self, attr: str, default: Any) -> Any:
        for writer in self._present():
            return getattr(writer, attr)
        return default

    def _set_all(self, attr: str, value: Any) -> None:
        for writer in self._present():
            setattr(writer, attr, value)

    @property
    def fg_color(self) -> ColorLike:
        return self._first("fg_color", Color.DEFAULT)

    @fg_color.setter
    def fg_color(self, color: ColorLike) -> None:
        self._set_all("fg_color", color)

    @property
    def bg_color(self) -> ColorLike:
        return self._first("bg_color", Color.DEFAULT)

    @bg_color.setter
    def bg_color(self, color: ColorLike) -> None:
        self._set_all("bg_color", color)

    @property
    def style(self) -> Style:
        return self._first("style", Style.NONE)

    @style.setter
    def style(self, style: Style) -> None:
        self._set_all("style", style)

    def write(self, text: str) -> int:
        self._each(lambda w: w.write(text))
        return len(text)

    def indent_initial(self) -> None:
        self._each(lambda w: w.indent())

    def finish(self) -> None:
        self._each(lambda w: w.finish())

    def __enter__(self) -> "WriterPair":
        return self

    def __exit__(self, *exc_info) -> None:
        self.finish()


class FieldVisitor:
    """Writes the fields of one record as 'message, key=value, ...'."""

    def __init__(self, writer: Formatting, altmode: bool = False) -> None:
        self.writer = writer
        self.altmode = altmode
        self.seen = False
        self.newline = False
        self.comma = False

    def _debug_text(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, str):
            return json.dumps(value, ensure_ascii=False)
        if isinstance(value, (bytes, bytearray)):
            return "[" + ", ".join(str(b) for b in value) + "]"
        if isinstance(value, int):
            return str(value)
        if self.altmode:
            return repr(as_alt(value))
        return repr(value)

    def record(self, name: str, value: Any) -> None:
        if name != "message" and isinstance(value, str) and len(value) >= 75:
            self.newline = True

        sep = "\n" if self.newline else " "

        if name == "message":
            text = str(value)
            if self.seen:
                self.writer.write(sep + text)
            else:
                self.writer.write(text)
                self.comma = not (text and text[-1] in string.punctuation)
            self.seen = True
            return

        if self.comma:
            with self.writer.with_fg_color(Color.BRIGHT_BLACK) as out:
                out.write(",")
        if self.seen:
            self.writer.write(sep)
        if not self.comma:
            self.seen = True
            self.comma = True

        first, *rest = name.split(".")
        self.writer.write(first)
        for piece in rest:
            with self.writer.with_fg_color(Color.BRIGHT_BLACK) as out:
                out.write(".")
            self.writer.write(piece)

        with self.writer.with_fg_color(Color.BRIGHT_BLACK) as out:
            out.write("=")
        text = self._debug_text(value)
        self.writer.write(text)
        if "\n" in text:
            self.newline = True


class _Output:
    """One log output with its wrap width and span nesting depth."""

    def __init__(self, output: LogOutput, bit: int) -> None:
        self.output = output
        self.bit = bit
        self.line_length = output.line_len() - 9
        self.depth = 0
        self._lock = threading.Lock()

    def enabled(self, metadata: Metadata) -> bool:
        return self.output.enabled(metadata)

    def enter(self, span_id: int) -> None:
        if span_id & self.bit:
            with self._lock:
                self.depth += 1

    def exit(self, span_id: int) -> None:
        if span_id & self.bit:
            with self._lock:
                self.depth -= 1

    def writer(self, metadata: Metadata) -> Optional[WrappingWriter]:
        inner = self.output.make_writer_for(metadata)
        if inner is None:
            return None
        return WrappingWriter(inner, self.line_length, lambda: self.depth)


class ConsoleSubscriber:
    """Formats spans and events onto a primary and a secondary output."""

    def __init__(
        self,
        primary: LogOutput,
        secondary: Optional[LogOutput] = None,
        clock: Optional[Clock] = _local_time,
    ) -> None:
        self._primary = _Output(primary, PRI_BIT)
        self._secondary = _Output(secondary if secondary is not None else NoOutput(), SEC_BIT)
        self.clock = clock
        self._next_id = 0
        self._lock = threading.Lock()

    def with_secondary(self, output: LogOutput) -> "ConsoleSubscriber":
        """Return a subscriber sharing this primary, with a new secondary."""
        other = copy.copy(self)
        other._secondary = _Output(output, SEC_BIT)
        return other

    def enabled(self, metadata: Metadata) -> bool:
        return self._primary.enabled(metadata) or self._secondary.enabled(metadata)

    def _writer(self, metadata: Metadata) -> WriterPair:
        return WriterPair(self._primary.writer(metadata), self._secondary.writer(metadata))

    def _write_prefix(self, writer: WriterPair, metadata: Metadata) -> None:
        write_timestamp(writer, self.clock)
        write_level(writer, metadata.level)
        writer.indent_initial()

    @staticmethod
    def _record(writer: WriterPair, fields: Fields, altmode: bool) -> None:
        if fields is None:
            return
        items = fields.items() if isinstance(fields, Mapping) else fields
        visitor = FieldVisitor(writer, altmode)
        for name, value in items:
            visitor.record(name, value)

    def new_span(self, metadata: Metadata, fields: Fields = None) -> int:
        """Write a span header line and return its id."""
        with self._lock:
            span_id = self._next_id
            self._next_id += 1
            if span_id & PRI_BIT:
                self._next_id = 0
        if self._primary.enabled(metadata):
            span_id |= PRI_BIT
        if self._secondary.enabled(metadata):
            span_id |= SEC_BIT

        with self._writer(metadata) as writer:
            self._write_prefix(writer, metadata)
            writer.write(metadata.name)
            with writer.with_fg_color(Color.BRIGHT_BLACK) as out:
                out.write(": ")
            self.enter(span_id)
            try:
                self._record(writer, fields, altmode=False)
            finally:
                self.exit(span_id)
        return span_id

    def event(self, metadata: Metadata, fields: Fields = None) -> None:
        """Write one event line."""
        with self._writer(metadata) as writer:
            self._write_prefix(writer, metadata)
            with writer.with_fg_color(Color.BRIGHT_BLACK) as out:
                out.write(f"{metadata.target}: ")
            self._record(writer, fields, altmode=True)

    def enter(self, span_id: int) -> None:
        self._primary.enter(span_id)
        self._secondary.enter(span_id)

    def exit(self, span_id: int) -> None:
        self._primary.exit(span_id)
        self._secondary.exit(span_id)


def _level_for(levelno: int) -> Level:
    if levelno >= logging.ERROR:
        return Level.ERROR
    if levelno >= logging.WARNING:
        return Level.WARN
    if levelno >= logging.INFO:
        return Level.INFO
    if levelno >= logging.DEBUG:
        return Level.DEBUG
    return Level.TRACE


class ConsoleHandler(logging.Handler):
    """Logging handler that hands records to a ConsoleSubscriber.

    Extra fields may be passed as a mapping in ``extra={"fields": {...}}``.
    """

    def __init__(self, subscriber: ConsoleSubscriber, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.subscriber = subscriber

    def emit(self, record: logging.LogRecord) -> None:
        try:
            metadata = Metadata(
                name=f"event {record.pathname}:{record.lineno}",
                level=_level_for(record.levelno),
                target=record.name,
            )
            if not self.subscriber.enabled(metadata):
                return
            fields = {"message": record.getMessage()}
            extra = getattr(record, "fields", None)
            if isinstance(extra, Mapping):
                fields.update(extra)
            self.subscriber.event(metadata, fields)
        except Exception:
            self.handleError(record)