"""Console colours, text styles and scoped formatting changes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union


class Color(Enum):
    """The sixteen ANSI colours plus the terminal default."""

    DEFAULT = "default"
    BLACK = "black"
    RED = "red"
    GREEN = "green"
    YELLOW = "yellow"
    BLUE = "blue"
    MAGENTA = "magenta"
    CYAN = "cyan"
    WHITE = "white"
    BRIGHT_BLACK = "bright_black"
    BRIGHT_RED = "bright_red"
    BRIGHT_GREEN = "bright_green"
    BRIGHT_YELLOW = "bright_yellow"
    BRIGHT_BLUE = "bright_blue"
    BRIGHT_MAGENTA = "bright_magenta"
    BRIGHT_CYAN = "bright_cyan"
    BRIGHT_WHITE = "bright_white"


@dataclass(frozen=True)
class Rgb:
    """An explicit 24-bit colour."""

    r: int
    g: int
    b: int

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b):
            if not 0 <= channel <= 255:
                raise ValueError(f"colour channel out of range: {channel}")

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)


ColorLike = Union[Color, Rgb]


THEME_ROSE_PINE_MOON: tuple[tuple[int, int, int], ...] = (
    (35, 33, 54),  # #232136 | BLACK
    (235, 111, 146),  # #eb6f92 | RED
    (62, 143, 176),  # #3e8fb0 | GREEN
    (246, 193, 119),  # #f6c177 | YELLOW
    (156, 207, 216),  # #9ccfd8 | BLUE
    (196, 167, 231),  # #c4a7e7 | MAGENTA
    (234, 154, 151),  # #ea9a97 | CYAN
    (224, 222, 244),  # #e0def4 | WHITE
    (110, 106, 134),  # #6e6a86 | BRIGHT_BLACK
    (235, 111, 146),  # #eb6f92 | BRIGHT_RED
    (62, 143, 176),  # #3e8fb0 | BRIGHT_GREEN
    (246, 193, 119),  # #f6c177 | BRIGHT_YELLOW
    (156, 207, 216),  # #9ccfd8 | BRIGHT_BLUE
    (196, 167, 231),  # #c4a7e7 | BRIGHT_MAGENTA
    (234, 154, 151),  # #ea9a97 | BRIGHT_CYAN
    (224, 222, 244),  # #e0def4 | BRIGHT_WHITE
)

_THEME_INDEX = {
    Color.DEFAULT: 7,
    Color.BLACK: 0,
    Color.RED: 1,
    Color.GREEN: 2,
    Color.YELLOW: 3,
    Color.BLUE: 4,
    Color.MAGENTA: 5,
    Color.CYAN: 6,
    Color.WHITE: 7,
    Color.BRIGHT_BLACK: 8,
    Color.BRIGHT_RED: 9,
    Color.BRIGHT_GREEN: 10,
    Color.BRIGHT_YELLOW: 11,
    Color.BRIGHT_BLUE: 12,
    Color.BRIGHT_MAGENTA: 13,
    Color.BRIGHT_CYAN: 14,
    Color.BRIGHT_WHITE: 15,
}


class Style(Enum):
    """Text styles a console may render."""

    BOLD = "bold"
    DEFAULT = "default"
    INVERTED = "inverted"
    ITALIC = "italic"
    NONE = "none"
    UNDERLINE = "underline"


class UefiColor(IntEnum):
    """Colour attributes of the firmware text console."""

    BLACK = 0x00
    BLUE = 0x01
    GREEN = 0x02
    CYAN = 0x03
    RED = 0x04
    MAGENTA = 0x05
    BROWN = 0x06
    LIGHT_GRAY = 0x07
    DARK_GRAY = 0x08
    LIGHT_BLUE = 0x09
    LIGHT_GREEN = 0x0A
    LIGHT_CYAN = 0x0B
    LIGHT_RED = 0x0C
    LIGHT_MAGENTA = 0x0D
    YELLOW = 0x0E
    WHITE = 0x0F


_UEFI_MAP = {
    Color.DEFAULT: UefiColor.LIGHT_GRAY,
    Color.BLACK: UefiColor.BLACK,
    Color.RED: UefiColor.RED,
    Color.GREEN: UefiColor.GREEN,
    Color.YELLOW: UefiColor.YELLOW,
    Color.BLUE: UefiColor.BLUE,
    Color.MAGENTA: UefiColor.MAGENTA,
    Color.CYAN: UefiColor.CYAN,
    Color.WHITE: UefiColor.WHITE,
    Color.BRIGHT_BLACK: UefiColor.LIGHT_GRAY,
    Color.BRIGHT_RED: UefiColor.LIGHT_RED,
    Color.BRIGHT_GREEN: UefiColor.LIGHT_RED,
    Color.BRIGHT_YELLOW: UefiColor.YELLOW,
    Color.BRIGHT_BLUE: UefiColor.LIGHT_BLUE,
    Color.BRIGHT_MAGENTA: UefiColor.LIGHT_MAGENTA,
    Color.BRIGHT_CYAN: UefiColor.LIGHT_CYAN,
    Color.BRIGHT_WHITE: UefiColor.WHITE,
}


def to_rgb(color: ColorLike) -> Rgb:
    """Resolve a colour to RGB using the Rosé Pine Moon palette."""
    if isinstance(color, Rgb):
        return color
    return Rgb(*THEME_ROSE_PINE_MOON[_THEME_INDEX[color]])


def to_uefi_color(color: ColorLike) -> UefiColor:
    """Map a colour to the nearest firmware text-console attribute."""
    if isinstance(color, Rgb):
        return UefiColor.LIGHT_GRAY
    return _UEFI_MAP.get(color, UefiColor.LIGHT_GRAY)


class _FormattingGuard:
    """Applies a formatting change at once and undoes it on restore or exit."""

    def __init__(
        self,
        writer: "Formatting",
        prev_fg: Optional[ColorLike] = None,
        prev_bg: Optional[ColorLike] = None,
        prev_style: Optional[Style] = None,
    ) -> None:
        self._writer = writer
        self._prev_fg = prev_fg
        self._prev_bg = prev_bg
        self._prev_style = prev_style
        self._restored = False

    def write(self, text: str):
        return self._writer.write(text)

    def restore(self) -> None:
        if self._restored:
            return
        self._restored = True
        if self._prev_fg is not None:
            self._writer.fg_color = self._prev_fg
        if self._prev_bg is not None:
            self._writer.bg_color = self._prev_bg
        if self._prev_style is not None:
            self._writer.style = self._prev_style

    def __enter__(self) -> "_FormattingGuard":
        return self

    def __exit__(self, *exc_info) -> None:
        self.restore()


class Formatting:
    """Mixin for writers that track a foreground, background and style.

    Subclasses may replace the plain attributes with properties.
    """

    fg_color: ColorLike = Color.DEFAULT
    bg_color: ColorLike = Color.DEFAULT
    style: Style = Style.NONE

    def set_colors(self, fg_color: ColorLike, bg_color: ColorLike) -> None:
        self.fg_color = fg_color
        self.bg_color = bg_color

    def with_fg_color(self, color: ColorLike) -> _FormattingGuard:
        prev = self.fg_color
        self.fg_color = color
        return _FormattingGuard(self, prev_fg=prev)

    def with_bg_color(self, color: ColorLike) -> _FormattingGuard:
        prev = self.bg_color
        self.bg_color = color
        return _FormattingGuard(self, prev_bg=prev)

    def with_colors(self, fg_color: ColorLike, bg_color: ColorLike) -> _FormattingGuard:
        prev_fg = self.fg_color
        prev_bg = self.bg_color
        self.set_colors(fg_color, bg_color)
        return _FormattingGuard(self, prev_fg=prev_fg, prev_bg=prev_bg)

    def _with_style(self, style: Style) -> _FormattingGuard:
        prev = self.style
        self.style = style
        return _FormattingGuard(self, prev_style=prev)

    def with_bold(self) -> _FormattingGuard:
        return self._with_style(Style.BOLD)

    def with_underline(self) -> _FormattingGuard:
        return self._with_style(Style.UNDERLINE)

    def with_inverted(self) -> _FormattingGuard:
        return self._with_style(Style.INVERTED)

    def with_italic(self) -> _FormattingGuard:
        return self._with_style(Style.ITALIC)