import pytest

from taperipper.display.formatting import (
    THEME_ROSE_PINE_MOON,
    Color,
    Formatting,
    Rgb,
    Style,
    UefiColor,
    to_rgb,
    to_uefi_color,
)


class Recorder(Formatting):
    def __init__(self):
        self.fg_color = Color.DEFAULT
        self.bg_color = Color.BLACK
        self.style = Style.NONE
        self.written = []

    def write(self, text):
        self.written.append((text, self.fg_color, self.bg_color, self.style))
        return len(text)


def test_to_rgb_uses_theme():
    assert to_rgb(Color.RED) == Rgb(235, 111, 146)
    assert to_rgb(Color.BLACK) == Rgb(*THEME_ROSE_PINE_MOON[0])
    assert to_rgb(Color.BRIGHT_BLACK) == Rgb(*THEME_ROSE_PINE_MOON[8])


def test_default_matches_white():
    assert to_rgb(Color.DEFAULT) == to_rgb(Color.WHITE)


def test_to_rgb_passes_explicit_rgb():
    assert to_rgb(Rgb(1, 2, 3)) == Rgb(1, 2, 3)


def test_every_named_color_resolves_into_palette():
    palette = {Rgb(*entry) for entry in THEME_ROSE_PINE_MOON}
    for color in Color:
        assert to_rgb(color) in palette


def test_rgb_rejects_out_of_range():
    with pytest.raises(ValueError):
        Rgb(256, 0, 0)
    with pytest.raises(ValueError):
        Rgb(0, -1, 0)


@pytest.mark.parametrize(
    "color, expected",
    [
        (Color.DEFAULT, UefiColor.LIGHT_GRAY),
        (Color.BLACK, UefiColor.BLACK),
        (Color.BRIGHT_BLUE, UefiColor.LIGHT_BLUE),
        (Color.BRIGHT_GREEN, UefiColor.LIGHT_RED),
        (Color.BRIGHT_YELLOW, UefiColor.YELLOW),
        (Rgb(10, 20, 30), UefiColor.LIGHT_GRAY),
    ],
)
def test_to_uefi_color(color, expected):
    assert to_uefi_color(color) is expected


def test_with_fg_color_applies_immediately_and_restores():
    w = Recorder()
    guard = Formatting.with_fg_color(w, Color.RED)
    assert w.fg_color is Color.RED
    with guard as out:
        out.write("x")
    assert w.written[0][1] is Color.RED
    assert w.fg_color is Color.DEFAULT


def test_with_bg_color_restores_only_background():
    w = Recorder()
    with Formatting.with_bg_color(w, Color.BLUE):
        w.fg_color = Color.GREEN
        assert w.bg_color is Color.BLUE
    assert w.bg_color is Color.BLACK
    assert w.fg_color is Color.GREEN


def test_with_colors_restores_both():
    w = Recorder()
    with Formatting.with_colors(w, Color.CYAN, Color.WHITE):
        assert (w.fg_color, w.bg_color) == (Color.CYAN, Color.WHITE)
    assert (w.fg_color, w.bg_color) == (Color.DEFAULT, Color.BLACK)


@pytest.mark.parametrize(
    "method, style",
    [
        ("with_bold", Style.BOLD),
        ("with_underline", Style.UNDERLINE),
        ("with_inverted", Style.INVERTED),
        ("with_italic", Style.ITALIC),
    ],
)
def test_style_guards(method, style):
    w = Recorder()
    with getattr(w, method)():
        assert w.style is style
    assert w.style is Style.NONE


def test_nested_guards_unwind_in_order():
    w = Recorder()
    with Formatting.with_fg_color(w, Color.RED):
        with Formatting.with_fg_color(w, Color.YELLOW):
            assert w.fg_color is Color.YELLOW
        assert w.fg_color is Color.RED
    assert w.fg_color is Color.DEFAULT


def test_restore_is_idempotent():
    w = Recorder()
    guard = Formatting.with_fg_color(w, Color.MAGENTA)
    assert w.fg_color is Color.MAGENTA
    guard.restore()
    assert w.fg_color is Color.DEFAULT
    w.fg_color = Color.CYAN
    guard.restore()
    assert w.fg_color is Color.CYAN


def test_set_colors():
    w = Recorder()
    w.set_colors(Color.RED, Rgb(1, 1, 1))
    assert w.fg_color is Color.RED
    assert w.bg_color == Rgb(1, 1, 1)