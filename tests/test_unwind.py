import pytest

from taperipper.debug.unwind import UnwindEntry, UnwindTable, build_unwind_table


def test_relocate_shifts_range_and_keeps_rest():
    entry = UnwindEntry(start=0x100, end=0x180, prolog=4, codes=(1, 2), name="main")
    moved = entry.relocate(0x5000)
    assert (moved.start, moved.end) == (0x5100, 0x5180)
    assert moved.prolog == 4
    assert moved.codes == (1, 2)
    assert moved.name == "main"
    assert (entry.start, entry.end) == (0x100, 0x180)


@pytest.mark.parametrize("addr,inside", [(0x0FF, False), (0x100, True), (0x17F, True), (0x180, False)])
def test_contains_is_half_open(addr, inside):
    entry = UnwindEntry(start=0x100, end=0x180)
    assert entry.contains(addr) is inside


def test_equality_uses_range_only():
    a = UnwindEntry(start=1, end=5, prolog=1, name="a")
    b = UnwindEntry(start=1, end=5, prolog=9, name="b")
    assert a == b
    assert hash(a) == hash(b)


def test_ordering_of_disjoint_and_overlapping():
    low = UnwindEntry(start=0, end=10)
    high = UnwindEntry(start=10, end=20)
    overlap = UnwindEntry(start=5, end=15)
    assert low < high
    assert high > low
    assert not (low < overlap)
    assert not (low > overlap)
    assert low <= UnwindEntry(start=0, end=10)


def test_display_format_named_and_unnamed():
    named = UnwindEntry(start=0x1000, end=0x1010, name="efi_main")
    unnamed = UnwindEntry(start=0x1000, end=0x1010)
    assert str(named) == "efi_main 0x0000000000001000-0x0000000000001010\n"
    assert str(unnamed).startswith("<UNNAMED> ")


def test_table_sorted_and_lookup():
    entries = [UnwindEntry(start=0x300, end=0x400), UnwindEntry(start=0x100, end=0x200)]
    table = UnwindTable(entries)
    assert [e.start for e in table] == [0x100, 0x300]
    assert table.lookup(0x150) == entries[1]
    assert table.lookup(0x3FF) == entries[0]
    assert table.lookup(0x250) is None
    assert table.lookup(0x50) is None
    assert table.lookup(0x400) is None


def test_empty_table():
    table = UnwindTable()
    assert len(table) == 0
    assert table.lookup(0) is None


def test_build_unwind_table_doubles_entries():
    functions = [(0x10, 0x20, 3, [7]), (0x20, 0x40, 0, [])]
    symbols = {0x10: "first"}
    table = build_unwind_table(functions, symbols, runtime_base=0x1000, load_base=0x9000)
    assert len(table) == 4
    runtime_hit = table.lookup(0x1015)
    load_hit = table.lookup(0x9015)
    assert runtime_hit.name == "first"
    assert load_hit.name == "first"
    assert runtime_hit.codes == (7,)
    assert runtime_hit.prolog == 3
    assert table.lookup(0x1030).name is None
    assert table.lookup(0x9030).start == 0x9020


def test_build_unwind_table_sorted_invariant():
    functions = [(0x50, 0x60, 0, []), (0x0, 0x10, 0, []), (0x20, 0x30, 0, [])]
    table = build_unwind_table(functions, {}, runtime_base=0x2000, load_base=0x100)
    starts = [e.start for e in table]
    assert starts == sorted(starts)
    for entry in table:
        assert table.lookup(entry.start) == entry