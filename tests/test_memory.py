import pytest

from wasmenv.memory import (
    GlobalTable, MemoryImage, build_global_table, build_memory_image, constant_i32,
)
from wasmenv.wasm import ConstExpr, Operator, decode_module

from wasmbuild import (
    END, data_section, global_get, global_section, i32_const, import_section,
    module, passive_segment, uleb,
)


@pytest.mark.parametrize("operators, expected", [
    ([Operator("i32.const", (0x400,))], 0x400),
    ([Operator("i32.const", (-1,))], -1),
    ([Operator("global.get", (0,))], None),
    ([Operator("i64.const", (5,))], None),
    ([Operator("i32.const", (1,)), Operator("i32.const", (2,)), Operator("i32.add")], None),
    ([], None),
])
def test_constant_i32(operators, expected):
    assert constant_i32(ConstExpr(tuple(operators))) == expected


def test_constant_i32_none():
    assert constant_i32(None) is None


class TestMemoryImage:
    def test_read(self):
        image = MemoryImage([(0x100, b"hello")])
        assert image.read(0x100, 5) == b"hello"
        assert image.read(0x101, 3) == b"ell"
        assert image[0x104] == ord("o")

    def test_missing_bytes(self):
        image = MemoryImage([(0x100, b"hello")])
        assert image.read(0x0FF, 2) is None
        assert image.read(0x103, 3) is None
        assert 0x105 not in image
        with pytest.raises(KeyError):
            image[0x105]

    def test_last_write_wins(self):
        image = MemoryImage([(0x100, b"AAAA"), (0x102, b"BB")])
        assert image.read(0x100, 4) == b"AABB"
        image = MemoryImage([(0x102, b"BB"), (0x100, b"AAAA")])
        assert image.read(0x100, 4) == b"AAAA"

    def test_read_across_adjacent_segments(self):
        image = MemoryImage([(0x100, b"DATA"), (0x104, b"BASE_URL")])
        assert image.read(0x100, 12) == b"DATABASE_URL"

    def test_mapping_view(self):
        image = MemoryImage([(10, b"abc"), (12, b"xyz"), (30, b"")])
        assert len(image) == 5
        assert list(image) == [10, 11, 12, 13, 14]
        assert dict(image)[12] == ord("x")

    def test_negative_offsets_wrap(self):
        image = MemoryImage([(-2, b"ab")])
        assert image.read(0xFFFFFFFE, 2) == b"ab"


def test_build_memory_image_skips_passive_and_computed_segments():
    computed = uleb(0) + global_get(0) + END + uleb(3) + b"zzz"
    mod = decode_module(module(
        import_section(globals=1),
        data_section(
            (0x2000, b"PORT"),
            passive_segment(b"passive"),
            computed,
            (0x2002, b"ST"),
        ),
    ))
    image = build_memory_image(mod)
    assert image.read(0x2000, 4) == b"POST"
    assert len(image.segments) == 2


def test_build_global_table_uses_global_index_space():
    mod = decode_module(module(
        import_section(globals=2),
        global_section(i32_const(0x10000), global_get(0), i32_const(-8)),
    ))
    table = build_global_table(mod)
    assert table == GlobalTable({2: 0x10000, 4: -8})
    assert 3 not in table
    assert table.get(0) is None
