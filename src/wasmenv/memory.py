"""
Static picture of a module's linear memory and constant globals.

Both structures are built once per module from decoded sections and are only
read afterwards, so they can be shared between function analyses.
"""

from collections.abc import Mapping
from typing import Iterator

from wasmenv import getColoredLogger
from wasmenv.wasm import ConstExpr, WasmModule

logger = getColoredLogger("wasmenv.memory")

U32_MASK = 0xFFFFFFFF


def constant_i32(expr: ConstExpr | None) -> int | None:
    """
    Return the value of a const expression that is exactly one ``i32.const``,
    None for anything else (global.get, extended-const arithmetic, other types).
    """
    if expr is None or len(expr.operators) != 1:
        return None
    op = expr.operators[0]
    if op.name != "i32.const":
        return None
    return op.arg


class MemoryImage(Mapping):
    """
    Sparse address -> byte mapping built from active data segments.

    Segments are kept as (offset, bytes) runs in write order; a lookup walks
    them newest first so later segments win where they overlap.
    """

    def __init__(self, segments: list[tuple[int, bytes]] | None = None) -> None:
        self._segments: tuple[tuple[int, bytes], ...] = tuple(
            (offset & U32_MASK, bytes(data)) for offset, data in (segments or []) if data
        )

    def __getitem__(self, address: int) -> int:
        for offset, data in reversed(self._segments):
            if offset <= address < offset + len(data):
                return data[address - offset]
        raise KeyError(address)

    def __contains__(self, address) -> bool:
        if not isinstance(address, int):
            return False
        return any(
            offset <= address < offset + len(data) for offset, data in self._segments
        )

    def _covered(self) -> list[tuple[int, int]]:
        # Merge segment extents into sorted, non-overlapping [start, end) ranges
        ranges = sorted((offset, offset + len(data)) for offset, data in self._segments)
        merged: list[list[int]] = []
        for start, end in ranges:
            if merged and start <= merged[-1][1]:
                merged[-1][1] = max(merged[-1][1], end)
            else:
                merged.append([start, end])
        return [(start, end) for start, end in merged]

    def __iter__(self) -> Iterator[int]:
        for start, end in self._covered():
            yield from range(start, end)

    def __len__(self) -> int:
        return sum(end - start for start, end in self._covered())

    def __repr__(self):
        return f"MemoryImage({len(self._segments)} segments, {len(self)} bytes)"

    @property
    def segments(self) -> tuple[tuple[int, bytes], ...]:
        return self._segments

    def read(self, address: int, length: int) -> bytes | None:
        """
        Read ``length`` bytes starting at ``address``.

        :return: The bytes, or None if any address in the range was never
            initialised by a data segment.
        """
        if length < 0:
            return None
        result = bytearray(length)
        missing = set(range(length))
        end = address + length
        for offset, data in reversed(self._segments):
            lo = max(address, offset)
            hi = min(end, offset + len(data))
            if lo >= hi:
                continue
            for addr in range(lo, hi):
                i = addr - address
                if i in missing:
                    result[i] = data[addr - offset]
                    missing.discard(i)
            if not missing:
                break
        if missing:
            return None
        return bytes(result)


class GlobalTable:
    """
    Initial values of globals whose initializer is a single i32.const,
    addressed by global index. Other indices are simply absent.
    """

    def __init__(self, values: dict[int, int] | None = None) -> None:
        self._values = dict(values or {})

    def get(self, index: int) -> int | None:
        return self._values.get(index)

    def __contains__(self, index) -> bool:
        return index in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other):
        if not isinstance(other, GlobalTable):
            return NotImplemented
        return self._values == other._values

    def __repr__(self):
        return f"GlobalTable({self._values!r})"

    def items(self):
        return self._values.items()


def build_global_table(module: WasmModule) -> GlobalTable:
    values = {}
    for glob in module.globals:
        value = constant_i32(glob.init)
        if value is None:
            continue
        values[glob.index] = value
    logger.debug(f"resolved {len(values)} of {len(module.globals)} globals to constants")
    return GlobalTable(values)


def build_memory_image(module: WasmModule) -> MemoryImage:
    placed = []
    for segment in module.data_segments:
        offset = constant_i32(segment.offset_expr) if segment.active else None
        if offset is None:
            logger.debug(
                f"skipping data segment {segment.index}: "
                + ("passive" if not segment.active else "non-constant offset")
            )
            continue
        placed.append((offset & U32_MASK, segment.data))
    image = MemoryImage(placed)
    logger.debug(f"placed {len(placed)} of {len(module.data_segments)} data segments")
    return image
