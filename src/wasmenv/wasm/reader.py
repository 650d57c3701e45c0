import struct

from .exceptions import DecodeError

# Single byte value types: i32 i64 f32 f64 v128 funcref externref and the
# abbreviated reference types from the function-references/GC proposals
SIMPLE_VALTYPES = frozenset(
    [0x7F, 0x7E, 0x7D, 0x7C, 0x7B, 0x70, 0x6F, 0x6E, 0x6D, 0x6C, 0x6B,
     0x6A, 0x69, 0x71, 0x72, 0x73, 0x74]
)
# (ref ht) and (ref null ht) are followed by a heap type
REF_VALTYPES = frozenset([0x63, 0x64])
EMPTY_BLOCKTYPE = 0x40


class BinaryReader:
    """
    Cursor over a WebAssembly byte buffer.

    Every read is bounds checked and raises DecodeError instead of IndexError
    or struct.error. ``base`` is added to offsets in error messages so nested
    readers report positions relative to the whole file.
    """

    def __init__(self, data: bytes, base: int = 0) -> None:
        self.data = memoryview(data)
        self.pos = 0
        self.base = base

    def eof(self) -> bool:
        return self.pos >= len(self.data)

    @property
    def offset(self) -> int:
        return self.base + self.pos

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def _need(self, count: int) -> None:
        if count < 0 or self.pos + count > len(self.data):
            raise DecodeError(
                f"unexpected end of data: wanted {count} bytes, {self.remaining()} left",
                self.offset,
            )

    def read_byte(self) -> int:
        self._need(1)
        value = self.data[self.pos]
        self.pos += 1
        return value

    def peek_byte(self) -> int:
        self._need(1)
        return self.data[self.pos]

    def read_bytes(self, count: int) -> bytes:
        self._need(count)
        value = bytes(self.data[self.pos:self.pos + count])
        self.pos += count
        return value

    def skip(self, count: int) -> None:
        self._need(count)
        self.pos += count

    def read_sub_reader(self, count: int) -> "BinaryReader":
        start = self.offset
        return BinaryReader(self.read_bytes(count), base=start)

    def _read_leb(self, bits: int, signed: bool) -> int:
        result = 0
        shift = 0
        max_bytes = (bits + 6) // 7
        for _ in range(max_bytes):
            byte = self.read_byte()
            result |= (byte & 0x7F) << shift
            shift += 7
            if not byte & 0x80:
                if signed and byte & 0x40:
                    result -= 1 << shift
                break
        else:
            raise DecodeError(f"LEB128 value longer than {max_bytes} bytes", self.offset)

        if signed:
            if not -(1 << (bits - 1)) <= result < (1 << (bits - 1)):
                raise DecodeError(f"signed LEB128 out of range for {bits} bits", self.offset)
        elif result >= 1 << bits:
            raise DecodeError(f"unsigned LEB128 out of range for {bits} bits", self.offset)
        return result

    def read_u32(self) -> int:
        return self._read_leb(32, signed=False)

    def read_u64(self) -> int:
        return self._read_leb(64, signed=False)

    def read_s32(self) -> int:
        return self._read_leb(32, signed=True)

    def read_s33(self) -> int:
        return self._read_leb(33, signed=True)

    def read_s64(self) -> int:
        return self._read_leb(64, signed=True)

    def read_f32(self) -> float:
        return struct.unpack("<f", self.read_bytes(4))[0]

    def read_f64(self) -> float:
        return struct.unpack("<d", self.read_bytes(8))[0]

    def read_name(self) -> str:
        raw = self.read_bytes(self.read_u32())
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            raise DecodeError("name is not valid UTF-8", self.offset)

    def read_heaptype(self) -> int:
        return self.read_s33()

    def read_valtype(self) -> int:
        code = self.read_byte()
        if code in REF_VALTYPES:
            self.read_heaptype()
        elif code not in SIMPLE_VALTYPES:
            raise DecodeError(f"invalid value type {code:#x}", self.offset - 1)
        return code

    def read_blocktype(self) -> int | None:
        """
        Block types are either empty (0x40), a value type, or a signed 33-bit
        type index. Returns the type index, or None for the inline forms.
        """
        code = self.peek_byte()
        if code == EMPTY_BLOCKTYPE:
            self.pos += 1
            return None
        if code in SIMPLE_VALTYPES or code in REF_VALTYPES:
            self.read_valtype()
            return None
        index = self.read_s33()
        if index < 0:
            raise DecodeError(f"invalid block type {index}", self.offset)
        return index

    def read_limits(self) -> tuple[int, int | None]:
        flags = self.read_byte()
        if flags & ~0x07:
            raise DecodeError(f"invalid limits flags {flags:#x}", self.offset - 1)
        wide = flags & 0x04
        minimum = self.read_u64() if wide else self.read_u32()
        maximum = None
        if flags & 0x01:
            maximum = self.read_u64() if wide else self.read_u32()
        return minimum, maximum
