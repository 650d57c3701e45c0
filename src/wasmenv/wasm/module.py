"""
wasmenv.wasm.module
===================

Decoder for the parts of a WebAssembly binary the environment scan needs.

Section framing is validated eagerly so a broken module fails as a whole.
Function bodies are only framed here; their operators are decoded lazily by
:meth:`FunctionBody.operators` so one corrupt body can be skipped without
losing the rest of the module.
"""

import dataclasses
from typing import Iterator

from wasmenv import getColoredLogger

from . import opcodes as OP
from .exceptions import DecodeError
from .reader import BinaryReader

logger = getColoredLogger("wasmenv.wasm")

MAGIC = b"\x00asm"
MODULE_VERSION = b"\x01\x00\x00\x00"
COMPONENT_LAYER = b"\x01\x00"

# Core module section ids
SECTION_CUSTOM = 0
SECTION_IMPORT = 2
SECTION_GLOBAL = 6
SECTION_CODE = 10
SECTION_DATA = 11
MAX_SECTION_ID = 13

# Component section ids that can hold core modules
COMPONENT_SECTION_CORE_MODULE = 1
COMPONENT_SECTION_COMPONENT = 4
MAX_COMPONENT_SECTION_ID = 12

IMPORT_FUNC = 0x00
IMPORT_TABLE = 0x01
IMPORT_MEMORY = 0x02
IMPORT_GLOBAL = 0x03
IMPORT_TAG = 0x04


class Operator:
    """One decoded instruction: mnemonic, immediates and file offset."""
    __slots__ = ("name", "args", "offset")

    def __init__(self, name: str, args: tuple = (), offset: int = 0) -> None:
        self.name = name
        self.args = args
        self.offset = offset

    @property
    def arg(self):
        return self.args[0] if self.args else None

    def __eq__(self, other):
        if not isinstance(other, Operator):
            return NotImplemented
        return self.name == other.name and self.args == other.args

    def __hash__(self):
        return hash((self.name, self.args))

    def __repr__(self):
        if self.args:
            return f"Operator({self.name} {' '.join(map(str, self.args))})"
        return f"Operator({self.name})"


@dataclasses.dataclass(frozen=True)
class ConstExpr:
    operators: tuple[Operator, ...]


@dataclasses.dataclass(frozen=True)
class Global:
    index: int
    valtype: int
    mutable: bool
    init: ConstExpr


@dataclasses.dataclass(frozen=True)
class DataSegment:
    index: int
    data: bytes
    # None for passive segments
    offset_expr: ConstExpr | None = None
    memory: int = 0

    @property
    def active(self) -> bool:
        return self.offset_expr is not None


@dataclasses.dataclass(frozen=True)
class FunctionBody:
    index: int
    data: bytes
    offset: int = 0
    name: str | None = None

    def _reader(self) -> BinaryReader:
        return BinaryReader(self.data, base=self.offset)

    @staticmethod
    def _read_locals(reader: BinaryReader) -> int:
        total = 0
        for _ in range(reader.read_u32()):
            total += reader.read_u32()
            reader.read_valtype()
        return total

    def read_locals(self) -> int:
        """Return the number of declared locals (parameters excluded)."""
        return self._read_locals(self._reader())

    def operators(self) -> Iterator[Operator]:
        """
        Yield the operators of this body after its local declarations.
        Raises DecodeError part way through if the body is malformed.
        """
        reader = self._reader()
        self._read_locals(reader)
        while not reader.eof():
            yield read_operator(reader)

    def describe(self) -> str:
        if self.name:
            return f"function {self.index} ({self.name})"
        return f"function {self.index}"


@dataclasses.dataclass
class WasmModule:
    imported_functions: int = 0
    imported_globals: int = 0
    globals: list[Global] = dataclasses.field(default_factory=list)
    data_segments: list[DataSegment] = dataclasses.field(default_factory=list)
    functions: list[FunctionBody] = dataclasses.field(default_factory=list)
    function_names: dict[int, str] = dataclasses.field(default_factory=dict)


def _read_immediate(reader: BinaryReader, kind: str):
    if kind == OP.U32:
        return reader.read_u32()
    if kind == OP.S32:
        return reader.read_s32()
    if kind == OP.S64:
        return reader.read_s64()
    if kind == OP.F32:
        return reader.read_f32()
    if kind == OP.F64:
        return reader.read_f64()
    if kind == OP.BLOCKTYPE:
        return reader.read_blocktype()
    if kind == OP.MEMARG:
        align = reader.read_u32()
        memory = 0
        if align & 0x40:
            memory = reader.read_u32()
            align &= ~0x40
        return (align, reader.read_u64(), memory)
    if kind == OP.BR_TABLE:
        targets = tuple(reader.read_u32() for _ in range(reader.read_u32()))
        return (targets, reader.read_u32())
    if kind == OP.HEAPTYPE:
        return reader.read_heaptype()
    if kind == OP.VALTYPES:
        return tuple(reader.read_valtype() for _ in range(reader.read_u32()))
    if kind == OP.TRY_TABLE:
        clauses = []
        for _ in range(reader.read_u32()):
            clause_kind = reader.read_byte()
            if clause_kind in (0x00, 0x01):
                clauses.append((clause_kind, reader.read_u32(), reader.read_u32()))
            elif clause_kind in (0x02, 0x03):
                clauses.append((clause_kind, None, reader.read_u32()))
            else:
                raise DecodeError(f"invalid try_table catch kind {clause_kind:#x}", reader.offset - 1)
        return tuple(clauses)
    if kind in (OP.CASTFLAGS, OP.LANE, OP.BYTE):
        return reader.read_byte()
    if kind == OP.V128:
        return reader.read_bytes(16)
    raise DecodeError(f"unknown immediate kind {kind}", reader.offset)


def read_operator(reader: BinaryReader) -> Operator:
    offset = reader.offset
    code = reader.read_byte()
    if code in OP.PREFIXED_OPCODES:
        sub = reader.read_u32()
        entry = OP.PREFIXED_OPCODES[code].get(sub)
        if entry is None:
            raise DecodeError(f"unknown opcode {code:#x} {sub:#x}", offset)
    else:
        entry = OP.OPCODES.get(code)
        if entry is None:
            raise DecodeError(f"unknown opcode {code:#x}", offset)
    name, immediates = entry
    args = tuple(_read_immediate(reader, kind) for kind in immediates)
    return Operator(name, args, offset)


def read_const_expr(reader: BinaryReader) -> ConstExpr:
    operators = []
    while True:
        op = read_operator(reader)
        if op.name == "end":
            return ConstExpr(tuple(operators))
        operators.append(op)


def _parse_imports(reader: BinaryReader, module: WasmModule) -> None:
    for _ in range(reader.read_u32()):
        reader.read_name()
        reader.read_name()
        kind = reader.read_byte()
        if kind == IMPORT_FUNC:
            reader.read_u32()
            module.imported_functions += 1
        elif kind == IMPORT_TABLE:
            reader.read_valtype()
            reader.read_limits()
        elif kind == IMPORT_MEMORY:
            reader.read_limits()
        elif kind == IMPORT_GLOBAL:
            reader.read_valtype()
            reader.read_byte()
            module.imported_globals += 1
        elif kind == IMPORT_TAG:
            reader.read_byte()
            reader.read_u32()
        else:
            raise DecodeError(f"invalid import kind {kind:#x}", reader.offset - 1)


def _parse_globals(reader: BinaryReader, module: WasmModule) -> None:
    for position in range(reader.read_u32()):
        valtype = reader.read_valtype()
        mutability = reader.read_byte()
        if mutability not in (0, 1):
            raise DecodeError(f"invalid global mutability {mutability:#x}", reader.offset - 1)
        module.globals.append(Global(
            index=module.imported_globals + position,
            valtype=valtype,
            mutable=bool(mutability),
            init=read_const_expr(reader),
        ))


def _parse_data(reader: BinaryReader, module: WasmModule) -> None:
    for index in range(reader.read_u32()):
        flags = reader.read_u32()
        memory = 0
        offset_expr = None
        if flags == 2:
            memory = reader.read_u32()
        elif flags not in (0, 1):
            raise DecodeError(f"invalid data segment flags {flags:#x}", reader.offset)
        if flags != 1:
            offset_expr = read_const_expr(reader)
        data = reader.read_bytes(reader.read_u32())
        module.data_segments.append(DataSegment(index, data, offset_expr, memory))


def _parse_code(reader: BinaryReader, module: WasmModule) -> None:
    for position in range(reader.read_u32()):
        size = reader.read_u32()
        offset = reader.offset
        module.functions.append(FunctionBody(
            index=module.imported_functions + position,
            data=reader.read_bytes(size),
            offset=offset,
        ))


def _parse_names(reader: BinaryReader, module: WasmModule) -> None:
    # Only the function name subsection (id 1) is used, for log messages
    while not reader.eof():
        subsection = reader.read_byte()
        payload = reader.read_sub_reader(reader.read_u32())
        if subsection != 1:
            continue
        for _ in range(payload.read_u32()):
            index = payload.read_u32()
            module.function_names[index] = payload.read_name()


def _parse_custom(reader: BinaryReader, module: WasmModule) -> None:
    name = reader.read_name()
    if name == "name":
        # The name section is informational; a broken one must not fail the module
        try:
            _parse_names(reader, module)
        except DecodeError as e:
            logger.debug(f"ignoring malformed name section: {e}")
    reader.pos = len(reader.data)


SECTION_PARSERS = {
    SECTION_CUSTOM: _parse_custom,
    SECTION_IMPORT: _parse_imports,
    SECTION_GLOBAL: _parse_globals,
    SECTION_CODE: _parse_code,
    SECTION_DATA: _parse_data,
}


def _iter_sections(reader: BinaryReader, max_id: int) -> Iterator[tuple[int, BinaryReader]]:
    while not reader.eof():
        section_offset = reader.offset
        section_id = reader.read_byte()
        if section_id > max_id:
            raise DecodeError(f"unknown section id {section_id}", section_offset)
        size = reader.read_u32()
        yield section_id, reader.read_sub_reader(size)


def _check_preamble(data: bytes) -> bytes:
    if len(data) < 8:
        raise DecodeError("file too short for a WebAssembly header", 0)
    if data[:4] != MAGIC:
        raise DecodeError("bad magic number, not a WebAssembly binary", 0)
    return data[4:8]


def is_component(data: bytes) -> bool:
    return len(data) >= 8 and data[:4] == MAGIC and data[6:8] == COMPONENT_LAYER


def decode_module(data: bytes, base: int = 0) -> WasmModule:
    """
    Decode a core WebAssembly module.

    :param data: Raw bytes of the module, starting with the preamble.
    :param base: File offset of ``data`` when it is nested in a component.
    :return: Decoded WasmModule.
    :raises DecodeError: If the preamble or section framing is invalid.
    """
    version = _check_preamble(data)
    if version != MODULE_VERSION:
        raise DecodeError(f"unsupported module version {version.hex()}", base + 4)

    module = WasmModule()
    reader = BinaryReader(data, base=base)
    reader.skip(8)
    for section_id, section in _iter_sections(reader, MAX_SECTION_ID):
        parser = SECTION_PARSERS.get(section_id)
        if parser is None:
            continue
        parser(section, module)
        if not section.eof():
            raise DecodeError(
                f"section {section_id} has {section.remaining()} trailing bytes",
                section.offset,
            )

    if module.function_names:
        module.functions = [
            dataclasses.replace(body, name=module.function_names.get(body.index))
            for body in module.functions
        ]
    return module


def _decode_component(data: bytes, base: int, modules: list[WasmModule]) -> None:
    _check_preamble(data)
    if not is_component(data):
        raise DecodeError("nested component has a core module preamble", base)
    reader = BinaryReader(data, base=base)
    reader.skip(8)
    for section_id, section in _iter_sections(reader, MAX_COMPONENT_SECTION_ID):
        if section_id == COMPONENT_SECTION_CORE_MODULE:
            modules.append(decode_module(bytes(section.data), base=section.base))
        elif section_id == COMPONENT_SECTION_COMPONENT:
            _decode_component(bytes(section.data), section.base, modules)


def decode_modules(data: bytes) -> list[WasmModule]:
    """
    Decode every core module in a binary.

    A core module yields itself; a component yields each embedded core module
    in file order, including those of nested components.
    """
    _check_preamble(data)
    if is_component(data):
        modules = []
        _decode_component(data, 0, modules)
        logger.debug(f"component contains {len(modules)} core module(s)")
        return modules
    return [decode_module(data)]
