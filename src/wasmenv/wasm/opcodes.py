'''
Opcode tables for the WebAssembly code section.

Each table maps an opcode to ``(name, immediates)`` where ``name`` is the
text-format mnemonic and ``immediates`` is a tuple of immediate kinds the
decoder has to consume after the opcode. The analysis only cares about a
handful of instructions, but every instruction has to be skipped correctly
for the ones after it to decode at all.
'''

# Immediate kinds understood by wasm.module._read_immediate
U32 = "u32"
S32 = "s32"
S64 = "s64"
F32 = "f32"
F64 = "f64"
BLOCKTYPE = "blocktype"
BR_TABLE = "br_table"
MEMARG = "memarg"
HEAPTYPE = "heaptype"
VALTYPES = "valtypes"
TRY_TABLE = "try_table"
CASTFLAGS = "castflags"
LANE = "lane"
V128 = "v128"
BYTE = "byte"

NONE = ()

OPCODES: dict[int, tuple[str, tuple]] = {
    # Control
    0x00: ("unreachable", NONE),
    0x01: ("nop", NONE),
    0x02: ("block", (BLOCKTYPE,)),
    0x03: ("loop", (BLOCKTYPE,)),
    0x04: ("if", (BLOCKTYPE,)),
    0x05: ("else", NONE),
    0x06: ("try", (BLOCKTYPE,)),
    0x07: ("catch", (U32,)),
    0x08: ("throw", (U32,)),
    0x09: ("rethrow", (U32,)),
    0x0A: ("throw_ref", NONE),
    0x0B: ("end", NONE),
    0x0C: ("br", (U32,)),
    0x0D: ("br_if", (U32,)),
    0x0E: ("br_table", (BR_TABLE,)),
    0x0F: ("return", NONE),
    0x10: ("call", (U32,)),
    0x11: ("call_indirect", (U32, U32)),
    0x12: ("return_call", (U32,)),
    0x13: ("return_call_indirect", (U32, U32)),
    0x14: ("call_ref", (U32,)),
    0x15: ("return_call_ref", (U32,)),
    0x18: ("delegate", (U32,)),
    0x19: ("catch_all", NONE),
    # Parametric
    0x1A: ("drop", NONE),
    0x1B: ("select", NONE),
    0x1C: ("select", (VALTYPES,)),
    0x1F: ("try_table", (BLOCKTYPE, TRY_TABLE)),
    # Variables
    0x20: ("local.get", (U32,)),
    0x21: ("local.set", (U32,)),
    0x22: ("local.tee", (U32,)),
    0x23: ("global.get", (U32,)),
    0x24: ("global.set", (U32,)),
    0x25: ("table.get", (U32,)),
    0x26: ("table.set", (U32,)),
    # Memory
    0x28: ("i32.load", (MEMARG,)),
    0x29: ("i64.load", (MEMARG,)),
    0x2A: ("f32.load", (MEMARG,)),
    0x2B: ("f64.load", (MEMARG,)),
    0x2C: ("i32.load8_s", (MEMARG,)),
    0x2D: ("i32.load8_u", (MEMARG,)),
    0x2E: ("i32.load16_s", (MEMARG,)),
    0x2F: ("i32.load16_u", (MEMARG,)),
    0x30: ("i64.load8_s", (MEMARG,)),
    0x31: ("i64.load8_u", (MEMARG,)),
    0x32: ("i64.load16_s", (MEMARG,)),
    0x33: ("i64.load16_u", (MEMARG,)),
    0x34: ("i64.load32_s", (MEMARG,)),
    0x35: ("i64.load32_u", (MEMARG,)),
    0x36: ("i32.store", (MEMARG,)),
    0x37: ("i64.store", (MEMARG,)),
    0x38: ("f32.store", (MEMARG,)),
    0x39: ("f64.store", (MEMARG,)),
    0x3A: ("i32.store8", (MEMARG,)),
    0x3B: ("i32.store16", (MEMARG,)),
    0x3C: ("i64.store8", (MEMARG,)),
    0x3D: ("i64.store16", (MEMARG,)),
    0x3E: ("i64.store32", (MEMARG,)),
    0x3F: ("memory.size", (U32,)),
    0x40: ("memory.grow", (U32,)),
    # Constants
    0x41: ("i32.const", (S32,)),
    0x42: ("i64.const", (S64,)),
    0x43: ("f32.const", (F32,)),
    0x44: ("f64.const", (F64,)),
    # References
    0xD0: ("ref.null", (HEAPTYPE,)),
    0xD1: ("ref.is_null", NONE),
    0xD2: ("ref.func", (U32,)),
    0xD3: ("ref.eq", NONE),
    0xD4: ("ref.as_non_null", NONE),
    0xD5: ("br_on_null", (U32,)),
    0xD6: ("br_on_non_null", (U32,)),
}

# Numeric instructions without immediates, 0x45 - 0xC4, in opcode order
_NUMERIC = """
i32.eqz i32.eq i32.ne i32.lt_s i32.lt_u i32.gt_s i32.gt_u i32.le_s i32.le_u
i32.ge_s i32.ge_u
i64.eqz i64.eq i64.ne i64.lt_s i64.lt_u i64.gt_s i64.gt_u i64.le_s i64.le_u
i64.ge_s i64.ge_u
f32.eq f32.ne f32.lt f32.gt f32.le f32.ge
f64.eq f64.ne f64.lt f64.gt f64.le f64.ge
i32.clz i32.ctz i32.popcnt i32.add i32.sub i32.mul i32.div_s i32.div_u
i32.rem_s i32.rem_u i32.and i32.or i32.xor i32.shl i32.shr_s i32.shr_u
i32.rotl i32.rotr
i64.clz i64.ctz i64.popcnt i64.add i64.sub i64.mul i64.div_s i64.div_u
i64.rem_s i64.rem_u i64.and i64.or i64.xor i64.shl i64.shr_s i64.shr_u
i64.rotl i64.rotr
f32.abs f32.neg f32.ceil f32.floor f32.trunc f32.nearest f32.sqrt f32.add
f32.sub f32.mul f32.div f32.min f32.max f32.copysign
f64.abs f64.neg f64.ceil f64.floor f64.trunc f64.nearest f64.sqrt f64.add
f64.sub f64.mul f64.div f64.min f64.max f64.copysign
i32.wrap_i64 i32.trunc_f32_s i32.trunc_f32_u i32.trunc_f64_s i32.trunc_f64_u
i64.extend_i32_s i64.extend_i32_u i64.trunc_f32_s i64.trunc_f32_u
i64.trunc_f64_s i64.trunc_f64_u
f32.convert_i32_s f32.convert_i32_u f32.convert_i64_s f32.convert_i64_u
f32.demote_f64
f64.convert_i32_s f64.convert_i32_u f64.convert_i64_s f64.convert_i64_u
f64.promote_f32
i32.reinterpret_f32 i64.reinterpret_f64 f32.reinterpret_i32 f64.reinterpret_i64
i32.extend8_s i32.extend16_s i64.extend8_s i64.extend16_s i64.extend32_s
""".split()

for _code, _name in enumerate(_NUMERIC, start=0x45):
    OPCODES[_code] = (_name, NONE)
assert OPCODES[0x6A][0] == "i32.add" and OPCODES[0xC4][0] == "i64.extend32_s"

# 0xFC prefix: saturating truncation, bulk memory and table instructions
MISC_OPCODES: dict[int, tuple[str, tuple]] = {
    0x00: ("i32.trunc_sat_f32_s", NONE),
    0x01: ("i32.trunc_sat_f32_u", NONE),
    0x02: ("i32.trunc_sat_f64_s", NONE),
    0x03: ("i32.trunc_sat_f64_u", NONE),
    0x04: ("i64.trunc_sat_f32_s", NONE),
    0x05: ("i64.trunc_sat_f32_u", NONE),
    0x06: ("i64.trunc_sat_f64_s", NONE),
    0x07: ("i64.trunc_sat_f64_u", NONE),
    0x08: ("memory.init", (U32, U32)),
    0x09: ("data.drop", (U32,)),
    0x0A: ("memory.copy", (U32, U32)),
    0x0B: ("memory.fill", (U32,)),
    0x0C: ("table.init", (U32, U32)),
    0x0D: ("elem.drop", (U32,)),
    0x0E: ("table.copy", (U32, U32)),
    0x0F: ("table.grow", (U32,)),
    0x10: ("table.size", (U32,)),
    0x11: ("table.fill", (U32,)),
}

# 0xFB prefix: garbage collection proposal
GC_OPCODES: dict[int, tuple[str, tuple]] = {
    0x00: ("struct.new", (U32,)),
    0x01: ("struct.new_default", (U32,)),
    0x02: ("struct.get", (U32, U32)),
    0x03: ("struct.get_s", (U32, U32)),
    0x04: ("struct.get_u", (U32, U32)),
    0x05: ("struct.set", (U32, U32)),
    0x06: ("array.new", (U32,)),
    0x07: ("array.new_default", (U32,)),
    0x08: ("array.new_fixed", (U32, U32)),
    0x09: ("array.new_data", (U32, U32)),
    0x0A: ("array.new_elem", (U32, U32)),
    0x0B: ("array.get", (U32,)),
    0x0C: ("array.get_s", (U32,)),
    0x0D: ("array.get_u", (U32,)),
    0x0E: ("array.set", (U32,)),
    0x0F: ("array.len", NONE),
    0x10: ("array.fill", (U32,)),
    0x11: ("array.copy", (U32, U32)),
    0x12: ("array.init_data", (U32, U32)),
    0x13: ("array.init_elem", (U32, U32)),
    0x14: ("ref.test", (HEAPTYPE,)),
    0x15: ("ref.test", (HEAPTYPE,)),
    0x16: ("ref.cast", (HEAPTYPE,)),
    0x17: ("ref.cast", (HEAPTYPE,)),
    0x18: ("br_on_cast", (CASTFLAGS, U32, HEAPTYPE, HEAPTYPE)),
    0x19: ("br_on_cast_fail", (CASTFLAGS, U32, HEAPTYPE, HEAPTYPE)),
    0x1A: ("any.convert_extern", NONE),
    0x1B: ("extern.convert_any", NONE),
    0x1C: ("ref.i31", NONE),
    0x1D: ("i31.get_s", NONE),
    0x1E: ("i31.get_u", NONE),
}


def _simd_opcodes() -> dict[int, tuple[str, tuple]]:
    # Only the memory and lane instructions carry immediates; the rest of the
    # 0xFD space is plain arithmetic we name by number.
    table = {}
    for code in range(0x00, 0x114):
        table[code] = (f"simd.{code:#x}", NONE)
    memory_ops = {
        0x00: "v128.load", 0x01: "v128.load8x8_s", 0x02: "v128.load8x8_u",
        0x03: "v128.load16x4_s", 0x04: "v128.load16x4_u",
        0x05: "v128.load32x2_s", 0x06: "v128.load32x2_u",
        0x07: "v128.load8_splat", 0x08: "v128.load16_splat",
        0x09: "v128.load32_splat", 0x0A: "v128.load64_splat",
        0x0B: "v128.store", 0x5C: "v128.load32_zero", 0x5D: "v128.load64_zero",
    }
    for code, name in memory_ops.items():
        table[code] = (name, (MEMARG,))
    table[0x0C] = ("v128.const", (V128,))
    table[0x0D] = ("i8x16.shuffle", (V128,))
    for code in range(0x15, 0x23):
        table[code] = (f"simd.lane.{code:#x}", (LANE,))
    for code in range(0x54, 0x5C):
        table[code] = (f"v128.lane_mem.{code:#x}", (MEMARG, LANE))
    return table


SIMD_OPCODES = _simd_opcodes()


def _atomic_opcodes() -> dict[int, tuple[str, tuple]]:
    table = {0x03: ("atomic.fence", (BYTE,))}
    for code in list(range(0x00, 0x03)) + list(range(0x10, 0x4F)):
        table[code] = (f"atomic.{code:#x}", (MEMARG,))
    return table


ATOMIC_OPCODES = _atomic_opcodes()

PREFIXED_OPCODES: dict[int, dict[int, tuple[str, tuple]]] = {
    0xFB: GC_OPCODES,
    0xFC: MISC_OPCODES,
    0xFD: SIMD_OPCODES,
    0xFE: ATOMIC_OPCODES,
}

# Instruction classes the symbolic interpreter gives meaning to
I32_BINARY_OPS = frozenset([
    "i32.sub", "i32.mul", "i32.div_s", "i32.div_u", "i32.rem_s", "i32.rem_u",
    "i32.eq", "i32.ne", "i32.lt_s", "i32.lt_u", "i32.gt_s", "i32.gt_u",
    "i32.le_s", "i32.le_u", "i32.ge_s", "i32.ge_u",
    "i32.and", "i32.or", "i32.xor", "i32.shl", "i32.shr_s", "i32.shr_u",
    "i32.rotl", "i32.rotr",
])
LOAD_OPS = frozenset(
    name for name, imm in OPCODES.values() if ".load" in name
) | {"v128.load"}
STORE_OPS = frozenset(
    name for name, imm in OPCODES.values() if ".store" in name
) | {"v128.store"}
CALL_OPS = frozenset(["call", "call_indirect"])
CONTROL_OPS = frozenset([
    "block", "loop", "if", "else", "end", "br", "br_if", "br_table",
    "unreachable", "nop",
])
