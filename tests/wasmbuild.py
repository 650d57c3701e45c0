"""
Helpers that assemble tiny WebAssembly binaries byte by byte for the tests.
"""

MODULE_HEADER = b"\x00asm\x01\x00\x00\x00"
COMPONENT_HEADER = b"\x00asm\x0d\x00\x01\x00"

I32 = 0x7F
END = b"\x0b"
RETURN = b"\x0f"
DROP = b"\x1a"
I32_ADD = b"\x6a"


def uleb(value):
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def sleb(value):
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if (value == 0 and not byte & 0x40) or (value == -1 and byte & 0x40):
            out.append(byte)
            return bytes(out)
        out.append(byte | 0x80)


def vec(items):
    items = list(items)
    return uleb(len(items)) + b"".join(items)


def name(text):
    raw = text.encode()
    return uleb(len(raw)) + raw


def section(section_id, payload):
    return bytes([section_id]) + uleb(len(payload)) + payload


def module(*sections):
    return MODULE_HEADER + b"".join(sections)


def component(*modules, nested=()):
    sections = [section(1, m) for m in modules]
    sections += [section(4, c) for c in nested]
    return COMPONENT_HEADER + b"".join(sections)


# Instructions

def i32_const(value):
    return b"\x41" + sleb(value)


def call(index=0):
    return b"\x10" + uleb(index)


def global_get(index):
    return b"\x23" + uleb(index)


def local_get(index):
    return b"\x20" + uleb(index)


def local_set(index):
    return b"\x21" + uleb(index)


def local_tee(index):
    return b"\x22" + uleb(index)


def i32_load(offset=0):
    return b"\x28" + uleb(2) + uleb(offset)


# Sections

def import_section(functions=0, globals=0):
    entries = []
    for i in range(functions):
        entries.append(name("env") + name(f"f{i}") + b"\x00" + uleb(0))
    for i in range(globals):
        entries.append(name("env") + name(f"g{i}") + b"\x03" + bytes([I32, 0]))
    return section(2, vec(entries))


def global_section(*inits, mutable=False):
    """Each init is the raw instruction bytes of a constant expression."""
    return section(6, vec(bytes([I32, int(mutable)]) + init + END for init in inits))


def active_segment(offset, data):
    return uleb(0) + i32_const(offset) + END + uleb(len(data)) + data


def passive_segment(data):
    return uleb(1) + uleb(len(data)) + data


def data_section(*segments):
    """Segments are raw encoded segments or (offset, bytes) tuples."""
    encoded = [
        active_segment(*s) if isinstance(s, tuple) else s
        for s in segments
    ]
    return section(11, vec(encoded))


def func_body(code, locals=0):
    decls = vec([uleb(locals) + bytes([I32])]) if locals else vec([])
    body = decls + code + END
    return uleb(len(body)) + body


def code_section(*codes, locals=0):
    return section(10, vec(func_body(code, locals) for code in codes))


def raw_code_section(*bodies):
    """Bodies are already size-prefixed, possibly broken on purpose."""
    return section(10, vec(bodies))


def name_section(function_names):
    entries = vec(uleb(index) + name(n) for index, n in sorted(function_names.items()))
    return section(0, name("name") + b"\x01" + uleb(len(entries)) + entries)


def custom_section(section_name, payload):
    return section(0, name(section_name) + payload)


def getenv_call(pointer, length):
    return i32_const(pointer) + i32_const(length) + call(0)


def env_module(*names, base=0x10000, imports=1):
    """
    A module with every name packed into one data segment at ``base`` and a
    single function that passes each one to an imported function.
    """
    blob = b""
    code = b""
    for n in names:
        raw = n.encode()
        code += getenv_call(base + len(blob), len(raw)) + DROP
        blob += raw
    return module(
        import_section(functions=imports),
        code_section(code),
        data_section((base, blob)),
    )
