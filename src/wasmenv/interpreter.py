"""
wasmenv.interpreter
===================

Symbolic execution of a single function body over a two-point lattice.

Every stack slot and local holds either ``Known(i32)`` or ``UNKNOWN``. The
operator stream is walked once, left to right, ignoring control flow: block
and branch instructions don't touch the abstract state, so values are not
joined at merge points. This misses strings whose pointer depends on a branch
but reliably catches the common pattern of a string's address and length being
pushed right before the call that consumes it::

    i32.const 0x10040   ;; pointer
    i32.const 12        ;; length
    call $getenv

Only ``i32.add`` is modelled precisely, which is enough to follow
``base + field_offset`` address arithmetic. Loads, calls and every other
arithmetic instruction produce ``UNKNOWN``.

The interpreter doesn't look at memory; it returns the (pointer, length)
ranges that passed the call-site guard and leaves reading and classifying
them to the caller.
"""

import dataclasses
from typing import Iterable

from wasmenv import getColoredLogger
from wasmenv.memory import GlobalTable
from wasmenv.scan_config.structure import CallSite
from wasmenv.wasm import FunctionBody, Operator
from wasmenv.wasm import opcodes as OP

logger = getColoredLogger("wasmenv.interpreter")

U32_MASK = 0xFFFFFFFF


def to_i32(value: int) -> int:
    """Wrap an integer into the signed 32-bit range."""
    value &= U32_MASK
    return value - (1 << 32) if value & 0x80000000 else value


@dataclasses.dataclass(frozen=True)
class Known:
    value: int

    def __post_init__(self):
        object.__setattr__(self, "value", to_i32(self.value))

    def __repr__(self):
        return f"Known({self.value})"


class Unknown:
    """Top of the lattice. There is a single instance, UNKNOWN."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "Unknown"

    def __reduce__(self):
        return (Unknown, ())


UNKNOWN = Unknown()

AbstractValue = Known | Unknown


def add(a: AbstractValue, b: AbstractValue) -> AbstractValue:
    if isinstance(a, Known) and isinstance(b, Known):
        return Known(a.value + b.value)
    return UNKNOWN


class StackFrame:
    """
    Operand stack and locals for one function. Popping or peeking past the
    bottom of the stack yields UNKNOWN: imprecise opcodes make the modelled
    depth drift, and only the top two slots ever matter.
    """

    def __init__(self) -> None:
        self.stack: list[AbstractValue] = []
        self.locals: dict[int, AbstractValue] = {}

    def push(self, value: AbstractValue) -> None:
        self.stack.append(value)

    def pop(self) -> AbstractValue:
        if self.stack:
            return self.stack.pop()
        return UNKNOWN

    def peek(self, depth: int = 0) -> AbstractValue:
        if depth < len(self.stack):
            return self.stack[-1 - depth]
        return UNKNOWN

    def clear(self) -> None:
        self.stack.clear()

    def get_local(self, index: int) -> AbstractValue:
        return self.locals.get(index, UNKNOWN)

    def set_local(self, index: int, value: AbstractValue) -> None:
        self.locals[index] = value


class SymbolicInterpreter:
    """
    Walks function bodies of one module against its constant globals.

    :param globals: Constant global values for the module.
    :param call_site: Guards a (pointer, length) pair must pass to be reported.
    """

    def __init__(self, globals: GlobalTable, call_site: CallSite | None = None) -> None:
        self.globals = globals
        self.call_site = call_site or CallSite()
        self._handlers = self._build_handlers()

    def _build_handlers(self):
        handlers = {
            "i32.const": self._i32_const,
            "i64.const": self._push_unknown,
            "f32.const": self._push_unknown,
            "f64.const": self._push_unknown,
            "global.get": self._global_get,
            "local.get": self._local_get,
            "local.set": self._local_set,
            "local.tee": self._local_tee,
            "i32.add": self._i32_add,
            "i32.eqz": self._unary_unknown,
            "drop": self._drop,
            "select": self._select,
        }
        handlers.update({name: self._binary_unknown for name in OP.I32_BINARY_OPS})
        handlers.update({name: self._load for name in OP.LOAD_OPS})
        handlers.update({name: self._store for name in OP.STORE_OPS})
        handlers.update({name: self._call for name in OP.CALL_OPS})
        # Control instructions are listed only to document that they are no-ops
        handlers.update({name: None for name in OP.CONTROL_OPS})
        return handlers

    def interpret(self, body: FunctionBody) -> list[tuple[int, int]]:
        """
        Interpret one function body.

        :raises DecodeError: If the body can't be decoded. Ranges found before
            the bad instruction are discarded with the rest of the body.
        """
        return self.run(body.operators())

    def run(self, operators: Iterable[Operator]) -> list[tuple[int, int]]:
        frame = StackFrame()
        ranges: list[tuple[int, int]] = []
        for op in operators:
            if op.name == "return":
                break
            handler = self._handlers.get(op.name)
            if handler is not None:
                handler(frame, op, ranges)
        return ranges

    def _push_unknown(self, frame, op, ranges):
        frame.push(UNKNOWN)

    def _i32_const(self, frame, op, ranges):
        frame.push(Known(op.arg))

    def _global_get(self, frame, op, ranges):
        value = self.globals.get(op.arg)
        frame.push(UNKNOWN if value is None else Known(value))

    def _local_get(self, frame, op, ranges):
        frame.push(frame.get_local(op.arg))

    def _local_set(self, frame, op, ranges):
        frame.set_local(op.arg, frame.pop())

    def _local_tee(self, frame, op, ranges):
        frame.set_local(op.arg, frame.peek(0))

    def _i32_add(self, frame, op, ranges):
        b = frame.pop()
        a = frame.pop()
        frame.push(add(a, b))

    def _unary_unknown(self, frame, op, ranges):
        frame.pop()
        frame.push(UNKNOWN)

    def _binary_unknown(self, frame, op, ranges):
        frame.pop()
        frame.pop()
        frame.push(UNKNOWN)

    def _load(self, frame, op, ranges):
        frame.pop()
        frame.push(UNKNOWN)

    def _store(self, frame, op, ranges):
        frame.pop()
        frame.pop()

    def _drop(self, frame, op, ranges):
        frame.pop()

    def _select(self, frame, op, ranges):
        frame.pop()
        b = frame.pop()
        a = frame.pop()
        frame.push(a if a == b else UNKNOWN)

    def _call(self, frame, op, ranges):
        pointer = frame.peek(1)
        length = frame.peek(0)
        if isinstance(pointer, Known) and isinstance(length, Known):
            if self._plausible(pointer.value, length.value):
                logger.debug(
                    f"{op.name} at {op.offset:#x}: candidate {pointer.value & U32_MASK:#x}+{length.value}"
                )
                ranges.append((pointer.value & U32_MASK, length.value))
        # The callee's signature is unknown, so nothing below the call can be trusted
        frame.clear()
        frame.push(UNKNOWN)

    def _plausible(self, pointer: int, length: int) -> bool:
        guard = self.call_site
        return (
            pointer > guard.pointer_floor
            and guard.min_length <= length <= guard.max_length
        )
