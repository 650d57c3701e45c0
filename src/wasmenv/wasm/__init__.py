from .exceptions import WasmError, DecodeError
from .module import (
    ConstExpr,
    DataSegment,
    FunctionBody,
    Global,
    Operator,
    WasmModule,
    decode_module,
    decode_modules,
    is_component,
)

__all__ = [
    "WasmError",
    "DecodeError",
    "ConstExpr",
    "DataSegment",
    "FunctionBody",
    "Global",
    "Operator",
    "WasmModule",
    "decode_module",
    "decode_modules",
    "is_component",
]
