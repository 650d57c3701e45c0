class WasmError(ValueError):
    """Base class for errors raised while handling WebAssembly binaries."""


class DecodeError(WasmError):
    """
    Raised when a binary can't be decoded: bad preamble, broken section
    framing, truncated bodies or opcodes we don't know how to skip.
    """
    def __init__(self, message: str, offset: int | None = None) -> None:
        self.message = message
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset:#x})"
        super().__init__(message)
