from wasmenv.memory import MemoryImage

DEFAULT_MAX_LENGTH = 1000


def read_string(
    image: MemoryImage,
    pointer: int,
    length: int,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> str | None:
    """
    Materialise the UTF-8 string at ``pointer`` from the static memory image.

    Returns None when the range is empty or longer than ``max_length``, when
    any byte of it was never initialised by a data segment, or when the bytes
    are not valid UTF-8. Most call-site pairs aren't strings, so none of these
    are errors.
    """
    if length <= 0 or length > max_length:
        return None

    data = image.read(pointer & 0xFFFFFFFF, length)
    if data is None:
        return None

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None
