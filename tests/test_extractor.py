from wasmenv.extractor import read_string
from wasmenv.memory import MemoryImage

IMAGE = MemoryImage([
    (0x10000, b"DATABASE_URLAPI_KEY"),
    (0x20000, b"\xff\xfe\xfd\xfc"),
    (0x30000, "CAFÉ".encode()),
    (0x40000, b"x" * 1200),
])


def test_reads_string():
    assert read_string(IMAGE, 0x10000, 12) == "DATABASE_URL"
    assert read_string(IMAGE, 0x1000C, 7) == "API_KEY"


def test_uninitialised_bytes():
    assert read_string(IMAGE, 0x1000C, 8) is None
    assert read_string(IMAGE, 0x50000, 4) is None


def test_invalid_utf8():
    assert read_string(IMAGE, 0x20000, 4) is None


def test_multibyte_utf8():
    assert read_string(IMAGE, 0x30000, 5) == "CAFÉ"


def test_length_bounds():
    assert read_string(IMAGE, 0x10000, 0) is None
    assert read_string(IMAGE, 0x10000, -1) is None
    assert read_string(IMAGE, 0x40000, 1000) == "x" * 1000
    assert read_string(IMAGE, 0x40000, 1001) is None
    assert read_string(IMAGE, 0x40000, 1100, max_length=2000) == "x" * 1100


def test_pointer_is_unsigned():
    image = MemoryImage([(0xFFFFFFF0, b"HOME_DIR")])
    assert read_string(image, -16, 8) == "HOME_DIR"
