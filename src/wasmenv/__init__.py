from .common import getColoredLogger, yaml

from os.path import join, dirname

VERSION = open(join(dirname(__file__), "version.txt")).read().strip()

from .wasm import DecodeError  # noqa: E402
from .scanner import Scanner, scan_bytes, scan_file  # noqa: E402
