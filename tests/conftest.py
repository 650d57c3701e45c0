import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(__file__))

import wasmbuild  # noqa: E402


@pytest.fixture
def wasm():
    return wasmbuild


@pytest.fixture
def wasm_file(tmp_path):
    def _write(data, filename="app.wasm"):
        path = tmp_path / filename
        path.write_bytes(data)
        return path
    return _write
