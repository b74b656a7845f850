"""Unit tests for the wasmtime engine host, using a tiny hand-written module."""

import pytest
import wasmtime

from pagefind_client.domain.errors import DecodeError
from pagefind_client.engine.bridge import MemoryView
from pagefind_client.engine.wasm import WasmtimeExports


PAGE_SIZE = 65536

MODULE_WAT = """
(module
  (memory (export "memory") 1)
  (func (export "add") (param i32 i32) (result i32)
    (i32.add (local.get 0) (local.get 1)))
  (func (export "grow") (result i32)
    (memory.grow (i32.const 1))))
"""


@pytest.fixture
def exports():
    return WasmtimeExports.instantiate(wasmtime.wat2wasm(MODULE_WAT))


@pytest.mark.unit
class TestWasmtimeExports:
    def test_calls_exported_function(self, exports):
        assert exports.call("add", 2, 3) == 5

    def test_memory_buffer_is_writable(self, exports):
        buffer = exports.memory_buffer()
        buffer[100:105] = b"hello"

        assert exports.memory_size() == PAGE_SIZE
        assert bytes(exports.memory_buffer()[100:105]) == b"hello"

    def test_memory_view_follows_growth(self, exports):
        view = MemoryView(exports)
        view.write(10, b"before")

        exports.call("grow")
        view.write(PAGE_SIZE + 10, b"after")

        assert exports.memory_size() == 2 * PAGE_SIZE
        assert view.read(10, 6) == b"before"
        assert view.read(PAGE_SIZE + 10, 5) == b"after"

    def test_invalid_binary_raises_decode_error(self):
        with pytest.raises(DecodeError, match="engine binary"):
            WasmtimeExports.instantiate(b"\x00asm-not-a-module")
