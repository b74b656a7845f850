"""wasmtime host for the pagefind engine binary.

The engine module imports nothing, so it is instantiated with an empty
import list in its own store.
"""

from __future__ import annotations

import logging
from typing import Any

import wasmtime

from pagefind_client.domain.errors import DecodeError


logger = logging.getLogger(__name__)


class WasmtimeExports:
    """``EngineExports`` backed by a wasmtime instance."""

    def __init__(self, store: wasmtime.Store, instance: wasmtime.Instance):
        self._store = store
        self._exports = instance.exports(store)
        self._memory: wasmtime.Memory = self._exports["memory"]

    @classmethod
    def instantiate(cls, wasm_bytes: bytes, resource: str = "engine binary") -> WasmtimeExports:
        """Compile and instantiate an engine binary.

        Raises:
            DecodeError: If the bytes are not a valid module for this host
        """
        engine = wasmtime.Engine()
        store = wasmtime.Store(engine)
        try:
            module = wasmtime.Module(engine, wasm_bytes)
            instance = wasmtime.Instance(store, module, [])
        except wasmtime.WasmtimeError as exc:
            raise DecodeError(resource, f"engine instantiation failed: {exc}") from exc
        logger.debug("Instantiated engine module (%d bytes)", len(wasm_bytes))
        return cls(store, instance)

    def memory_size(self) -> int:
        return self._memory.data_len(self._store)

    def memory_buffer(self) -> memoryview:
        return memoryview(self._memory.get_buffer_ptr(self._store)).cast("B")

    def call(self, name: str, *args: Any) -> Any:
        func = self._exports[name]
        return func(self._store, *args)
