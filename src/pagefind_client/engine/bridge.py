"""Typed marshaling across the pagefind engine's call boundary.

The engine is a wasm-bindgen module with a single linear memory. Arguments
are copied into engine-owned allocations; string results come back as a
(pointer, length) pair written into a 16-byte scratch slot reserved on the
engine's shadow stack, and the caller frees the returned buffer.

``EngineBridge`` owns that allocate/copy/read/free cycle and exposes the
seven engine operations with explicit handles. ``EngineSession`` holds the
current handle, threads it through every call and serializes the calls that
change engine state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import logging
import struct
from typing import Any, Protocol

from pagefind_client.domain.model import ChunkKind


logger = logging.getLogger(__name__)

U32_MASK = 0xFFFFFFFF
SCRATCH_SIZE = 16
BYTE_ALIGN = 1

_RETURN_PAIR = struct.Struct("<II")


class EngineExports(Protocol):
    """The export surface of an instantiated engine module."""

    def memory_size(self) -> int:
        """Current byte size of the linear memory."""

    def memory_buffer(self) -> memoryview:
        """A writable byte view over the whole linear memory as it is now."""

    def call(self, name: str, *args: Any) -> Any:
        """Invoke the named export."""


class MemoryView:
    """Byte view over engine memory that is re-derived when the memory grows.

    Any call into the engine may grow its memory, which detaches views taken
    before the call. The view is therefore rebuilt whenever the reported
    size differs from the size it was taken at.
    """

    def __init__(self, exports: EngineExports):
        self._exports = exports
        self._view: memoryview | None = None
        self._size = -1

    def current(self) -> memoryview:
        size = self._exports.memory_size()
        if self._view is None or size != self._size:
            self._view = self._exports.memory_buffer()
            self._size = size
        return self._view

    def read(self, ptr: int, length: int) -> bytes:
        return bytes(self.current()[ptr : ptr + length])

    def write(self, ptr: int, data: bytes) -> None:
        self.current()[ptr : ptr + len(data)] = data

    def read_pair(self, ptr: int) -> tuple[int, int]:
        return _RETURN_PAIR.unpack_from(self.current(), ptr)


@dataclass
class _ReturnSlot:
    """Scratch slot address plus the buffer the engine wrote back into it."""

    address: int
    ptr: int | None = None
    length: int = 0


class EngineBridge:
    """Sequential adapter over the raw engine exports.

    Callers never see pointers: every method takes Python strings/bytes and
    returns a handle or a decoded string.
    """

    def __init__(self, exports: EngineExports):
        self._exports = exports
        self._memory = MemoryView(exports)

    def _pass_bytes(self, data: bytes) -> tuple[int, int]:
        ptr = self._exports.call("__wbindgen_malloc", len(data), BYTE_ALIGN) & U32_MASK
        self._memory.write(ptr, data)
        return ptr, len(data)

    def _pass_str(self, value: str) -> tuple[int, int]:
        return self._pass_bytes(value.encode("utf-8"))

    @contextmanager
    def _return_slot(self) -> Iterator[_ReturnSlot]:
        address = self._exports.call("__wbindgen_add_to_stack_pointer", -SCRATCH_SIZE) & U32_MASK
        slot = _ReturnSlot(address=address)
        try:
            yield slot
        finally:
            self._exports.call("__wbindgen_add_to_stack_pointer", SCRATCH_SIZE)
            if slot.ptr is not None:
                self._exports.call("__wbindgen_free", slot.ptr, slot.length, BYTE_ALIGN)

    def _call_for_string(self, name: str, handle: int, *strings: str, flags: tuple[Any, ...] = ()) -> str:
        with self._return_slot() as slot:
            args: list[int] = []
            for value in strings:
                args.extend(self._pass_str(value))
            self._exports.call(name, slot.address, handle, *args, *flags)
            slot.ptr, slot.length = self._memory.read_pair(slot.address)
            return self._memory.read(slot.ptr, slot.length).decode("utf-8")

    def _call_for_handle(self, name: str, handle: int, payload: bytes) -> int:
        ptr, length = self._pass_bytes(payload)
        return self._exports.call(name, handle, ptr, length) & U32_MASK

    # Engine operations

    def init(self, meta_bytes: bytes) -> int:
        ptr, length = self._pass_bytes(meta_bytes)
        return self._exports.call("init_pagefind", ptr, length) & U32_MASK

    def set_ranking_weights(self, handle: int, weights_json: str) -> int:
        return self._call_for_handle("set_ranking_weights", handle, weights_json.encode("utf-8"))

    def load_index_chunk(self, handle: int, chunk: bytes) -> int:
        return self._call_for_handle("load_index_chunk", handle, chunk)

    def load_filter_chunk(self, handle: int, chunk: bytes) -> int:
        return self._call_for_handle("load_filter_chunk", handle, chunk)

    def request_indexes(self, handle: int, query: str) -> str:
        """Space-separated hashes of the index chunks needed for ``query``."""
        return self._call_for_string("request_indexes", handle, query)

    def request_filter_indexes(self, handle: int, filters_json: str) -> str:
        """Space-separated hashes of the filter chunks needed for ``filters_json``."""
        return self._call_for_string("request_filter_indexes", handle, filters_json)

    def search(self, handle: int, query: str, filters_json: str, sort: str, exact: bool) -> str:
        return self._call_for_string("search", handle, query, filters_json, sort, flags=(int(exact),))


class EngineSession:
    """The single owner of an initialized engine.

    Holds the latest handle and threads it into every call. Calls that
    replace the handle (chunk loads, ranking updates, search) run under one
    lock so no two of them are ever in flight together.
    """

    def __init__(self, bridge: EngineBridge, handle: int):
        self._bridge = bridge
        self._handle = handle
        self._lock = asyncio.Lock()

    @classmethod
    def start(cls, bridge: EngineBridge, meta_bytes: bytes) -> EngineSession:
        handle = bridge.init(meta_bytes)
        logger.debug("Engine initialized with %d bytes of metadata", len(meta_bytes))
        return cls(bridge, handle)

    @property
    def handle(self) -> int:
        return self._handle

    async def set_ranking_weights(self, weights_json: str) -> None:
        async with self._lock:
            self._handle = self._bridge.set_ranking_weights(self._handle, weights_json)

    async def load_chunk(self, kind: ChunkKind, chunk: bytes) -> None:
        async with self._lock:
            if kind is ChunkKind.INDEX:
                self._handle = self._bridge.load_index_chunk(self._handle, chunk)
            elif kind is ChunkKind.FILTER:
                self._handle = self._bridge.load_filter_chunk(self._handle, chunk)
            else:
                raise ValueError(f"{kind.value} chunks are not loaded into the engine")

    def request_indexes(self, query: str) -> str:
        return self._bridge.request_indexes(self._handle, query)

    def request_filter_indexes(self, filters_json: str) -> str:
        return self._bridge.request_filter_indexes(self._handle, filters_json)

    async def search(self, query: str, filters_json: str, sort: str, exact: bool) -> str:
        async with self._lock:
            return self._bridge.search(self._handle, query, filters_json, sort, exact)
