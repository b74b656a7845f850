"""Engine layer - marshaling and hosting for the opaque pagefind engine."""

from pagefind_client.engine.bridge import EngineBridge, EngineExports, EngineSession, MemoryView


__all__ = [
    "EngineBridge",
    "EngineExports",
    "EngineSession",
    "MemoryView",
]
