"""Error hierarchy for the Pagefind client.

Every error carries enough context (url, hash or raw payload) to diagnose the
failure. None of them are retried by the client.
"""


class PagefindError(RuntimeError):
    """Base class for all client errors."""


class ManifestFetchError(PagefindError):
    """The index manifest could not be fetched or parsed. Fatal to initialization."""

    def __init__(self, url: str, status: int | None = None, reason: str | None = None):
        self.url = url
        self.status = status
        self.reason = reason
        detail = f"status {status}" if status is not None else (reason or "unknown error")
        super().__init__(f"Failed to fetch pagefind-entry.json from {url}: {detail}")


class NoLanguageIndexError(PagefindError):
    """The manifest lists no language indexes."""

    def __init__(self, url: str | None = None):
        self.url = url
        super().__init__("Pagefind: No language indexes found" + (f" in {url}" if url else ""))


class ChunkFetchError(PagefindError):
    """A chunk could not be fetched (network failure or non-success status)."""

    def __init__(self, url: str, status: int | None = None, reason: str | None = None):
        self.url = url
        self.status = status
        self.reason = reason
        detail = f"status {status}" if status is not None else (reason or "unknown error")
        super().__init__(f"Failed to fetch {url}: {detail}")


class DecodeError(PagefindError):
    """A chunk could not be decoded (corrupt gzip stream, invalid JSON or engine binary)."""

    def __init__(self, resource: str, reason: str):
        self.resource = resource
        self.reason = reason
        super().__init__(f"Failed to decode {resource}: {reason}")


class EngineUninitializedError(PagefindError):
    """Search was invoked before the engine was initialized."""

    def __init__(self) -> None:
        super().__init__("PagefindClient not initialized, call init() first")


class MalformedResponseError(PagefindError):
    """The engine returned a response that does not follow the wire grammar."""

    PREVIEW_LEN = 200

    def __init__(self, raw: str, reason: str):
        self.raw = raw
        self.reason = reason
        preview = raw if len(raw) <= self.PREVIEW_LEN else raw[: self.PREVIEW_LEN] + "..."
        super().__init__(f"Malformed engine response ({reason}): {preview!r}")
