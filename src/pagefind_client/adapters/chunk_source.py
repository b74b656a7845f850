"""Byte transports for pagefind bundle files.

A bundle is addressed by a base path; every file (manifest, meta, engine
binary, chunks) is a relative path below it. Bundles are usually served
over HTTP but can also be read straight from a local build directory.
"""

from abc import ABC, abstractmethod
import asyncio
import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from pagefind_client.config import Settings
from pagefind_client.domain.errors import ChunkFetchError


logger = logging.getLogger(__name__)


def ensure_trailing_slash(base_path: str) -> str:
    return base_path if base_path.endswith("/") else f"{base_path}/"


class AbstractChunkSource(ABC):
    """Fetches raw (still compressed) bundle files by relative path."""

    @abstractmethod
    async def fetch(self, path: str) -> bytes:
        """Fetch the file at ``path``.

        Raises:
            ChunkFetchError: If the file is missing or cannot be retrieved
        """
        raise NotImplementedError

    @abstractmethod
    def describe(self, path: str) -> str:
        """Full url or filesystem path of ``path``, for messages."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release transport resources."""

        return


class HttpChunkSource(AbstractChunkSource):
    """Fetch bundle files over HTTP with a shared httpx client."""

    def __init__(self, base_url: str, settings: Settings, client: httpx.AsyncClient | None = None):
        self.base_url = ensure_trailing_slash(base_url)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout, connect=10.0),
            follow_redirects=True,
            headers={"User-Agent": settings.user_agent, "Accept": "*/*"},
        )

    def describe(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def fetch(self, path: str) -> bytes:
        url = self.describe(path)
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("Fetch failed for %s: status %s", url, exc.response.status_code)
            raise ChunkFetchError(url, status=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.warning("Fetch failed for %s: %s", url, exc)
            raise ChunkFetchError(url, reason=str(exc) or type(exc).__name__) from exc

        logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
        return resp.content

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class FilesystemChunkSource(AbstractChunkSource):
    """Read bundle files from a local directory."""

    def __init__(self, root: Path):
        self.root = root

    def describe(self, path: str) -> str:
        return str(self.root / path)

    async def fetch(self, path: str) -> bytes:
        file_path = self.root / path
        try:
            data = await asyncio.to_thread(file_path.read_bytes)
        except FileNotFoundError as exc:
            logger.warning("Bundle file not found: %s", file_path)
            raise ChunkFetchError(str(file_path), status=404) from exc
        except OSError as exc:
            logger.warning("Failed to read %s: %s", file_path, exc)
            raise ChunkFetchError(str(file_path), reason=str(exc)) from exc

        logger.debug("Read %s (%d bytes)", file_path, len(data))
        return data


def build_chunk_source(
    base_path: str,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> AbstractChunkSource:
    """Pick a transport for ``base_path``: http(s) URL, file:// URL or directory."""
    if settings.is_remote(base_path):
        return HttpChunkSource(base_path, settings, client=client)
    if base_path.startswith("file://"):
        return FilesystemChunkSource(Path(unquote(urlparse(base_path).path)))
    return FilesystemChunkSource(Path(base_path))
