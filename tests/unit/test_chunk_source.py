"""Unit tests for the HTTP and filesystem bundle transports."""

import httpx
import pytest

from pagefind_client.adapters.chunk_source import (
    FilesystemChunkSource,
    HttpChunkSource,
    build_chunk_source,
    ensure_trailing_slash,
)
from pagefind_client.domain.errors import ChunkFetchError


BASE_URL = "https://docs.example.com/pagefind"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestHttpChunkSource:
    @pytest.mark.asyncio
    async def test_fetch_joins_base_url(self, test_settings):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, content=b"chunk-bytes")

        async with _client(handler) as client:
            source = HttpChunkSource(BASE_URL, test_settings, client=client)
            data = await source.fetch("index/abc.pf_index")

        assert data == b"chunk-bytes"
        assert seen == ["https://docs.example.com/pagefind/index/abc.pf_index"]

    @pytest.mark.asyncio
    async def test_non_success_status_raises_with_status(self, test_settings):
        async with _client(lambda request: httpx.Response(404)) as client:
            source = HttpChunkSource(BASE_URL, test_settings, client=client)

            with pytest.raises(ChunkFetchError) as exc_info:
                await source.fetch("fragment/gone.pf_fragment")

        assert exc_info.value.status == 404
        assert exc_info.value.url == "https://docs.example.com/pagefind/fragment/gone.pf_fragment"
        assert "status 404" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_failure_raises_with_reason(self, test_settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            source = HttpChunkSource(BASE_URL, test_settings, client=client)

            with pytest.raises(ChunkFetchError) as exc_info:
                await source.fetch("pagefind-entry.json")

        assert exc_info.value.status is None
        assert "connection refused" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self, test_settings):
        async with _client(lambda request: httpx.Response(200)) as client:
            source = HttpChunkSource(BASE_URL, test_settings, client=client)
            await source.aclose()

            assert not client.is_closed

    @pytest.mark.asyncio
    async def test_aclose_closes_owned_client(self, test_settings):
        source = HttpChunkSource(BASE_URL, test_settings)

        await source.aclose()

        assert source._client.is_closed

    @pytest.mark.asyncio
    async def test_owned_client_sends_user_agent(self, test_settings):
        source = HttpChunkSource(BASE_URL, test_settings)
        try:
            assert source._client.headers["User-Agent"] == test_settings.user_agent
        finally:
            await source.aclose()


@pytest.mark.unit
class TestFilesystemChunkSource:
    @pytest.mark.asyncio
    async def test_reads_relative_path(self, tmp_path):
        (tmp_path / "index").mkdir()
        (tmp_path / "index" / "abc.pf_index").write_bytes(b"local-chunk")

        source = FilesystemChunkSource(tmp_path)

        assert await source.fetch("index/abc.pf_index") == b"local-chunk"
        assert source.describe("index/abc.pf_index") == str(tmp_path / "index" / "abc.pf_index")

    @pytest.mark.asyncio
    async def test_missing_file_is_a_404(self, tmp_path):
        source = FilesystemChunkSource(tmp_path)

        with pytest.raises(ChunkFetchError) as exc_info:
            await source.fetch("pagefind-entry.json")

        assert exc_info.value.status == 404


@pytest.mark.unit
class TestBuildChunkSource:
    def test_http_url(self, test_settings):
        client = httpx.AsyncClient()
        source = build_chunk_source("https://docs.example.com/pagefind", test_settings, client=client)

        assert isinstance(source, HttpChunkSource)
        assert source.base_url == "https://docs.example.com/pagefind/"

    def test_http_url_with_local_settings(self, test_settings):
        settings = test_settings.model_copy(update={"base_path": "/srv/site/pagefind"})

        source = build_chunk_source("http://docs.example.com/pagefind/", settings, client=httpx.AsyncClient())

        assert isinstance(source, HttpChunkSource)
        assert source.base_url == "http://docs.example.com/pagefind/"

    def test_file_url(self, test_settings, tmp_path):
        source = build_chunk_source(f"file://{tmp_path}/", test_settings)

        assert isinstance(source, FilesystemChunkSource)
        assert source.root == tmp_path

    def test_directory(self, test_settings, tmp_path):
        source = build_chunk_source(str(tmp_path), test_settings)

        assert isinstance(source, FilesystemChunkSource)
        assert source.root == tmp_path


@pytest.mark.unit
@pytest.mark.parametrize(
    ("base", "expected"),
    [
        ("https://example.com/pagefind", "https://example.com/pagefind/"),
        ("https://example.com/pagefind/", "https://example.com/pagefind/"),
        ("/srv/site/pagefind", "/srv/site/pagefind/"),
    ],
)
def test_ensure_trailing_slash(base, expected):
    assert ensure_trailing_slash(base) == expected
