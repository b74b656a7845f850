"""Unit tests for the load-once chunk store."""

import asyncio

import pytest

from pagefind_client.domain.errors import ChunkFetchError, DecodeError
from pagefind_client.domain.model import ChunkKind
from pagefind_client.engine.bridge import EngineBridge, EngineSession
from pagefind_client.service_layer.chunk_store import ChunkStore, fetch_decompressed
from tests.fixtures.bundle import pack


@pytest.fixture
def session(fake_engine):
    return EngineSession.start(EngineBridge(fake_engine), b"meta")


@pytest.fixture
def store(chunk_source, session):
    return ChunkStore(chunk_source, session, max_concurrency=2)


@pytest.mark.unit
class TestFetchDecompressed:
    @pytest.mark.asyncio
    async def test_returns_payload(self, chunk_source):
        assert await fetch_decompressed(chunk_source, "index/idx_hello.pf_index", "index") == b"index-hello"

    @pytest.mark.asyncio
    async def test_missing_file_raises_fetch_error(self, chunk_source):
        with pytest.raises(ChunkFetchError) as exc_info:
            await fetch_decompressed(chunk_source, "index/missing.pf_index", "index")

        assert exc_info.value.status == 404
        assert exc_info.value.url.endswith("index/missing.pf_index")

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_decode_error(self, chunk_source):
        chunk_source.files["index/broken.pf_index"] = b"\x1f\x8bnot-really-gzip"

        with pytest.raises(DecodeError):
            await fetch_decompressed(chunk_source, "index/broken.pf_index", "index")


@pytest.mark.unit
class TestChunkStore:
    @pytest.mark.asyncio
    async def test_load_index_chunk_into_engine(self, store, chunk_source, fake_engine):
        await store.load(ChunkKind.INDEX, "idx_hello")

        assert fake_engine.loaded_index == [b"index-hello"]
        assert chunk_source.fetches == ["index/idx_hello.pf_index"]
        assert store.is_loaded(ChunkKind.INDEX, "idx_hello")

    @pytest.mark.asyncio
    async def test_concurrent_requests_fetch_and_load_once(self, store, chunk_source, fake_engine):
        await asyncio.gather(*(store.load(ChunkKind.INDEX, "idx_hello") for _ in range(5)))

        assert chunk_source.fetches == ["index/idx_hello.pf_index"]
        assert fake_engine.loaded_index == [b"index-hello"]

    @pytest.mark.asyncio
    async def test_repeat_request_is_a_no_op(self, store, chunk_source, fake_engine):
        await store.load(ChunkKind.FILTER, "flt_lang")
        await store.load(ChunkKind.FILTER, "flt_lang")

        assert chunk_source.fetches == ["filter/flt_lang.pf_filter"]
        assert fake_engine.loaded_filter == [b"filter-lang"]

    @pytest.mark.asyncio
    async def test_distinct_hashes_load_independently(self, store, fake_engine):
        await asyncio.gather(
            store.load(ChunkKind.INDEX, "idx_hello"),
            store.load(ChunkKind.INDEX, "idx_world"),
            store.load(ChunkKind.FILTER, "flt_lang"),
        )

        assert sorted(fake_engine.loaded_index) == [b"index-hello", b"index-world"]
        assert fake_engine.loaded_filter == [b"filter-lang"]
        assert store.stats() == {"index": 2, "filter": 1, "fragment": 0}

    @pytest.mark.asyncio
    async def test_failure_reaches_every_waiter_and_is_not_retried(self, store, chunk_source):
        outcomes = await asyncio.gather(
            store.load(ChunkKind.INDEX, "missing"),
            store.load(ChunkKind.INDEX, "missing"),
            return_exceptions=True,
        )

        assert all(isinstance(outcome, ChunkFetchError) for outcome in outcomes)
        with pytest.raises(ChunkFetchError):
            await store.load(ChunkKind.INDEX, "missing")
        assert chunk_source.fetches == ["index/missing.pf_index"]
        assert not store.is_loaded(ChunkKind.INDEX, "missing")

    @pytest.mark.asyncio
    async def test_fragment_is_parsed_and_shared(self, store, chunk_source):
        first, second = await asyncio.gather(store.fragment("intro"), store.fragment("intro"))

        assert first is second
        assert first.url == "/docs/intro/"
        assert first.title == "Intro"
        assert chunk_source.fetches == ["fragment/intro.pf_fragment"]
        assert store.is_loaded(ChunkKind.FRAGMENT, "intro")

    @pytest.mark.asyncio
    async def test_loading_fragment_kind_goes_through_fragment_cache(self, store, fake_engine):
        await store.load(ChunkKind.FRAGMENT, "install")

        assert fake_engine.loaded_index == []
        assert (await store.fragment("install")).meta["image"] == "/img/install.png"
        assert store.stats()["fragment"] == 1

    @pytest.mark.asyncio
    async def test_invalid_fragment_json_raises_decode_error(self, store, chunk_source):
        chunk_source.files["fragment/bad.pf_fragment"] = pack(b'{"content": "no url"}')

        with pytest.raises(DecodeError, match="bad.pf_fragment"):
            await store.fragment("bad")

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_shared_load(self, store, fake_engine):
        waiter = asyncio.ensure_future(store.load(ChunkKind.INDEX, "idx_hello"))
        await asyncio.sleep(0)
        waiter.cancel()

        await store.load(ChunkKind.INDEX, "idx_hello")

        assert fake_engine.loaded_index == [b"index-hello"]
