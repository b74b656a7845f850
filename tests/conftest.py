"""Shared test fixtures and configuration."""

import os
from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# Complete test environment that overrides the configurable values
TEST_ENV = {
    "PAGEFIND_BASE_PATH": "https://docs.example.com/pagefind/",
    "PAGEFIND_EXCERPT_LENGTH": "30",
    "PAGEFIND_HTTP_TIMEOUT": "30",
    "PAGEFIND_MAX_CONCURRENT_REQUESTS": "4",
    "PAGEFIND_LOG_LEVEL": "info",
    "PAGEFIND_LOG_JSON": "true",
    # Proxy settings - ensure they're cleared for tests
    "http_proxy": "",
    "https_proxy": "",
    "all_proxy": "",
    "no_proxy": "",
}

RANKING_ENV = (
    "PAGEFIND_RANKING_TERM_SIMILARITY",
    "PAGEFIND_RANKING_PAGE_LENGTH",
    "PAGEFIND_RANKING_TERM_SATURATION",
    "PAGEFIND_RANKING_TERM_FREQUENCY",
)


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value

from pagefind_client.config import Settings
from tests.fixtures.bundle import InMemoryChunkSource, make_bundle
from tests.fixtures.fake_engine import FakeEngineExports


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset environment variables before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    for key in RANKING_ENV:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def test_settings():
    """Settings with explicit values, independent of any local .env file."""
    return Settings(
        base_path="https://docs.example.com/pagefind/",
        excerpt_length=30,
        max_concurrent_requests=4,
        _env_file=None,
    )


@pytest.fixture
def fake_engine():
    """Fresh in-memory engine exports."""
    return FakeEngineExports()


@pytest.fixture
def bundle_files():
    """Files of a small two-page bundle, keyed by relative path."""
    return make_bundle()


@pytest.fixture
def chunk_source(bundle_files):
    """Chunk source serving the sample bundle from memory."""
    return InMemoryChunkSource(bundle_files)
