"""Unit test configuration: mark every test below this directory and isolate trace context."""

import logging
from pathlib import Path

import pytest

from pagefind_client.observability.context import clear_context


UNIT_ROOT = Path(__file__).resolve().parent


def pytest_collection_modifyitems(config, items):
    for item in items:
        if UNIT_ROOT in Path(item.path).resolve().parents:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def fresh_trace_context():
    """Start each test without trace ids or bundle context left by the previous one."""
    clear_context()


@pytest.fixture
def restore_root_logger():
    """Undo root logger changes made by ``configure_logging``."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    httpx_level = logging.getLogger("httpx").level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)
