"""Shared fixtures: isolated data dir, fresh logger, store and API client."""

import logging

import pytest

import config
from tracekit.models import Binding, Entry, Session
from tracekit.store import SessionStore


@pytest.fixture(autouse=True)
def _isolated_data_dir(tmp_path, monkeypatch):
    """Point logs at a temp dir and start every test with a clean logger."""
    monkeypatch.setenv("TRACELENS_DIR", str(tmp_path / "data"))
    config._reset_data_dir()
    monkeypatch.setattr("tracekit.logging._current_log_file", None)
    logger = logging.getLogger("tracelens")
    logger.handlers.clear()
    logger.filters.clear()
    yield
    for h in logger.handlers:
        h.close()
    logger.handlers.clear()
    config._reset_data_dir()


def make_entries(lines, file=None) -> tuple:
    """Entries at the given lines; each carries its own index as a binding."""
    return tuple(
        Entry(line=line, file=file, content=(Binding("i", i),))
        for i, line in enumerate(lines)
    )


def make_session(lines=(1, 2, 3), **kwargs) -> Session:
    return Session(entries=make_entries(lines), **kwargs)


@pytest.fixture
def store():
    s = SessionStore()
    yield s
    s.close()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from api.app import create_app

    with TestClient(create_app()) as c:
        yield c
