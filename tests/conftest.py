"""Pytest configuration and fixtures for synergy tests."""

import logging
from datetime import datetime, timezone

import pytest

from synergy.repository import Repository
from synergy.storage import MemoryStorage

FIXED_NOW = datetime(2026, 2, 9, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reenable_logging():
    """CLI runs without a log file disable logging process-wide; undo that."""
    yield
    logging.disable(logging.NOTSET)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def repo(storage):
    return Repository(storage, clock=lambda: FIXED_NOW)


@pytest.fixture
def alice(repo):
    return repo.create_user("alice@example.com", "Alice Doe", "secret")


@pytest.fixture
def bob(repo):
    return repo.create_user("bob@example.com", "Bob Roe", "hunter2")


@pytest.fixture
def project(repo, alice):
    return repo.create_project(alice.id, "Launch")
