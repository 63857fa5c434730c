"""Pytest configuration and shared fixtures for sync tests."""

import pytest

from tests.fakes import FakeChain, FakeIndexStore


@pytest.fixture
def chain() -> FakeChain:
    """Empty in-memory chain."""
    return FakeChain()


@pytest.fixture
def store() -> FakeIndexStore:
    """Empty in-memory index."""
    return FakeIndexStore()
