"""
Pytest configuration and shared fixtures
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from copurchase_scanner.clients.key_rotator import KeyRotator
from copurchase_scanner.clients.solanatracker_client import SolanaTrackerClient
from fakes import FakeSession


BASE_URL = "https://api.test"


@pytest.fixture
def no_sleep(monkeypatch):
    """Replace asyncio.sleep so backoff and scan delays are instant"""
    sleep = AsyncMock()
    monkeypatch.setattr(asyncio, "sleep", sleep)
    return sleep


@pytest.fixture
def make_client():
    """Build a client over a FakeSession answering through handler"""
    def _make(handler, keys=("k1",)):
        session = FakeSession(handler)
        client = SolanaTrackerClient(KeyRotator(list(keys)), BASE_URL, session=session)
        return client, session
    return _make
