"""
Pytest configuration and fixtures for settee tests.

HTTP is faked: responses are hand-built ``httpx.Response`` objects, or come
from an ``httpx.MockTransport`` handler for client tests.
"""

import httpx
import pytest
from entities import DB_URL, RecordingTransport

from settee import AsyncSetteeClient, Serializer, SetteeClient


@pytest.fixture
def serializer() -> Serializer:
    return Serializer()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def client(transport: RecordingTransport):
    """A SetteeClient whose requests go to the recording transport."""
    http = httpx.Client(transport=httpx.MockTransport(transport))
    with SetteeClient(DB_URL, client=http) as db:
        yield db
    http.close()


@pytest.fixture
async def async_client(transport: RecordingTransport):
    """An AsyncSetteeClient whose requests go to the recording transport."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    async with AsyncSetteeClient(DB_URL, client=http) as db:
        yield db
    await http.aclose()
