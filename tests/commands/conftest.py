"""
Shared fixtures for command module tests.

Commands build their own app from settings, so these fixtures point the
settings at the sample world and swap the app's FeedClient for one
backed by httpx.MockTransport.
"""

import httpx
import pytest

from tests.conftest import WORLD_URL
from tribal_intel.core.async_client import FeedClient
from tribal_intel.core.config import reset_settings


@pytest.fixture
def offline_world(world_routes, monkeypatch):
    """Route every feed request of command-built apps to world_routes."""
    monkeypatch.setenv("TRIBAL_WORLD_URL", WORLD_URL)
    reset_settings()

    def make_feed_client(timeout: float = 15.0) -> FeedClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(world_routes.handler))
        return FeedClient(timeout=timeout, client=http)

    monkeypatch.setattr("tribal_intel.app.FeedClient", make_feed_client)
    return world_routes
