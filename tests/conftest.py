"""
Tribal Intel Test Suite - Shared Fixtures and Configuration
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from tribal_intel.core.async_client import FeedClient
from tribal_intel.core.config import reset_settings
from tribal_intel.core.logging import reset_logging

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    """Read a text fixture from tests/fixtures/."""
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture(autouse=True)
def isolated_instance(tmp_path: Path, monkeypatch):
    """
    Point every test at its own instance root and fresh settings.

    Also resets logging so caplog sees records from tribal_intel loggers.
    """
    monkeypatch.setenv("TRIBAL_INSTANCE_ROOT", str(tmp_path))
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)
    reset_settings()
    reset_logging()
    yield tmp_path
    reset_settings()
    reset_logging()


@pytest.fixture
def fixture_loader():
    return load_fixture


# =============================================================================
# HTTP Fixtures
# =============================================================================


class FeedRoutes:
    """
    Minimal router for httpx.MockTransport.

    Maps URL paths to (status, body) pairs and records every request.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes | str]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, body: bytes | str, status: int = 200) -> None:
        self.routes[path] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get(request.url.path, (404, "not found"))
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, content=body)

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)


@pytest.fixture
def feed_routes() -> FeedRoutes:
    return FeedRoutes()


@pytest_asyncio.fixture
async def feed_client(feed_routes: FeedRoutes):
    """FeedClient backed by feed_routes instead of the network."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(feed_routes.handler))
    client = FeedClient(timeout=5.0, client=http)
    yield client
    await http.aclose()


# =============================================================================
# Sample Feed Data
# =============================================================================

WORLD_URL = "https://es95.example.test"

# id,name,tribe_id,villages,points,rank
PLAYER_FEED = "\n".join(
    [
        "1,Alice,10,3,15000,1",
        "2,Bob,10,2,9000,2",
        "3,Carol+Smith,20,1,4000,3",
        "4,Dave,0,1,500,4",
    ]
)

# id,name,tag,members,villages,points,all_points,rank
TRIBE_FEED = "\n".join(
    [
        "10,Home+Guard,HG,2,5,24000,24000,1",
        "20,Red+Raiders,RR,1,1,4000,4000,2",
    ]
)

# id,name,x,y,player_id,points
VILLAGE_FEED = "\n".join(
    [
        "100,Alpha,500,500,1,9000",
        "101,Beta,501,500,1,3000",
        "102,Gamma,502,500,1,3000",
        "103,Delta,510,510,2,9000",
        "104,Epsilon,520,520,3,4000",
        "105,Barb,530,530,0,300",
    ]
)


@pytest.fixture
def world_routes(feed_routes: FeedRoutes) -> FeedRoutes:
    """feed_routes preloaded with the sample roster feeds."""
    feed_routes.add("/map/player.txt", PLAYER_FEED)
    feed_routes.add("/map/ally.txt", TRIBE_FEED)
    feed_routes.add("/map/village.txt", VILLAGE_FEED)
    return feed_routes


class FakeClock:
    """Callable clock for code that takes clock=time.time."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
