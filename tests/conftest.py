"""
Common test fixtures and configuration for VidLook tests.
"""
import asyncio
import dataclasses
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

import httpx
import pytest

from fixtures.sample_data import PRIMARY_HOSTS, SECONDARY_HOSTS
from vidlook.config import EngineSettings
from vidlook.session import VideoSession

Reply = Union[httpx.Response, Exception]


class ProviderStub:
    """
    Fake provider network for httpx.MockTransport.

    Routes are keyed by host and path. A route holds a queue of replies; the
    last reply repeats once the queue is drained. Unrouted requests get 404.
    Every request is recorded.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        base_url: str,
        path: str,
        json: Any = None,
        status: int = 200,
        error: Optional[Exception] = None,
        text: Optional[str] = None,
    ) -> "ProviderStub":
        host = urlparse(base_url).netloc
        if error is not None:
            reply: Reply = error
        elif text is not None:
            reply = httpx.Response(status, text=text)
        else:
            reply = httpx.Response(status, json=json)
        self.routes.setdefault((host, path), []).append(reply)
        return self

    def healthy(self, base_url: str, probe_path: str = "/api/v1/stats") -> "ProviderStub":
        return self.add(base_url, probe_path, json={"software": {"name": "stub"}})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.url.host, request.url.path))
        if not replies:
            return httpx.Response(404, json={"error": "not found"})
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            if isinstance(reply, httpx.RequestError):
                reply.request = request
            raise reply
        # Responses are rebuilt so a repeated reply can be read again
        return httpx.Response(
            reply.status_code, content=reply.content, headers=reply.headers
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requested(self, path_fragment: str = "") -> List[httpx.Request]:
        """Recorded requests whose path contains `path_fragment`."""
        return [r for r in self.requests if path_fragment in r.url.path]

    def data_requests(self) -> List[httpx.Request]:
        """Recorded requests excluding liveness probes."""
        return [
            r
            for r in self.requests
            if not r.url.path.endswith("/stats") and r.url.path != "/healthcheck"
        ]


@pytest.fixture
def temp_config_dir():
    """Create a temporary directory for config files during tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture(autouse=True)
def mock_user_config_dir(temp_config_dir, monkeypatch):
    """Automatically point the user config directory at a temp dir."""
    monkeypatch.setattr("vidlook.config.USER_CONFIG_DIR", temp_config_dir)
    monkeypatch.setattr(
        "vidlook.config.CONFIG_FILE_PATH", temp_config_dir / "config.ini"
    )


@pytest.fixture
def fast_settings() -> EngineSettings:
    """Settings against the stub hosts with no retry delay."""
    return EngineSettings(
        primary_instances=tuple(PRIMARY_HOSTS),
        secondary_instances=tuple(SECONDARY_HOSTS),
        retry_delay=0.0,
        debounce_seconds=0.01,
        request_timeout=1.0,
        probe_timeout=0.5,
        detail_timeout=1.0,
    )


@pytest.fixture
def provider_stub() -> ProviderStub:
    return ProviderStub()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_session(provider_stub, fast_settings, fake_clock):
    """Factory for sessions wired to the provider stub."""

    def factory(**overrides) -> VideoSession:
        settings = dataclasses.replace(fast_settings, **overrides)
        return VideoSession.create(
            settings=settings, transport=provider_stub.transport(), clock=fake_clock
        )

    return factory


@pytest.fixture
def run_session(make_session):
    """Run `scenario(session)` in a fresh event loop and return its result."""

    def runner(scenario, **overrides):
        async def main():
            async with make_session(**overrides) as session:
                return await scenario(session)

        return asyncio.run(main())

    return runner


@pytest.fixture
def healthy_providers(provider_stub) -> ProviderStub:
    """Provider stub where every configured instance passes its probe."""
    for host in PRIMARY_HOSTS:
        provider_stub.healthy(host)
    for host in SECONDARY_HOSTS:
        provider_stub.healthy(host, probe_path="/healthcheck")
    return provider_stub
