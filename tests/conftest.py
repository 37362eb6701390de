"""Shared fixtures: a scripted fake backend, a fixed user agent and fresh session slots."""

from typing import Any, Callable, Dict, List, Optional

import cbor2
import httpx
import pytest

from headers.user_agent import UserAgentProvider
from portal import PortalClient
from utils.machine_id import MachineIdStore
from utils.sessions import LoginSessionRegistry

PORTAL_BASE = "https://portal.test/operation"


def cbor_response(data: Any, status_code: int = 200, headers: Optional[List] = None) -> httpx.Response:
    """Build a CBOR response; ``headers`` may repeat names (e.g. set-cookie)."""
    return httpx.Response(
        status_code,
        content=cbor2.dumps(data),
        headers=[("content-type", "application/cbor")] + list(headers or []),
    )


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=data)


class FakeBackend:
    """Routes requests by URL path suffix to scripted responses.

    Each route holds a queue of response factories; the last one is
    repeated once the queue is down to a single entry.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, List[Callable[[httpx.Request], httpx.Response]]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, suffix: str, factory: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes.setdefault(suffix, []).append(factory)

    def add_json(self, suffix: str, data: Any, status_code: int = 200) -> None:
        self.add(suffix, lambda request: json_response(data, status_code))

    def add_cbor(self, suffix: str, data: Any, status_code: int = 200, headers: Optional[List] = None) -> None:
        self.add(suffix, lambda request: cbor_response(data, status_code, headers))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, queue in self.routes.items():
            if request.url.path.endswith(suffix):
                factory = queue.pop(0) if len(queue) > 1 else queue[0]
                return factory(request)
        return httpx.Response(404, text=f"no route for {request.url.path}")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls(self, suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def http_client(backend: FakeBackend) -> httpx.AsyncClient:
    return backend.client()


@pytest.fixture
def user_agent(tmp_path) -> UserAgentProvider:
    store = MachineIdStore(str(tmp_path / "machine_id"))
    store.save_machine_id("test-machine")
    return UserAgentProvider(app_version="0.9.0", machine_ids=store)


@pytest.fixture
def portal(http_client: httpx.AsyncClient, user_agent: UserAgentProvider) -> PortalClient:
    return PortalClient(base_url=PORTAL_BASE, user_agent=user_agent, http_client=http_client)


@pytest.fixture
def sessions() -> LoginSessionRegistry:
    return LoginSessionRegistry()


def usage_payload(
    email: str = "dev@example.com",
    base_limit: int = 50,
    base_current: int = 5,
    title: str = "KIRO FREE",
    **extra: Any,
) -> Dict[str, Any]:
    """Minimal GetUserUsageAndLimits response."""
    payload = {
        "userInfo": {"email": email, "userId": "user-1"},
        "subscriptionInfo": {"subscriptionTitle": title, "type": "Q_DEVELOPER_STANDALONE_FREE"},
        "usageBreakdownList": [
            {
                "resourceType": "CREDIT",
                "displayName": "Credits",
                "usageLimit": base_limit,
                "currentUsage": base_current,
            }
        ],
    }
    payload.update(extra)
    return payload
