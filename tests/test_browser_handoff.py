"""Tests for handing login URLs to BitBrowser or the OS browser."""

import json

import httpx
import pytest

from social_oauth import BrowserLauncher
from utils.errors import ProtocolError

LOGIN_URL = "https://login.test/authorize"


@pytest.fixture
def opened_urls():
    return []


@pytest.fixture
def launcher(http_client, opened_urls) -> BrowserLauncher:
    return BrowserLauncher(
        bitbrowser_port=54345,
        bitbrowser_id="profile-1",
        http_client=http_client,
        opener=opened_urls.append,
    )


class TestOpen:
    @pytest.mark.asyncio
    async def test_bitbrowser_receives_url(self, launcher, backend, opened_urls) -> None:
        backend.add_json("/browser/open", {"success": True})

        assert await launcher.open(LOGIN_URL) == "bitbrowser"

        request = backend.calls("/browser/open")[0]
        assert str(request.url) == "http://127.0.0.1:54345/browser/open"
        assert json.loads(request.content) == {"id": "profile-1", "args": [LOGIN_URL]}
        assert opened_urls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,body",
        [
            (500, {"error": "internal"}),
            (200, {"success": False, "msg": "profile not found"}),
        ],
    )
    async def test_failed_handoff_falls_back(self, launcher, backend, opened_urls, status_code, body) -> None:
        backend.add_json("/browser/open", body, status_code=status_code)

        assert await launcher.open(LOGIN_URL) == "system"
        assert opened_urls == [LOGIN_URL]

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_falls_back(self, backend, opened_urls) -> None:
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend.add("/browser/open", refuse)
        launcher = BrowserLauncher(
            bitbrowser_port=54345,
            bitbrowser_id="profile-1",
            http_client=backend.client(),
            opener=opened_urls.append,
        )

        assert await launcher.open(LOGIN_URL) == "system"
        assert opened_urls == [LOGIN_URL]

    @pytest.mark.asyncio
    async def test_not_configured_uses_system_browser(self, backend, opened_urls) -> None:
        launcher = BrowserLauncher(bitbrowser_port=0, bitbrowser_id="", opener=opened_urls.append)

        assert await launcher.open(LOGIN_URL) == "system"
        assert opened_urls == [LOGIN_URL]
        assert backend.requests == []


class TestClose:
    @pytest.mark.asyncio
    async def test_close_profile(self, launcher, backend) -> None:
        backend.add_json("/browser/close", {"success": True})

        await launcher.close_bitbrowser()

        assert json.loads(backend.calls("/browser/close")[0].content) == {"id": "profile-1"}

    @pytest.mark.asyncio
    async def test_close_failure_raises(self, launcher, backend) -> None:
        backend.add_json("/browser/close", {"success": False, "msg": "profile busy"})

        with pytest.raises(ProtocolError, match="profile busy"):
            await launcher.close_bitbrowser()
