"""Tests for the per-scheme token refresher."""

import json

import cbor2
import httpx
import pytest

from accounts import AuthMethod, CredentialBundle, Provider, TokenRefresher
from accounts.refresher import OidcRefreshStrategy, SocialRefreshStrategy
from utils.errors import AccountBannedError, ConfigurationError, RefreshError


@pytest.fixture
def refresher(portal, user_agent, http_client):
    return TokenRefresher(portal=portal, user_agent=user_agent, http_client=http_client)


def oidc_bundle(**overrides) -> CredentialBundle:
    fields = dict(
        access_token="old-access",
        refresh_token="old-refresh",
        auth_method=AuthMethod.OIDC,
        provider=Provider.BUILDER_ID,
        client_id="client-1",
        client_secret="secret-1",
        region="eu-west-1",
    )
    fields.update(overrides)
    return CredentialBundle(**fields)


def social_bundle(**overrides) -> CredentialBundle:
    fields = dict(
        access_token="old-access",
        refresh_token="old-refresh",
        auth_method=AuthMethod.SOCIAL,
        provider=Provider.GITHUB,
    )
    fields.update(overrides)
    return CredentialBundle(**fields)


def web_bundle(**overrides) -> CredentialBundle:
    fields = dict(
        access_token="old-access",
        refresh_token="session-1",
        auth_method=AuthMethod.WEB_OAUTH,
        provider=Provider.GOOGLE,
        csrf_token="csrf-1",
    )
    fields.update(overrides)
    return CredentialBundle(**fields)


class TestOidc:
    @pytest.mark.asyncio
    async def test_refresh(self, refresher, backend) -> None:
        backend.add_json("/token", {"accessToken": "new-access", "refreshToken": "new-refresh", "expiresIn": 900})

        tokens = await refresher.refresh(oidc_bundle())

        assert tokens.access_token == "new-access"
        assert tokens.refresh_token == "new-refresh"
        assert tokens.expires_in == 900

        request = backend.requests[0]
        assert request.url.host == "oidc.eu-west-1.amazonaws.com"
        assert json.loads(request.content) == {
            "clientId": "client-1",
            "clientSecret": "secret-1",
            "refreshToken": "old-refresh",
            "grantType": "refresh_token",
        }
        assert request.headers["user-agent"] == "aws-sdk-js/1.0.0 KiroIDE-0.9.0-test-machine"

    @pytest.mark.asyncio
    async def test_missing_refresh_token_in_response_keeps_old_one(self, refresher, backend) -> None:
        backend.add_json("/token", {"accessToken": "new-access"})

        tokens = await refresher.refresh(oidc_bundle())

        assert tokens.refresh_token == "old-refresh"
        assert tokens.expires_in == 3600

    @pytest.mark.asyncio
    async def test_missing_client_secret_fails_before_network(self, refresher, backend) -> None:
        with pytest.raises(ConfigurationError):
            await refresher.refresh(oidc_bundle(client_secret=None))
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_http_error_becomes_refresh_error(self, refresher, backend) -> None:
        backend.add_json("/token", {"error": "invalid_grant"}, status_code=400)

        with pytest.raises(RefreshError, match="HTTP 400"):
            await refresher.refresh(oidc_bundle())


class TestSocial:
    @pytest.mark.asyncio
    async def test_refresh_uses_pinned_user_agent(self, refresher, backend) -> None:
        backend.add_json(
            "/refreshToken",
            {"accessToken": "new-access", "expiresIn": 3600, "profileArn": "arn:aws:profile/1"},
        )

        tokens = await refresher.refresh(social_bundle())

        request = backend.requests[0]
        assert request.url.host == "prod.us-east-1.auth.desktop.kiro.dev"
        assert request.headers["user-agent"] == "KiroBatchLoginCLI/1.0.0"
        assert json.loads(request.content) == {"refreshToken": "old-refresh"}
        assert tokens.access_token == "new-access"
        assert tokens.refresh_token == "old-refresh"
        assert tokens.profile_arn == "arn:aws:profile/1"

    @pytest.mark.asyncio
    async def test_error_message_is_preserved(self, refresher, backend) -> None:
        backend.add("/refreshToken", lambda request: httpx.Response(401, text="Invalid refresh token"))

        with pytest.raises(RefreshError) as exc_info:
            await refresher.refresh(social_bundle())
        assert exc_info.value.message == "HTTP 401: Invalid refresh token"

    @pytest.mark.asyncio
    async def test_missing_refresh_token(self, refresher, backend) -> None:
        with pytest.raises(ConfigurationError):
            await refresher.refresh(social_bundle(refresh_token=None))
        assert backend.requests == []


class TestWebOAuth:
    @pytest.mark.asyncio
    async def test_refresh_sends_session_cookie_and_csrf(self, refresher, backend) -> None:
        backend.add_cbor("/RefreshToken", {"accessToken": "new-access", "csrfToken": "csrf-2", "expiresIn": 1800})

        tokens = await refresher.refresh(web_bundle())

        request = backend.requests[0]
        assert request.headers["cookie"] == "AccessToken=old-access; RefreshToken=session-1; Idp=Google"
        assert request.headers["x-csrf-token"] == "csrf-1"
        assert "authorization" not in request.headers
        assert cbor2.loads(request.content) == {"csrfToken": "csrf-1"}

        assert tokens.access_token == "new-access"
        assert tokens.csrf_token == "csrf-2"
        assert tokens.refresh_token == "session-1"
        assert tokens.expires_in == 1800

    @pytest.mark.asyncio
    async def test_banned_propagates(self, refresher, backend) -> None:
        backend.add_cbor("/RefreshToken", {"__type": "ns#AccountSuspendedException", "message": "x"}, status_code=423)

        with pytest.raises(AccountBannedError):
            await refresher.refresh(web_bundle())

    @pytest.mark.asyncio
    async def test_missing_csrf_token(self, refresher, backend) -> None:
        with pytest.raises(ConfigurationError):
            await refresher.refresh(web_bundle(csrf_token=None))
        assert backend.requests == []


class TestDispatch:
    def test_every_scheme_needs_a_strategy(self, user_agent) -> None:
        with pytest.raises(ConfigurationError, match="WebOAuth"):
            TokenRefresher(strategies=[OidcRefreshStrategy(user_agent), SocialRefreshStrategy()])

    def test_strategy_for_matches_auth_method(self, refresher) -> None:
        for bundle in (oidc_bundle(), social_bundle(), web_bundle()):
            assert refresher.strategy_for(bundle).auth_method == bundle.auth_method
