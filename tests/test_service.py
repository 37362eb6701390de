"""Tests for the result-dict service boundary."""

import pytest

from accounts import AccountAuthService
from conftest import usage_payload


@pytest.fixture
def service(http_client, portal, user_agent, sessions) -> AccountAuthService:
    return AccountAuthService(
        http_client=http_client,
        portal=portal,
        user_agent=user_agent,
        sessions=sessions,
        window_factory=lambda provider: None,
    )


SOCIAL_CREDENTIALS = {
    "id": "acct-1",
    "accessToken": "stale",
    "refreshToken": "refresh-1",
    "authMethod": "Social",
    "provider": "Google",
}


class TestResultShape:
    @pytest.mark.asyncio
    async def test_configuration_error_is_reported_not_raised(self, service, backend) -> None:
        result = await service.refresh_account_token({"authMethod": "OIDC", "refreshToken": "r"})

        assert result["success"] is False
        assert result["error"]["kind"] == "configuration"
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_non_object_credentials(self, service) -> None:
        result = await service.check_account_status(["not", "a", "dict"])
        assert result == {
            "success": False,
            "error": {"kind": "configuration", "message": "credentials must be an object"},
        }

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, service, monkeypatch) -> None:
        async def broken(bundle):
            raise KeyError("boom")

        monkeypatch.setattr(service.refresher, "refresh", broken)

        result = await service.refresh_account_token(SOCIAL_CREDENTIALS)

        assert result["success"] is False
        assert result["error"]["kind"] == "error"

    @pytest.mark.asyncio
    async def test_no_active_login(self, service) -> None:
        result = await service.poll_builder_id_login()
        assert result["error"]["kind"] == "no_active_login"


class TestOperations:
    @pytest.mark.asyncio
    async def test_refresh_account_token(self, service, backend) -> None:
        backend.add_json("/refreshToken", {"accessToken": "fresh", "expiresIn": 1200, "csrfToken": "c"})

        result = await service.refresh_account_token(SOCIAL_CREDENTIALS)

        assert result == {
            "success": True,
            "data": {
                "accessToken": "fresh",
                "refreshToken": "refresh-1",
                "expiresIn": 1200,
                "csrfToken": "c",
                "profileArn": None,
            },
        }

    @pytest.mark.asyncio
    async def test_check_status_refreshes_expired_token(self, service, backend) -> None:
        backend.add_cbor("/GetUserInfo", {})
        backend.add_cbor("/GetUserUsageAndLimits", {"message": "expired"}, status_code=401)
        backend.add_cbor("/GetUserUsageAndLimits", usage_payload())
        backend.add_json("/refreshToken", {"accessToken": "fresh", "refreshToken": "refresh-2", "expiresIn": 3600})

        result = await service.check_account_status(SOCIAL_CREDENTIALS)

        assert result["success"] is True
        assert result["data"]["email"] == "dev@example.com"
        assert result["data"]["newCredentials"]["accessToken"] == "fresh"
        assert result["data"]["newCredentials"]["refreshToken"] == "refresh-2"
        assert len(backend.calls("/refreshToken")) == 1
        retried = backend.calls("/GetUserUsageAndLimits")[-1]
        assert retried.headers["authorization"] == "Bearer fresh"

    @pytest.mark.asyncio
    async def test_check_status_banned_is_distinct(self, service, backend) -> None:
        backend.add_cbor("/GetUserInfo", {})
        backend.add_cbor("/GetUserUsageAndLimits", {"message": "locked"}, status_code=423)

        result = await service.check_account_status(SOCIAL_CREDENTIALS)

        assert result["error"]["kind"] == "banned"
        assert result["error"]["httpStatus"] == 423
        assert backend.calls("/refreshToken") == []

    @pytest.mark.asyncio
    async def test_verify_account_credentials(self, service, backend) -> None:
        backend.add_json("/refreshToken", {"accessToken": "fresh", "expiresIn": 3600})
        backend.add_cbor("/GetUserInfo", {"status": "Active"})
        backend.add_cbor("/GetUserUsageAndLimits", usage_payload(email="new@example.com"))

        result = await service.verify_account_credentials(SOCIAL_CREDENTIALS)

        assert result["success"] is True
        assert result["data"]["credentials"]["accessToken"] == "fresh"
        assert result["data"]["credentials"]["email"] == "new@example.com"
        assert result["data"]["account"]["status"] == "active"

    @pytest.mark.asyncio
    async def test_verify_login_tokens(self, service, backend) -> None:
        backend.add_cbor("/GetUserInfo", {})
        backend.add_cbor("/GetUserUsageAndLimits", usage_payload())

        result = await service.verify_login_tokens({
            "accessToken": "a",
            "refreshToken": "r",
            "clientId": "c",
            "clientSecret": "s",
            "region": "us-east-1",
            "expiresIn": 3600,
        })

        assert result["success"] is True
        credentials = result["data"]["credentials"]
        assert credentials["authMethod"] == "OIDC"
        assert credentials["provider"] == "BuilderId"
        assert credentials["expiresAt"] > 0
        assert backend.calls("/refreshToken") == []

    @pytest.mark.asyncio
    async def test_import_accounts(self, service, backend) -> None:
        backend.add_json("/refreshToken", {"accessToken": "fresh", "expiresIn": 3600})
        backend.add_cbor("/GetUserInfo", {})
        backend.add_cbor("/GetUserUsageAndLimits", usage_payload())

        result = await service.import_accounts([SOCIAL_CREDENTIALS, {"authMethod": "Social"}])

        assert result["success"] is True
        assert result["data"]["succeeded"] == 1
        assert result["data"]["failed"] == 1

    @pytest.mark.asyncio
    async def test_start_social_login(self, service) -> None:
        result = await service.start_social_login("Github", open_browser=False)

        assert result["success"] is True
        assert result["data"]["loginUrl"].startswith("https://prod.us-east-1.auth.desktop.kiro.dev/login?")

        cancelled = await service.cancel_social_login()
        assert cancelled == {"success": True, "data": {"cancelled": True}}
