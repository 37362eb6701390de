"""Tests for concurrent batch verification."""

import asyncio

import pytest

from accounts import BatchVerifier, CredentialBundle
from accounts.models import RefreshedTokens
from accounts.usage import build_snapshot
from conftest import usage_payload
from utils.errors import ConfigurationError, RefreshError

NOW = 1_700_000_000_000


class StubRefresher:
    def __init__(self) -> None:
        self.refreshed = []

    async def refresh(self, bundle):
        if bundle.refresh_token == "revoked":
            raise RefreshError("HTTP 401: Invalid refresh token")
        self.refreshed.append(bundle.refresh_token)
        return RefreshedTokens(access_token=f"access-for-{bundle.refresh_token}", refresh_token=bundle.refresh_token)


class StubVerifier:
    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0

    async def verify(self, access_token, idp="BuilderId"):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0)
        self.active -= 1
        return build_snapshot(usage_payload(email=f"{access_token}@example.com"), None, idp, NOW)


def social_item(refresh_token: str) -> dict:
    return {"refreshToken": refresh_token, "authMethod": "Social", "provider": "Github"}


@pytest.fixture
def batch() -> BatchVerifier:
    return BatchVerifier(StubRefresher(), StubVerifier(), concurrency=3)


class TestVerifyCredentials:
    @pytest.mark.asyncio
    async def test_refreshes_then_verifies(self, batch) -> None:
        verified = await batch.verify_credentials(CredentialBundle.from_dict(social_item("r-1")))

        assert verified.bundle.access_token == "access-for-r-1"
        assert verified.bundle.email == "access-for-r-1@example.com"
        assert verified.snapshot.idp == "Github"
        assert verified.to_dict()["credentials"]["authMethod"] == "Social"

    @pytest.mark.asyncio
    async def test_access_token_only(self, batch) -> None:
        verified = await batch.verify_credentials(CredentialBundle(access_token="direct"))
        assert verified.snapshot.email == "direct@example.com"
        assert batch.refresher.refreshed == []

    @pytest.mark.asyncio
    async def test_no_tokens_at_all(self, batch) -> None:
        with pytest.raises(ConfigurationError, match="Missing refreshToken"):
            await batch.verify_credentials(CredentialBundle())


class TestVerifyMany:
    @pytest.mark.asyncio
    async def test_one_bad_item_does_not_affect_others(self, batch) -> None:
        items = [social_item(f"r-{i}") for i in range(6)]
        items[3] = {"refreshToken": "r-3", "authMethod": "Carrier-Pigeon"}

        report = await batch.verify_many(items)

        assert report.succeeded == 5
        assert report.failed == 1
        assert report.errors == ["#4: Unknown authMethod: Carrier-Pigeon"]
        failed = [r for r in report.results if not r.success]
        assert failed[0].index == 3
        assert failed[0].error["kind"] == "configuration"

    @pytest.mark.asyncio
    async def test_each_failure_has_its_own_message(self, batch) -> None:
        items = [social_item("r-0"), "not-an-object", social_item("revoked"), {}]

        report = await batch.verify_many(items)

        assert [r.success for r in report.results] == [True, False, False, False]
        assert report.errors == [
            "#2: Credential entry must be an object",
            "#3: HTTP 401: Invalid refresh token",
            "#4: Missing refreshToken",
        ]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, batch) -> None:
        await batch.verify_many([social_item(f"r-{i}") for i in range(10)])
        assert 1 <= batch.verifier.max_active <= 3

    @pytest.mark.asyncio
    async def test_report_dict(self, batch) -> None:
        report = (await batch.verify_many([social_item("r-0"), {}])).to_dict()

        assert report["total"] == 2
        assert report["succeeded"] == 1
        assert report["failed"] == 1
        assert report["results"][0]["data"]["account"]["email"] == "access-for-r-0@example.com"
        assert report["results"][1]["error"]["kind"] == "configuration"
