"""Tests for the Builder ID device-code flow."""

import asyncio
import json

import httpx
import pytest

from builder_id_oauth import DeviceAuthorizationFlow, DeviceFlowState
from utils.errors import (
    AuthorizationDeniedError,
    FlowExpiredError,
    LoginCancelledError,
    NoActiveLoginError,
    ProtocolError,
)


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def flow(sessions, http_client, clock) -> DeviceAuthorizationFlow:
    return DeviceAuthorizationFlow(sessions.device, http_client, clock=clock)


def script_start(backend, expires_in: int = 600, interval: int = 5) -> None:
    backend.add_json("/client/register", {"clientId": "client-1", "clientSecret": "secret-1"})
    backend.add_json(
        "/device_authorization",
        {
            "deviceCode": "device-1",
            "userCode": "ABCD-EFGH",
            "verificationUri": "https://device.sso.us-east-1.amazonaws.com/",
            "verificationUriComplete": "https://device.sso.us-east-1.amazonaws.com/?user_code=ABCD-EFGH",
            "expiresIn": expires_in,
            "interval": interval,
        },
    )


class TestStart:
    @pytest.mark.asyncio
    async def test_start_registers_and_requests_code(self, flow, backend) -> None:
        script_start(backend)

        info = await flow.start("us-east-1")

        assert info.to_dict() == {
            "userCode": "ABCD-EFGH",
            "verificationUri": "https://device.sso.us-east-1.amazonaws.com/?user_code=ABCD-EFGH",
            "expiresIn": 600,
            "interval": 5,
        }
        register = json.loads(backend.calls("/client/register")[0].content)
        assert register["clientName"] == "Kiro-Cloud-Auth"
        assert register["clientType"] == "public"
        assert len(register["scopes"]) == 5
        assert register["grantTypes"] == ["urn:ietf:params:oauth:grant-type:device_code", "refresh_token"]

        device = json.loads(backend.calls("/device_authorization")[0].content)
        assert device == {
            "clientId": "client-1",
            "clientSecret": "secret-1",
            "startUrl": "https://view.awsapps.com/start",
        }
        assert flow.session.state == DeviceFlowState.DEVICE_CODE_ISSUED

    @pytest.mark.asyncio
    async def test_registration_failure(self, flow, backend) -> None:
        backend.add_json("/client/register", {"error": "nope"}, status_code=500)

        with pytest.raises(ProtocolError):
            await flow.start("us-east-1")
        assert flow.session is None

    @pytest.mark.asyncio
    async def test_new_start_supersedes_previous(self, flow, backend) -> None:
        script_start(backend)
        await flow.start("us-east-1")
        first = flow.session

        await flow.start("us-east-1")

        assert flow.session is not first
        assert first.state == DeviceFlowState.CANCELLED


class TestPoll:
    @pytest.mark.asyncio
    async def test_poll_without_session(self, flow) -> None:
        with pytest.raises(NoActiveLoginError):
            await flow.poll()

    @pytest.mark.asyncio
    async def test_pending_keeps_session(self, flow, backend) -> None:
        script_start(backend)
        backend.add_json("/token", {"error": "authorization_pending"}, status_code=400)
        await flow.start("us-east-1")

        result = await flow.poll()

        assert result.status == "pending"
        assert not result.completed
        assert flow.session.state == DeviceFlowState.POLLING

    @pytest.mark.asyncio
    async def test_slow_down_increases_interval(self, flow, backend) -> None:
        script_start(backend, interval=5)
        backend.add_json("/token", {"error": "slow_down"}, status_code=400)
        await flow.start("us-east-1")

        first = await flow.poll()
        second = await flow.poll()

        assert first.interval == 10
        assert second.interval == 15
        assert flow.session.interval == 15

    @pytest.mark.asyncio
    async def test_success_returns_tokens_and_destroys_session(self, flow, backend) -> None:
        script_start(backend)
        backend.add_json("/token", {"error": "authorization_pending"}, status_code=400)
        backend.add_json("/token", {"accessToken": "access-1", "refreshToken": "refresh-1", "expiresIn": 3600})
        await flow.start("us-east-1")
        session = flow.session

        await flow.poll()
        result = await flow.poll()

        assert result.completed
        assert result.tokens == {
            "accessToken": "access-1",
            "refreshToken": "refresh-1",
            "clientId": "client-1",
            "clientSecret": "secret-1",
            "region": "us-east-1",
            "expiresIn": 3600,
        }
        assert flow.session is None
        assert session.state == DeviceFlowState.COMPLETED

        token_request = json.loads(backend.calls("/token")[-1].content)
        assert token_request["grantType"] == "urn:ietf:params:oauth:grant-type:device_code"
        assert token_request["deviceCode"] == "device-1"

    @pytest.mark.asyncio
    async def test_expired_session_fails_without_network(self, flow, backend, clock) -> None:
        script_start(backend, expires_in=600)
        await flow.start("us-east-1")
        requests_before = len(backend.requests)

        clock.now += 601 * 1000
        with pytest.raises(FlowExpiredError):
            await flow.poll()

        assert len(backend.requests) == requests_before
        assert flow.session is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,exception,state",
        [
            ("expired_token", FlowExpiredError, DeviceFlowState.EXPIRED),
            ("access_denied", AuthorizationDeniedError, DeviceFlowState.DENIED),
        ],
    )
    async def test_terminal_errors_destroy_session(self, flow, backend, error, exception, state) -> None:
        script_start(backend)
        backend.add_json("/token", {"error": error}, status_code=400)
        await flow.start("us-east-1")
        session = flow.session

        with pytest.raises(exception):
            await flow.poll()

        assert flow.session is None
        assert session.state == state

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, json={"refreshToken": "refresh-1", "expiresIn": 3600}),
            httpx.Response(200, text="<html>ok</html>"),
        ],
    )
    async def test_success_without_access_token_is_an_error(self, flow, backend, response) -> None:
        script_start(backend)
        backend.add("/token", lambda request: response)
        await flow.start("us-east-1")
        session = flow.session

        with pytest.raises(ProtocolError) as exc_info:
            await flow.poll()

        assert exc_info.value.http_status == 200
        assert flow.session is None
        assert session.state == DeviceFlowState.DENIED

    @pytest.mark.asyncio
    async def test_server_error_keeps_session(self, flow, backend) -> None:
        script_start(backend)
        backend.add_json("/token", {"message": "boom"}, status_code=500)
        await flow.start("us-east-1")

        with pytest.raises(ProtocolError) as exc_info:
            await flow.poll()

        assert exc_info.value.http_status == 500
        assert flow.session is not None


class TestWaitAndCancel:
    @pytest.mark.asyncio
    async def test_wait_for_tokens_follows_interval(self, flow, backend) -> None:
        script_start(backend, interval=2)
        backend.add_json("/token", {"error": "slow_down"}, status_code=400)
        backend.add_json("/token", {"accessToken": "access-1", "refreshToken": "refresh-1", "expiresIn": 3600})
        await flow.start("us-east-1")

        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        tokens = await flow.wait_for_tokens(sleep=fake_sleep)

        assert tokens["accessToken"] == "access-1"
        assert sleeps == [2, 7]

    @pytest.mark.asyncio
    async def test_cancel_interrupts_waiter(self, flow, backend) -> None:
        script_start(backend)
        await flow.start("us-east-1")
        blocked = asyncio.Event()

        async def blocking_sleep(seconds):
            await blocked.wait()

        waiter = asyncio.ensure_future(flow.wait_for_tokens(sleep=blocking_sleep))
        await asyncio.sleep(0)

        assert flow.cancel() is True
        with pytest.raises(LoginCancelledError):
            await waiter
        assert flow.session is None

    def test_cancel_is_idempotent(self, flow) -> None:
        assert flow.cancel() is False
        assert flow.cancel() is False
