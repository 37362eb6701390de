"""Tests for machine id persistence, the user agent and header versions."""

import pytest

from headers import get_header_version_for_idp
from headers.user_agent import UserAgentProvider
from utils.machine_id import MachineIdStore


class TestMachineIdStore:
    def test_generates_and_persists(self, tmp_path) -> None:
        path = tmp_path / "nested" / "machine_id"
        store = MachineIdStore(str(path))

        first = store.get_machine_id()

        assert first
        assert path.read_text() == first
        assert MachineIdStore(str(path)).get_machine_id() == first

    def test_reads_existing(self, tmp_path) -> None:
        path = tmp_path / "machine_id"
        path.write_text("abc-123\n")
        assert MachineIdStore(str(path)).get_machine_id() == "abc-123"


class TestUserAgentProvider:
    def test_format(self, user_agent) -> None:
        assert user_agent.get_user_agent() == "aws-sdk-js/1.0.0 KiroIDE-0.9.0-test-machine"

    def test_machine_id_read_once(self, tmp_path) -> None:
        store = MachineIdStore(str(tmp_path / "machine_id"))
        provider = UserAgentProvider(app_version="1.2.3", machine_ids=store)

        first = provider.get_user_agent()
        (tmp_path / "machine_id").write_text("changed")

        assert provider.get_user_agent() == first


class TestHeaderVersion:
    @pytest.mark.parametrize(
        "idp,expected",
        [("BuilderId", 2), ("AWSIdC", 2), ("Github", 1), ("Google", 1), ("SomethingNew", 1)],
    )
    def test_versions(self, idp, expected) -> None:
        assert get_header_version_for_idp(idp) == expected
