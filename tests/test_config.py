"""Tests for the environment / .env configuration loader."""

import os

import pytest

from config.loader import ConfigLoader


@pytest.fixture
def loader(tmp_path):
    return ConfigLoader(env_path=str(tmp_path / "missing.env"))


class TestGet:
    def test_default_when_unset(self, loader, monkeypatch) -> None:
        monkeypatch.delenv("KIRO_TEST_VALUE", raising=False)
        assert loader.get("KIRO_TEST_VALUE", "fallback") == "fallback"

    def test_int_coercion(self, loader, monkeypatch) -> None:
        monkeypatch.setenv("KIRO_TEST_VALUE", "42")
        assert loader.get("KIRO_TEST_VALUE", 8) == 42

    def test_invalid_int_falls_back(self, loader, monkeypatch) -> None:
        monkeypatch.setenv("KIRO_TEST_VALUE", "many")
        assert loader.get("KIRO_TEST_VALUE", 8) == 8

    def test_float_coercion(self, loader, monkeypatch) -> None:
        monkeypatch.setenv("KIRO_TEST_VALUE", "2.5")
        assert loader.get("KIRO_TEST_VALUE", 30.0) == 2.5

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("on", True), ("no", False)])
    def test_bool_coercion(self, loader, monkeypatch, raw, expected) -> None:
        monkeypatch.setenv("KIRO_TEST_VALUE", raw)
        assert loader.get("KIRO_TEST_VALUE", False) is expected

    def test_home_expansion(self, loader, monkeypatch) -> None:
        monkeypatch.setenv("KIRO_TEST_VALUE", "~/machine_id")
        assert loader.get("KIRO_TEST_VALUE", "") == os.path.join(os.path.expanduser("~"), "machine_id")


class TestEnvFile:
    def test_env_file_is_loaded(self, tmp_path, monkeypatch) -> None:
        # Registers KIRO_TEST_FROM_FILE for removal at teardown
        monkeypatch.setenv("KIRO_TEST_FROM_FILE", "placeholder")
        monkeypatch.delenv("KIRO_TEST_FROM_FILE")

        env_file = tmp_path / ".env"
        env_file.write_text("KIRO_TEST_FROM_FILE=eu-west-1\n")

        loader = ConfigLoader(env_path=str(env_file))
        assert loader.get("KIRO_TEST_FROM_FILE", "us-east-1") == "eu-west-1"

    def test_environment_wins_over_env_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("KIRO_TEST_FROM_FILE", "ap-southeast-1")
        env_file = tmp_path / ".env"
        env_file.write_text("KIRO_TEST_FROM_FILE=eu-west-1\n")

        loader = ConfigLoader(env_path=str(env_file))
        assert loader.get("KIRO_TEST_FROM_FILE", "us-east-1") == "ap-southeast-1"
