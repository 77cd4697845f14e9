"""Tests for bridge configuration."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

from deepeval_bridge.config import DEFAULT_VENV_DIRNAME, BridgeConfig, Verbosity


class TestVerbosity:
    """Tests for Verbosity."""

    def test_log_levels(self) -> None:
        assert Verbosity.QUIET.log_level == logging.WARNING
        assert Verbosity.NORMAL.log_level == logging.INFO
        assert Verbosity.VERBOSE.log_level == logging.DEBUG

    def test_from_value(self) -> None:
        assert Verbosity("verbose") == Verbosity.VERBOSE


class TestBridgeConfig:
    """Tests for BridgeConfig."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        config = BridgeConfig()

        assert config.python_path is None
        assert config.venv_path is None
        assert config.auto_create_venv is True
        assert config.verbosity == Verbosity.NORMAL
        assert config.model_name is None
        assert config.package_spec == "deepeval"
        assert config.resolved_venv_path == tmp_path / DEFAULT_VENV_DIRNAME
        assert config.base_python == sys.executable

    def test_loads_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Settings are read from DEEPEVAL_BRIDGE_ variables."""
        monkeypatch.setenv("DEEPEVAL_BRIDGE_MODEL_NAME", "llama-3.2-1b-instruct")
        monkeypatch.setenv("DEEPEVAL_BRIDGE_AUTO_CREATE_VENV", "false")
        monkeypatch.setenv("DEEPEVAL_BRIDGE_VERBOSITY", "quiet")
        monkeypatch.setenv("DEEPEVAL_BRIDGE_MODEL_API_KEY", "fake-key")

        config = BridgeConfig()

        assert config.model_name == "llama-3.2-1b-instruct"
        assert config.auto_create_venv is False
        assert config.verbosity == Verbosity.QUIET
        assert config.api_key_value == "fake-key"

    def test_api_key_hidden_in_repr(self) -> None:
        config = BridgeConfig(model_api_key="super-secret")
        assert "super-secret" not in repr(config)
        assert config.api_key_value == "super-secret"

    def test_api_key_value_none(self) -> None:
        assert BridgeConfig().api_key_value is None

    def test_venv_python_path(self, tmp_path: Path) -> None:
        config = BridgeConfig(venv_path=tmp_path / "env")
        if os.name == "nt":
            assert config.venv_python == str(tmp_path / "env" / "Scripts" / "python.exe")
        else:
            assert config.venv_python == str(tmp_path / "env" / "bin" / "python")

    def test_python_override(self) -> None:
        assert BridgeConfig(python_path="/usr/bin/python3.12").base_python == "/usr/bin/python3.12"

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValidationError):
            BridgeConfig(command_timeout=0)

    def test_validates_assignment(self) -> None:
        config = BridgeConfig()
        with pytest.raises(ValidationError):
            config.verbosity = "loud"  # type: ignore[assignment]

    def test_clone_is_independent(self, tmp_path: Path) -> None:
        """Changes to a clone never reach the original and vice versa."""
        original = BridgeConfig(venv_path=tmp_path / "a", model_name="m1")
        clone = original.clone()

        clone.model_name = "m2"
        clone.venv_path = tmp_path / "b"
        original.auto_create_venv = False

        assert original.model_name == "m1"
        assert original.venv_path == tmp_path / "a"
        assert clone.auto_create_venv is True
