"""Shared pytest fixtures for DeepEval bridge tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from deepeval_bridge.bridge import PACKAGE_LOGGER, EvaluationBridge
from deepeval_bridge.config import BridgeConfig
from fakes import FakeCommandRunner


@pytest.fixture(autouse=True)
def reset_bridge_state() -> Iterator[None]:
    """Drop the shared bridge and restore the package log level after each test."""
    yield
    EvaluationBridge._instance = None
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.NOTSET)


@pytest.fixture
def venv_path(tmp_path: Path) -> Path:
    """A virtual environment location that does not exist yet."""
    return tmp_path / "venv"


@pytest.fixture
def existing_venv_path(tmp_path: Path) -> Path:
    """A virtual environment location that already exists."""
    path = tmp_path / "existing-venv"
    path.mkdir()
    return path


@pytest.fixture
def config(venv_path: Path) -> BridgeConfig:
    """Bridge configuration pointing at a fresh environment path."""
    return BridgeConfig(venv_path=venv_path, python_path="python3")


@pytest.fixture
def fake_runner() -> FakeCommandRunner:
    """Command runner double answering evaluations with 0.5."""
    return FakeCommandRunner()


@pytest.fixture
def bridge(config: BridgeConfig, fake_runner: FakeCommandRunner) -> EvaluationBridge:
    """Bridge wired to the fake runner."""
    return EvaluationBridge(config, runner=fake_runner)
