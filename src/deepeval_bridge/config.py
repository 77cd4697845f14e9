"""Configuration for the DeepEval bridge."""

from __future__ import annotations

import logging
import os
import sys
from enum import Enum
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VENV_DIRNAME = ".deepeval-venv"


class Verbosity(str, Enum):
    """How much the bridge reports about its work."""

    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"

    @property
    def log_level(self) -> int:
        """Logging level that corresponds to this verbosity."""
        return {
            Verbosity.QUIET: logging.WARNING,
            Verbosity.NORMAL: logging.INFO,
            Verbosity.VERBOSE: logging.DEBUG,
        }[self]


class BridgeConfig(BaseSettings):
    """Configuration for the DeepEval bridge.

    Loaded from environment variables with DEEPEVAL_BRIDGE_ prefix
    or from a .env.deepeval-bridge file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEEPEVAL_BRIDGE_",
        env_file=".env.deepeval-bridge",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # Interpreter and environment
    python_path: str | None = Field(
        default=None,
        description="Python interpreter used to create the environment (default: sys.executable)",
    )
    venv_path: Path | None = Field(
        default=None,
        description="Location of the DeepEval virtual environment (default: ./.deepeval-venv)",
    )
    auto_create_venv: bool = Field(
        default=True,
        description="Create the virtual environment when it does not exist",
    )
    package_spec: str = Field(
        default="deepeval",
        min_length=1,
        description="Requirement installed into the environment",
    )

    # Logging
    verbosity: Verbosity = Field(
        default=Verbosity.NORMAL,
        description="Log verbosity",
    )

    # Judge model used by DeepEval
    model_name: str | None = Field(
        default=None,
        description="Name of the local LLM model DeepEval should use",
    )
    model_base_url: str | None = Field(
        default=None,
        description="Base URL of the local LLM API",
    )
    model_api_key: SecretStr | None = Field(
        default=None,
        description="API key for the local LLM API",
    )

    # Evaluation invocations
    command_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Deadline in seconds for a single evaluation process",
    )

    @property
    def resolved_venv_path(self) -> Path:
        """The environment path, falling back to the default location."""
        if self.venv_path is not None:
            return Path(self.venv_path)
        return Path.cwd() / DEFAULT_VENV_DIRNAME

    @property
    def base_python(self) -> str:
        """Interpreter used to create the environment."""
        return self.python_path or sys.executable

    @property
    def venv_python(self) -> str:
        """Interpreter inside the environment."""
        if os.name == "nt":
            return str(self.resolved_venv_path / "Scripts" / "python.exe")
        return str(self.resolved_venv_path / "bin" / "python")

    @property
    def api_key_value(self) -> str | None:
        """Plain-text API key, or None."""
        if self.model_api_key is None:
            return None
        return self.model_api_key.get_secret_value()

    def clone(self) -> BridgeConfig:
        """Return an independent copy of this configuration."""
        return self.model_copy(deep=True)
