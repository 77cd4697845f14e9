"""Provisioning of the isolated DeepEval environment.

The EnvironmentProvisioner owns the only process-wide state the bridge keeps:
whether the virtual environment at a given path has been prepared. Concurrent
callers share one provisioning attempt, even across threads that each run
their own event loop.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from deepeval_bridge.invocation import InvocationBuilder, InvocationPayload
from deepeval_bridge.utils.errors import ConfigurationError, ProvisionError, ProvisionReason
from deepeval_bridge.utils.process import CommandRunner

if TYPE_CHECKING:
    from deepeval_bridge.config import BridgeConfig

logger = logging.getLogger(__name__)


class EnvironmentProvisioner:
    """Creates and maintains the DeepEval virtual environment.

    ``ensure()`` is idempotent per environment path: the first caller
    provisions while later callers, on any thread or event loop, wait for it
    and then return. A different path in the configuration makes the next
    call provision again.

    Usage:
        provisioner = EnvironmentProvisioner(CommandRunner())
        await provisioner.ensure(config)
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        builder: InvocationBuilder | None = None,
    ) -> None:
        self._runner = runner or CommandRunner()
        self._builder = builder or InvocationBuilder()
        self._initialized = False
        self._environment_path: Path | None = None
        self._state_lock = threading.Lock()
        self._in_progress: concurrent.futures.Future[None] | None = None

    @property
    def initialized(self) -> bool:
        """Whether an environment has been provisioned."""
        return self._initialized

    @property
    def environment_path(self) -> Path | None:
        """Path of the provisioned environment, if any."""
        return self._environment_path

    def is_ready(self, config: BridgeConfig) -> bool:
        """Whether the environment for ``config`` is already provisioned."""
        return self._initialized and self._environment_path == config.resolved_venv_path

    def invalidate(self) -> None:
        """Forget the provisioned state so the next ensure() runs again."""
        self._initialized = False

    async def ensure(self, config: BridgeConfig) -> bool:
        """Make sure the environment exists and DeepEval is installed.

        Args:
            config: Configuration snapshot for this call.

        Returns:
            True if this call provisioned the environment, False if it was
            already provisioned.

        Raises:
            ProvisionError: If the environment is missing and auto-creation
                is disabled, or a provisioning command fails.
            LaunchError: If an interpreter cannot be started.
        """
        while True:
            if self.is_ready(config):
                return False

            with self._state_lock:
                if self.is_ready(config):
                    return False
                pending = self._in_progress
                if pending is None:
                    pending = concurrent.futures.Future()
                    self._in_progress = pending
                    self._initialized = False
                    break

            # Another caller, possibly on another event loop, is provisioning.
            await asyncio.shield(asyncio.wrap_future(pending))

        try:
            await self._provision(config)
            with self._state_lock:
                self._environment_path = config.resolved_venv_path
                self._initialized = True
            return True
        finally:
            with self._state_lock:
                self._in_progress = None
            pending.set_result(None)

    async def _provision(self, config: BridgeConfig) -> None:
        venv_path = config.resolved_venv_path

        if not venv_path.is_dir():
            if not config.auto_create_venv:
                raise ProvisionError(
                    ProvisionReason.DISABLED,
                    f"Virtual environment does not exist at {venv_path} "
                    "and auto_create_venv is false.",
                    environment_path=str(venv_path),
                )

            logger.info(f"Creating virtual environment for DeepEval at {venv_path}")
            await self._run_step(
                config.base_python,
                self._builder.build_create_environment(venv_path),
                ProvisionReason.CREATE_FAILED,
                venv_path,
            )

            logger.info("Installing dependencies...")
            await self._run_step(
                config.venv_python,
                self._builder.build_upgrade_pip(),
                ProvisionReason.INSTALL_FAILED,
                venv_path,
            )
            await self._run_step(
                config.venv_python,
                self._builder.build_install_package(config.package_spec),
                ProvisionReason.INSTALL_FAILED,
                venv_path,
            )
        else:
            logger.debug("Virtual environment exists. Ensuring dependencies...")
            await self._run_step(
                config.venv_python,
                self._builder.build_install_package(config.package_spec, upgrade=True),
                ProvisionReason.INSTALL_FAILED,
                venv_path,
            )

        if config.model_name:
            await self.apply_model(config)

    async def apply_model(self, config: BridgeConfig) -> None:
        """Point DeepEval at the configured local model.

        Does not provision; callers ensure the environment first.

        Raises:
            ConfigurationError: If no model name is configured.
            ProvisionError: If the set-model command fails.
        """
        if not config.model_name:
            raise ConfigurationError("model_name is required to configure a local model")

        logger.info(f"Configuring local LLM model: {config.model_name}")
        await self._run_step(
            config.venv_python,
            self._builder.build_set_model(
                config.model_name,
                base_url=config.model_base_url,
                api_key=config.api_key_value,
            ),
            ProvisionReason.MODEL_CONFIG_FAILED,
            config.resolved_venv_path,
        )

    async def clear_model(self, config: BridgeConfig) -> None:
        """Remove the local model setting from DeepEval.

        Raises:
            ProvisionError: If the unset-model command fails.
        """
        logger.info("Unsetting local LLM model configuration")
        await self._run_step(
            config.venv_python,
            self._builder.build_unset_model(),
            ProvisionReason.MODEL_CONFIG_FAILED,
            config.resolved_venv_path,
        )

    async def _run_step(
        self,
        executable: str,
        payload: InvocationPayload,
        failure: ProvisionReason,
        venv_path: Path,
    ) -> None:
        result = await self._runner.run(executable, payload.arguments)
        if result.stderr.strip():
            logger.warning(f"Provisioning step reported: {result.stderr.strip()}")
        if not result.ok:
            raise ProvisionError(
                failure,
                f"Command '{' '.join(payload.arguments[:4])}' exited with code {result.exit_code}",
                environment_path=str(venv_path),
                stderr=result.stderr,
            )
