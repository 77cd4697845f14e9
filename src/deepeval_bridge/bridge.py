"""Orchestration of DeepEval metric evaluations.

EvaluationBridge ties the pieces together for each call: it snapshots the
configuration, ensures the environment, builds the invocation, runs it and
parses the score.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Sequence
from typing import ClassVar

from deepeval_bridge.config import BridgeConfig, Verbosity
from deepeval_bridge.invocation import InvocationBuilder
from deepeval_bridge.models import (
    DEFAULT_THRESHOLD,
    EvaluationKind,
    EvaluationOutcome,
    EvaluationRequest,
)
from deepeval_bridge.parsing import parse_score
from deepeval_bridge.provisioning import EnvironmentProvisioner
from deepeval_bridge.utils.errors import (
    BridgeError,
    ConfigurationError,
    EvaluationError,
    ScoreRangeError,
)
from deepeval_bridge.utils.process import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "deepeval_bridge"


class EvaluationBridge:
    """Runs DeepEval metrics in an isolated environment.

    Configuration is copied on the way in and on the way out, so a caller
    can never change the settings of an evaluation that is already running.
    The provisioner is shared by every call made through this bridge.

    Usage:
        bridge = EvaluationBridge.get_instance()
        bridge.configure(BridgeConfig(model_name="llama-3.2-1b-instruct"))
        score = await bridge.evaluate_relevancy("What is the refund policy?", "30 days.")
    """

    _instance: ClassVar[EvaluationBridge | None] = None

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        runner: CommandRunner | None = None,
        builder: InvocationBuilder | None = None,
        provisioner: EnvironmentProvisioner | None = None,
    ) -> None:
        self._config_lock = threading.Lock()
        self._config = config.clone() if config is not None else BridgeConfig()
        self._runner = runner or CommandRunner()
        self._builder = builder or InvocationBuilder()
        self._provisioner = provisioner or EnvironmentProvisioner(self._runner, self._builder)

    @classmethod
    def get_instance(cls) -> EvaluationBridge:
        """Get the process-wide bridge."""
        if cls._instance is None:
            cls._instance = EvaluationBridge()
        return cls._instance

    @property
    def provisioner(self) -> EnvironmentProvisioner:
        """The provisioner shared by this bridge's calls."""
        return self._provisioner

    def configure(self, config: BridgeConfig) -> None:
        """Replace the bridge configuration with a copy of ``config``.

        Raises:
            ConfigurationError: If ``config`` is not a BridgeConfig.
        """
        if not isinstance(config, BridgeConfig):
            raise ConfigurationError(
                f"Expected a BridgeConfig, got {type(config).__name__}"
            )

        snapshot = config.clone()
        with self._config_lock:
            self._config = snapshot
        logging.getLogger(PACKAGE_LOGGER).setLevel(snapshot.verbosity.log_level)

    def get_configuration(self) -> BridgeConfig:
        """Return a copy of the current configuration."""
        with self._config_lock:
            return self._config.clone()

    async def ensure_environment(self) -> None:
        """Provision the DeepEval environment if needed."""
        await self._provisioner.ensure(self.get_configuration())

    async def evaluate(
        self,
        request: EvaluationRequest,
        *,
        timeout: float | None = None,
    ) -> EvaluationOutcome:
        """Score one request with its metric.

        Args:
            request: The test case and metric kind.
            timeout: Deadline in seconds for the evaluation process.
                Defaults to the configured command_timeout.

        Returns:
            A successful EvaluationOutcome whose score is within [0, 1].

        Raises:
            EvaluationError: If any step fails. ``category`` tells which,
                ``cause`` holds the original error.
        """
        score, result = await self._measure(request, timeout)
        return EvaluationOutcome(
            score=score, stdout=result.stdout, stderr=result.stderr, succeeded=True
        )

    async def _measure(
        self, request: EvaluationRequest, timeout: float | None
    ) -> tuple[float, CommandResult]:
        config = self.get_configuration()
        deadline = timeout if timeout is not None else config.command_timeout

        try:
            await self._provisioner.ensure(config)
            payload = self._builder.build(request)
            result = await self._runner.run(config.venv_python, payload.arguments, timeout=deadline)
        except BridgeError as e:
            raise EvaluationError(request.kind, request.preview(), e) from e

        score = self._read_score(request, result)
        logger.info(f"{request.kind.value} score: {score}")
        return score, result

    def _read_score(self, request: EvaluationRequest, result: CommandResult) -> float:
        try:
            score = parse_score(result.stdout, result.stderr)
            if not 0.0 <= score <= 1.0:
                raise ScoreRangeError(score, result.stdout, result.stderr)
        except BridgeError as e:
            failed = EvaluationOutcome(
                score=None, stdout=result.stdout, stderr=result.stderr, succeeded=False
            )
            raise EvaluationError(request.kind, request.preview(), e, failed) from e
        return score

    async def _score(self, request: EvaluationRequest) -> float:
        score, _ = await self._measure(request, None)
        return score

    async def evaluate_relevancy(
        self, prompt: str, actual_output: str, threshold: float = DEFAULT_THRESHOLD
    ) -> float:
        """Score how relevant ``actual_output`` is to ``prompt``."""
        return await self._score(
            EvaluationRequest(
                kind=EvaluationKind.RELEVANCY,
                prompt=prompt,
                actual_output=actual_output,
                threshold=threshold,
            )
        )

    async def evaluate_correctness(
        self,
        actual_output: str,
        expected_output: str,
        prompt: str = "",
        threshold: float = DEFAULT_THRESHOLD,
    ) -> float:
        """Score whether ``actual_output`` is factually correct against ``expected_output``."""
        return await self._score(
            EvaluationRequest(
                kind=EvaluationKind.CORRECTNESS,
                prompt=prompt,
                actual_output=actual_output,
                expected_output=expected_output,
                threshold=threshold,
            )
        )

    async def evaluate_faithfulness(
        self,
        prompt: str,
        context: str,
        actual_output: str,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> float:
        """Score whether ``actual_output`` is supported by ``context``."""
        return await self._score(
            EvaluationRequest(
                kind=EvaluationKind.FAITHFULNESS,
                prompt=prompt,
                context=context,
                actual_output=actual_output,
                threshold=threshold,
            )
        )

    async def evaluate_similarity(
        self,
        reference_text: str,
        generated_text: str,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> float:
        """Score the semantic similarity of ``generated_text`` to ``reference_text``."""
        return await self._score(
            EvaluationRequest(
                kind=EvaluationKind.SIMILARITY,
                prompt=reference_text,
                actual_output=generated_text,
                threshold=threshold,
            )
        )

    async def run_suite(
        self,
        test_path: str | os.PathLike[str],
        extra_args: str | Sequence[str] | None = None,
    ) -> int:
        """Run ``deepeval test run`` on ``test_path``.

        The exit code is the only pass/fail signal and is returned as-is.
        With verbose verbosity the suite writes straight to this process's
        terminal; otherwise its output is captured and logged at debug level.

        Raises:
            ProvisionError: If the environment cannot be prepared.
            LaunchError: If the interpreter cannot be started.
        """
        config = self.get_configuration()
        await self._provisioner.ensure(config)

        payload = self._builder.build_suite(test_path, extra_args)
        logger.info(f"Running DeepEval tests in path: {os.fspath(test_path)}")
        result = await self._runner.run(
            config.venv_python,
            payload.arguments,
            capture_output=config.verbosity != Verbosity.VERBOSE,
        )
        if result.stdout.strip():
            logger.debug(f"Test run output: {result.stdout.strip()}")
        logger.info(f"Tests completed with exit code: {result.exit_code}")
        return result.exit_code

    async def configure_model(self) -> None:
        """Point DeepEval at the configured local model.

        Raises:
            ConfigurationError: If no model name is configured.
            ProvisionError: If provisioning or the set-model command fails.
        """
        config = self.get_configuration()
        if not config.model_name:
            raise ConfigurationError("model_name is required to configure a local model")

        provisioned = await self._provisioner.ensure(config)
        if not provisioned:
            # A fresh provisioning run has already applied the model.
            await self._provisioner.apply_model(config)

    async def reset_model(self) -> None:
        """Remove the local model setting from DeepEval.

        Raises:
            ProvisionError: If provisioning or the unset-model command fails.
        """
        config = self.get_configuration()
        await self._provisioner.ensure(config)
        await self._provisioner.clear_model(config)
