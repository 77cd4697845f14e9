"""Error types raised by the DeepEval bridge.

Every layer raises its own subclass of BridgeError. The orchestrator wraps
failures of a metric evaluation into a single EvaluationError so callers can
branch on ``category`` without knowing every layer.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from deepeval_bridge.models import EvaluationKind, EvaluationOutcome


class BridgeError(Exception):
    """Base class for all bridge errors."""

    pass


class ConfigurationError(BridgeError):
    """Invalid or incomplete bridge configuration."""

    pass


class ProvisionReason(str, Enum):
    """Why provisioning of the DeepEval environment failed."""

    DISABLED = "disabled"
    CREATE_FAILED = "create_failed"
    INSTALL_FAILED = "install_failed"
    MODEL_CONFIG_FAILED = "model_config_failed"


class ProvisionError(BridgeError):
    """The DeepEval environment could not be prepared."""

    def __init__(
        self,
        reason: ProvisionReason,
        message: str,
        *,
        environment_path: str | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.environment_path = environment_path
        self.stderr = stderr


class LaunchError(BridgeError):
    """An external process could not be started."""

    def __init__(self, executable: str, arguments: Sequence[str], message: str) -> None:
        super().__init__(f"Failed to start {executable}: {message}")
        self.executable = executable
        self.arguments = list(arguments)


class CommandTimeoutError(BridgeError):
    """An external process exceeded its deadline and was terminated."""

    def __init__(self, executable: str, arguments: Sequence[str], timeout: float) -> None:
        super().__init__(f"{executable} did not finish within {timeout:g}s and was terminated")
        self.executable = executable
        self.arguments = list(arguments)
        self.timeout = timeout


class ParseReason(str, Enum):
    """Why the output of an evaluation could not be read."""

    UNPARSEABLE = "unparseable"


class ParseError(BridgeError):
    """The evaluation output did not contain a numeric score.

    Both captured streams are kept verbatim for diagnosis.
    """

    def __init__(self, stdout: str, stderr: str) -> None:
        super().__init__(
            f"Failed to parse DeepEval response. STDOUT: {stdout!r}, STDERR: {stderr!r}"
        )
        self.reason = ParseReason.UNPARSEABLE
        self.stdout = stdout
        self.stderr = stderr


class ScoreRangeError(BridgeError):
    """The engine reported a score outside [0, 1]."""

    def __init__(self, score: float, stdout: str = "", stderr: str = "") -> None:
        super().__init__(f"DeepEval returned score {score!r}, expected a value in [0, 1]")
        self.score = score
        self.stdout = stdout
        self.stderr = stderr


class FailureCategory(str, Enum):
    """Discriminator for EvaluationError."""

    CONFIGURATION = "configuration"
    PROVISION = "provision"
    LAUNCH = "launch"
    TIMEOUT = "timeout"
    PARSE = "parse"
    CONTRACT = "contract"


def categorize(error: BridgeError) -> FailureCategory:
    """Map a layer error to its failure category."""
    if isinstance(error, ProvisionError):
        return FailureCategory.PROVISION
    if isinstance(error, LaunchError):
        return FailureCategory.LAUNCH
    if isinstance(error, CommandTimeoutError):
        return FailureCategory.TIMEOUT
    if isinstance(error, ParseError):
        return FailureCategory.PARSE
    if isinstance(error, ScoreRangeError):
        return FailureCategory.CONTRACT
    return FailureCategory.CONFIGURATION


class EvaluationError(BridgeError):
    """A metric evaluation failed.

    Attributes:
        kind: The metric kind that was being evaluated.
        input_preview: Truncated preview of the request text.
        cause: The underlying layer error.
        category: Which layer failed.
        outcome: The failed outcome when the engine process ran, else None.
    """

    def __init__(
        self,
        kind: EvaluationKind,
        input_preview: str,
        cause: BridgeError,
        outcome: EvaluationOutcome | None = None,
    ) -> None:
        self.kind = kind
        self.input_preview = input_preview
        self.cause = cause
        self.category = categorize(cause)
        self.outcome = outcome
        super().__init__(
            f"{kind.value} evaluation failed ({self.category.value}) "
            f"for input {input_preview!r}: {cause}"
        )
