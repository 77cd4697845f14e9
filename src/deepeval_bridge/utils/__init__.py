"""Utility functions and helpers for the DeepEval bridge."""

from deepeval_bridge.utils.errors import (
    BridgeError,
    CommandTimeoutError,
    ConfigurationError,
    EvaluationError,
    FailureCategory,
    LaunchError,
    ParseError,
    ParseReason,
    ProvisionError,
    ProvisionReason,
    ScoreRangeError,
)
from deepeval_bridge.utils.process import CommandResult, CommandRunner

__all__ = [
    # Errors
    "BridgeError",
    "ConfigurationError",
    "ProvisionError",
    "ProvisionReason",
    "LaunchError",
    "CommandTimeoutError",
    "ParseError",
    "ParseReason",
    "ScoreRangeError",
    "EvaluationError",
    "FailureCategory",
    # Process execution
    "CommandResult",
    "CommandRunner",
]
