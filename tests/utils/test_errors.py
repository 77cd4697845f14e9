"""Tests for bridge error types."""

import pytest

from deepeval_bridge.models import EvaluationKind, EvaluationOutcome
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
    categorize,
)


class TestCategorize:
    """Tests for mapping layer errors to failure categories."""

    @pytest.mark.parametrize(
        ("error", "category"),
        [
            (ProvisionError(ProvisionReason.DISABLED, "off"), FailureCategory.PROVISION),
            (LaunchError("python", ["-c"], "not found"), FailureCategory.LAUNCH),
            (CommandTimeoutError("python", ["-c"], 1.0), FailureCategory.TIMEOUT),
            (ParseError("x", "y"), FailureCategory.PARSE),
            (ScoreRangeError(1.5), FailureCategory.CONTRACT),
            (ConfigurationError("bad"), FailureCategory.CONFIGURATION),
        ],
    )
    def test_category_per_error(self, error: BridgeError, category: FailureCategory) -> None:
        assert categorize(error) == category


class TestParseError:
    """Tests for ParseError."""

    def test_keeps_streams_verbatim(self) -> None:
        """Both captured streams are kept exactly as given."""
        stdout = "Traceback (most recent call last):\n  File ...\n"
        stderr = "ImportError: No module named 'deepeval'\n"

        error = ParseError(stdout, stderr)

        assert error.stdout == stdout
        assert error.stderr == stderr
        assert error.reason == ParseReason.UNPARSEABLE
        assert "Failed to parse DeepEval response" in str(error)


class TestEvaluationError:
    """Tests for EvaluationError."""

    def test_wraps_cause_with_context(self) -> None:
        cause = ParseError("oops", "")
        outcome = EvaluationOutcome(score=None, stdout="oops", stderr="", succeeded=False)

        error = EvaluationError(EvaluationKind.FAITHFULNESS, "What is our policy?", cause, outcome)

        assert error.kind == EvaluationKind.FAITHFULNESS
        assert error.cause is cause
        assert error.category == FailureCategory.PARSE
        assert error.outcome is outcome
        assert "faithfulness evaluation failed (parse)" in str(error)
        assert "What is our policy?" in str(error)

    def test_is_bridge_error(self) -> None:
        error = EvaluationError(EvaluationKind.RELEVANCY, "", ScoreRangeError(2.0))
        assert isinstance(error, BridgeError)
        assert error.outcome is None


class TestProvisionError:
    """Tests for ProvisionError."""

    def test_carries_reason_and_path(self) -> None:
        error = ProvisionError(
            ProvisionReason.INSTALL_FAILED,
            "pip failed",
            environment_path="/tmp/venv",
            stderr="ERROR: No matching distribution",
        )

        assert error.reason == ProvisionReason.INSTALL_FAILED
        assert error.environment_path == "/tmp/venv"
        assert error.stderr == "ERROR: No matching distribution"
        assert str(error) == "pip failed"
