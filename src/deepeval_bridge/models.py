"""Request and outcome records exchanged with the bridge."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from deepeval_bridge.utils.errors import ConfigurationError

DEFAULT_THRESHOLD = 0.5


class EvaluationKind(str, Enum):
    """Metric kinds the bridge can evaluate."""

    RELEVANCY = "relevancy"
    CORRECTNESS = "correctness"
    FAITHFULNESS = "faithfulness"
    SIMILARITY = "similarity"


@dataclass(frozen=True)
class EvaluationRequest:
    """A single test case to score with one metric.

    For similarity, ``prompt`` holds the reference text and
    ``actual_output`` the generated text.
    """

    kind: EvaluationKind
    prompt: str = ""
    context: str = ""
    actual_output: str = ""
    expected_output: str = ""
    threshold: float = DEFAULT_THRESHOLD

    def __post_init__(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigurationError(f"threshold must be within [0, 1], got {self.threshold!r}")

    def preview(self, limit: int = 60) -> str:
        """Short text preview of the request for error messages."""
        text = next(
            (
                value
                for value in (self.prompt, self.actual_output, self.expected_output, self.context)
                if value
            ),
            "",
        )
        text = " ".join(text.split())
        if len(text) > limit:
            return text[: limit - 3] + "..."
        return text


@dataclass(frozen=True)
class EvaluationOutcome:
    """What one evaluation produced."""

    score: float | None
    stdout: str
    stderr: str
    succeeded: bool

    def passed(self, threshold: float) -> bool:
        """Whether the score reaches ``threshold``."""
        return self.succeeded and self.score is not None and self.score >= threshold
