"""Named evaluation tests built on the bridge.

A test pairs a name with a per-kind config. Running it scores the config's
text with the matching metric and compares the score to the config's pass
threshold. Tests can be kept in YAML files and loaded with load_suite().
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Literal, assert_never

import yaml
from pydantic import BaseModel, Field, ValidationError

from deepeval_bridge.bridge import EvaluationBridge
from deepeval_bridge.models import EvaluationKind
from deepeval_bridge.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class MetricInput:
    """Text passed to a metric."""

    prompt: str = ""
    context: str = ""
    actual_output: str = ""
    expected_output: str = ""


class Metric(ABC):
    """A DeepEval metric evaluated through the bridge."""

    name: str
    kind: EvaluationKind
    default_threshold: float

    def __init__(
        self,
        threshold: float | None = None,
        bridge: EvaluationBridge | None = None,
    ) -> None:
        self.threshold = self.default_threshold if threshold is None else threshold
        self._bridge = bridge

    @property
    def bridge(self) -> EvaluationBridge:
        """The bridge used for evaluation, the shared one by default."""
        return self._bridge or EvaluationBridge.get_instance()

    @abstractmethod
    async def evaluate(self, metric_input: MetricInput) -> float:
        """Score ``metric_input`` and return a value in [0, 1]."""


class RelevancyMetric(Metric):
    """How relevant the output is to the prompt."""

    name = "AnswerRelevancy"
    kind = EvaluationKind.RELEVANCY
    default_threshold = 0.5

    async def evaluate(self, metric_input: MetricInput) -> float:
        return await self.bridge.evaluate_relevancy(
            metric_input.prompt, metric_input.actual_output, threshold=self.threshold
        )


class CorrectnessMetric(Metric):
    """Factual correctness of the output against the expected output."""

    name = "Correctness"
    kind = EvaluationKind.CORRECTNESS
    default_threshold = 0.8

    async def evaluate(self, metric_input: MetricInput) -> float:
        return await self.bridge.evaluate_correctness(
            metric_input.actual_output,
            metric_input.expected_output,
            prompt=metric_input.prompt,
            threshold=self.threshold,
        )


class FaithfulnessMetric(Metric):
    """Whether the output is supported by the retrieval context."""

    name = "Faithfulness"
    kind = EvaluationKind.FAITHFULNESS
    default_threshold = 0.75

    async def evaluate(self, metric_input: MetricInput) -> float:
        return await self.bridge.evaluate_faithfulness(
            metric_input.prompt,
            metric_input.context,
            metric_input.actual_output,
            threshold=self.threshold,
        )


class SimilarityMetric(Metric):
    """Semantic similarity of generated text to a reference text.

    The reference goes in ``prompt``, the generated text in ``actual_output``.
    """

    name = "SemanticSimilarity"
    kind = EvaluationKind.SIMILARITY
    default_threshold = 0.85

    async def evaluate(self, metric_input: MetricInput) -> float:
        return await self.bridge.evaluate_similarity(
            metric_input.prompt, metric_input.actual_output, threshold=self.threshold
        )


# Test configs


class RelevancyConfig(BaseModel):
    """Configuration for an answer relevancy test."""

    kind: Literal[EvaluationKind.RELEVANCY] = EvaluationKind.RELEVANCY
    prompt: str = Field(..., description="The user prompt or question")
    response: str = Field(..., description="Output generated by the LLM")
    pass_threshold: float = Field(0.5, ge=0.0, le=1.0)


class CorrectnessConfig(BaseModel):
    """Configuration for a correctness test."""

    kind: Literal[EvaluationKind.CORRECTNESS] = EvaluationKind.CORRECTNESS
    actual_output: str = Field(..., description="Output generated by the LLM")
    expected_output: str = Field(..., description="Ground-truth output")
    prompt: str = Field("", description="Optional prompt that produced the output")
    pass_threshold: float = Field(0.8, ge=0.0, le=1.0)


class FaithfulnessConfig(BaseModel):
    """Configuration for a faithfulness test."""

    kind: Literal[EvaluationKind.FAITHFULNESS] = EvaluationKind.FAITHFULNESS
    retrieval_context: str = Field(..., description="Context the response must be faithful to")
    response: str = Field(..., description="Output generated by the LLM")
    prompt: str = Field("", description="The user prompt or question")
    pass_threshold: float = Field(0.75, ge=0.0, le=1.0)


class SimilarityConfig(BaseModel):
    """Configuration for a semantic similarity test."""

    kind: Literal[EvaluationKind.SIMILARITY] = EvaluationKind.SIMILARITY
    reference_text: str = Field(..., description="Reference text")
    generated_text: str = Field(..., description="Text generated by the LLM")
    pass_threshold: float = Field(0.85, ge=0.0, le=1.0)


AnyEvaluationConfig = RelevancyConfig | CorrectnessConfig | FaithfulnessConfig | SimilarityConfig

EvaluationConfig = Annotated[
    AnyEvaluationConfig,
    Field(discriminator="kind"),
]


class EvaluationSpec(BaseModel):
    """Serializable definition of a named test."""

    name: str
    config: EvaluationConfig


class EvaluationSuite(BaseModel):
    """A set of named tests, as stored in a test file."""

    tests: list[EvaluationSpec] = Field(default_factory=list)


@dataclass
class EvaluationResult:
    """Result of running one evaluation test."""

    test_name: str
    score: float
    passed: bool

    def __str__(self) -> str:
        return f"{self.test_name}: Score = {self.score}, Passed = {self.passed}"


class EvaluationTest:
    """A named test that scores its config with one metric."""

    def __init__(
        self,
        name: str,
        config: AnyEvaluationConfig,
        bridge: EvaluationBridge | None = None,
    ) -> None:
        self.name = name
        self.config = config
        self.result: EvaluationResult | None = None
        self._bridge = bridge

    @property
    def kind(self) -> EvaluationKind:
        return self.config.kind

    def _metric_and_input(self) -> tuple[Metric, MetricInput]:
        config = self.config
        threshold = config.pass_threshold
        match config:
            case RelevancyConfig():
                metric: Metric = RelevancyMetric(threshold, bridge=self._bridge)
                return metric, MetricInput(prompt=config.prompt, actual_output=config.response)
            case CorrectnessConfig():
                metric = CorrectnessMetric(threshold, bridge=self._bridge)
                return metric, MetricInput(
                    prompt=config.prompt,
                    actual_output=config.actual_output,
                    expected_output=config.expected_output,
                )
            case FaithfulnessConfig():
                metric = FaithfulnessMetric(threshold, bridge=self._bridge)
                return metric, MetricInput(
                    prompt=config.prompt,
                    context=config.retrieval_context,
                    actual_output=config.response,
                )
            case SimilarityConfig():
                metric = SimilarityMetric(threshold, bridge=self._bridge)
                return metric, MetricInput(
                    prompt=config.reference_text, actual_output=config.generated_text
                )
            case _:
                assert_never(config)

    async def run(self) -> EvaluationResult:
        """Run the test and keep its result.

        Raises:
            EvaluationError: If the metric could not be evaluated.
        """
        metric, metric_input = self._metric_and_input()
        score = await metric.evaluate(metric_input)
        self.result = EvaluationResult(
            test_name=self.name,
            score=score,
            passed=score >= self.config.pass_threshold,
        )
        return self.result


def create_test(
    kind: EvaluationKind,
    name: str,
    config: AnyEvaluationConfig,
    bridge: EvaluationBridge | None = None,
) -> EvaluationTest:
    """Create an evaluation test of the given kind.

    Raises:
        ConfigurationError: If the config belongs to a different kind.
    """
    if config.kind != kind:
        raise ConfigurationError(
            f"Test {name!r} is {kind.value} but was given a {config.kind.value} config"
        )
    return EvaluationTest(name, config, bridge=bridge)


def create_test_from_spec(
    spec: EvaluationSpec, bridge: EvaluationBridge | None = None
) -> EvaluationTest:
    """Create an evaluation test from a parsed EvaluationSpec."""
    return create_test(spec.config.kind, spec.name, spec.config, bridge=bridge)


def load_suite(path: str | os.PathLike[str]) -> EvaluationSuite:
    """Load named tests from a YAML file.

    The file holds a ``tests`` list whose entries have a ``name`` and a
    ``config`` with a ``kind``. JSON files are accepted as well.

    Raises:
        ConfigurationError: If the file cannot be read or does not describe
            valid tests.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Failed to read test file '{os.fspath(path)}': {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse test file YAML: {e}") from e

    if not data:
        raise ConfigurationError(f"Test file '{os.fspath(path)}' is empty")

    try:
        return EvaluationSuite.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid test file '{os.fspath(path)}': {e}") from e


async def run_tests(
    specs: Iterable[EvaluationSpec], bridge: EvaluationBridge | None = None
) -> list[EvaluationResult]:
    """Run named tests one after another and collect their results.

    Raises:
        EvaluationError: If a test could not be evaluated.
    """
    results = []
    for spec in specs:
        result = await create_test_from_spec(spec, bridge=bridge).run()
        logger.info(str(result))
        results.append(result)
    return results
