"""Run DeepEval metrics from Python through an isolated virtual environment."""

from deepeval_bridge.bridge import EvaluationBridge
from deepeval_bridge.config import BridgeConfig, Verbosity
from deepeval_bridge.evaluations import (
    CorrectnessConfig,
    CorrectnessMetric,
    EvaluationResult,
    EvaluationSpec,
    EvaluationSuite,
    EvaluationTest,
    FaithfulnessConfig,
    FaithfulnessMetric,
    MetricInput,
    RelevancyConfig,
    RelevancyMetric,
    SimilarityConfig,
    SimilarityMetric,
    create_test,
    create_test_from_spec,
    load_suite,
    run_tests,
)
from deepeval_bridge.invocation import InvocationBuilder, InvocationPayload, escape_python_literal
from deepeval_bridge.models import EvaluationKind, EvaluationOutcome, EvaluationRequest
from deepeval_bridge.parsing import parse_score
from deepeval_bridge.provisioning import EnvironmentProvisioner
from deepeval_bridge.utils.errors import (
    BridgeError,
    CommandTimeoutError,
    ConfigurationError,
    EvaluationError,
    FailureCategory,
    LaunchError,
    ParseError,
    ProvisionError,
    ProvisionReason,
    ScoreRangeError,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Bridge
    "EvaluationBridge",
    "BridgeConfig",
    "Verbosity",
    "EnvironmentProvisioner",
    "InvocationBuilder",
    "InvocationPayload",
    "escape_python_literal",
    "parse_score",
    # Requests and outcomes
    "EvaluationKind",
    "EvaluationRequest",
    "EvaluationOutcome",
    # Tests and metrics
    "MetricInput",
    "RelevancyMetric",
    "CorrectnessMetric",
    "FaithfulnessMetric",
    "SimilarityMetric",
    "RelevancyConfig",
    "CorrectnessConfig",
    "FaithfulnessConfig",
    "SimilarityConfig",
    "EvaluationSpec",
    "EvaluationSuite",
    "EvaluationTest",
    "EvaluationResult",
    "create_test",
    "create_test_from_spec",
    "load_suite",
    "run_tests",
    # Errors
    "BridgeError",
    "ConfigurationError",
    "ProvisionError",
    "ProvisionReason",
    "LaunchError",
    "CommandTimeoutError",
    "ParseError",
    "ScoreRangeError",
    "EvaluationError",
    "FailureCategory",
]
