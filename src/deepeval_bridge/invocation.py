"""Builds the invocations sent to the DeepEval environment.

Metric evaluations are short Python programs passed with ``-c``; every
free-text field goes through escape_python_literal() before it is placed
inside a single-quoted literal. Everything else (suite runs, model
configuration, package installs) is a plain argument list. Arguments are
handed to the process directly, never through a shell.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from typing import assert_never

from deepeval_bridge.models import EvaluationKind, EvaluationRequest

ENGINE_MODULE = "deepeval"

_ESCAPES: dict[int, str] = {
    ord("\\"): "\\\\",
    ord("'"): "\\'",
    ord('"'): '\\"',
    ord("\n"): "\\n",
    ord("\r"): "\\r",
    ord("\t"): "\\t",
}
_ESCAPES.update(
    {code: f"\\x{code:02x}" for code in [*range(0x20), 0x7F] if code not in _ESCAPES}
)
# Lone surrogates cannot be encoded into an argument vector.
_ESCAPES.update({code: f"\\u{code:04x}" for code in range(0xD800, 0xE000)})


def escape_python_literal(text: str) -> str:
    """Escape text for use inside a quoted Python string literal.

    Truth table:
        ``\\``  -> ``\\\\``
        ``'``   -> ``\\'``
        ``"``   -> ``\\"``
        newline -> ``\\n``
        CR      -> ``\\r``
        tab     -> ``\\t``
        other control characters (U+0000-U+001F, U+007F) -> ``\\xNN``
        surrogates (U+D800-U+DFFF) -> ``\\uNNNN``
        anything else -> unchanged

    The result is valid between either single or double quotes and always
    encodes as UTF-8.
    """
    return text.translate(_ESCAPES)


def _literal(text: str) -> str:
    return f"'{escape_python_literal(text)}'"


@dataclass(frozen=True)
class InvocationPayload:
    """Arguments for one run of the environment's interpreter.

    ``script`` is set when the invocation is a synthesized program.
    """

    arguments: tuple[str, ...]
    script: str | None = None


_MEASURE = """\
with contextlib.redirect_stdout(sys.stderr):
    metric.measure(test_case)
print(metric.score)
"""

_PRELUDE = """\
import contextlib
import sys

"""


def _relevancy_script(request: EvaluationRequest, threshold: str) -> str:
    return (
        _PRELUDE
        + "from deepeval.metrics import AnswerRelevancyMetric\n"
        "from deepeval.test_case import LLMTestCase\n"
        "\n"
        "test_case = LLMTestCase(\n"
        f"    input={_literal(request.prompt)},\n"
        f"    actual_output={_literal(request.actual_output)},\n"
        ")\n"
        f"metric = AnswerRelevancyMetric(threshold={threshold}, async_mode=False)\n"
        + _MEASURE
    )


def _correctness_script(request: EvaluationRequest, threshold: str) -> str:
    params = "LLMTestCaseParams.ACTUAL_OUTPUT, LLMTestCaseParams.EXPECTED_OUTPUT"
    if request.prompt:
        params = "LLMTestCaseParams.INPUT, " + params
    return (
        _PRELUDE
        + "from deepeval.metrics import GEval\n"
        "from deepeval.test_case import LLMTestCase, LLMTestCaseParams\n"
        "\n"
        "test_case = LLMTestCase(\n"
        f"    input={_literal(request.prompt)},\n"
        f"    actual_output={_literal(request.actual_output)},\n"
        f"    expected_output={_literal(request.expected_output)},\n"
        ")\n"
        "metric = GEval(\n"
        "    name='Correctness',\n"
        "    criteria='Determine whether the actual output is factually correct "
        "based on the expected output.',\n"
        f"    evaluation_params=[{params}],\n"
        f"    threshold={threshold},\n"
        "    async_mode=False,\n"
        ")\n"
        + _MEASURE
    )


def _faithfulness_script(request: EvaluationRequest, threshold: str) -> str:
    return (
        _PRELUDE
        + "from deepeval.metrics import FaithfulnessMetric\n"
        "from deepeval.test_case import LLMTestCase\n"
        "\n"
        "test_case = LLMTestCase(\n"
        f"    input={_literal(request.prompt)},\n"
        f"    actual_output={_literal(request.actual_output)},\n"
        f"    retrieval_context=[{_literal(request.context)}],\n"
        ")\n"
        f"metric = FaithfulnessMetric(threshold={threshold}, async_mode=False)\n"
        + _MEASURE
    )


def _similarity_script(request: EvaluationRequest, threshold: str) -> str:
    return (
        _PRELUDE
        + "from deepeval.metrics import GEval\n"
        "from deepeval.test_case import LLMTestCase, LLMTestCaseParams\n"
        "\n"
        "test_case = LLMTestCase(\n"
        f"    input={_literal(request.prompt)},\n"
        f"    actual_output={_literal(request.actual_output)},\n"
        f"    expected_output={_literal(request.prompt)},\n"
        ")\n"
        "metric = GEval(\n"
        "    name='Semantic Similarity',\n"
        "    criteria='Determine how closely the actual output matches the meaning "
        "of the expected output, ignoring wording differences.',\n"
        "    evaluation_params=[\n"
        "        LLMTestCaseParams.ACTUAL_OUTPUT,\n"
        "        LLMTestCaseParams.EXPECTED_OUTPUT,\n"
        "    ],\n"
        f"    threshold={threshold},\n"
        "    async_mode=False,\n"
        ")\n"
        + _MEASURE
    )


class InvocationBuilder:
    """Synthesizes interpreter arguments for evaluations and engine commands."""

    def build_script(self, request: EvaluationRequest) -> str:
        """Return the program that scores ``request`` and prints the score."""
        threshold = repr(float(request.threshold))
        kind = request.kind
        match kind:
            case EvaluationKind.RELEVANCY:
                return _relevancy_script(request, threshold)
            case EvaluationKind.CORRECTNESS:
                return _correctness_script(request, threshold)
            case EvaluationKind.FAITHFULNESS:
                return _faithfulness_script(request, threshold)
            case EvaluationKind.SIMILARITY:
                return _similarity_script(request, threshold)
            case _:
                assert_never(kind)

    def build(self, request: EvaluationRequest) -> InvocationPayload:
        """Build the ``-c`` invocation for a metric evaluation."""
        script = self.build_script(request)
        return InvocationPayload(arguments=("-c", script), script=script)

    def build_suite(
        self,
        test_path: str | os.PathLike[str],
        extra_args: str | Sequence[str] | None = None,
    ) -> InvocationPayload:
        """Build ``-m deepeval test run <path> [extra args]``.

        A string of extra arguments is split with shell rules; a sequence is
        passed through as-is.
        """
        if extra_args is None:
            extra: list[str] = []
        elif isinstance(extra_args, str):
            extra = shlex.split(extra_args)
        else:
            extra = list(extra_args)
        return InvocationPayload(
            arguments=("-m", ENGINE_MODULE, "test", "run", os.fspath(test_path), *extra)
        )

    def build_set_model(
        self,
        model_name: str,
        base_url: str | None = None,
        api_key: str | None = None,
    ) -> InvocationPayload:
        """Build ``-m deepeval set-local-model`` with the given settings."""
        arguments = ["-m", ENGINE_MODULE, "set-local-model", f"--model-name={model_name}"]
        if base_url:
            arguments.append(f"--base-url={base_url}")
        if api_key:
            arguments.append(f"--api-key={api_key}")
        return InvocationPayload(arguments=tuple(arguments))

    def build_unset_model(self) -> InvocationPayload:
        """Build ``-m deepeval unset-local-model``."""
        return InvocationPayload(arguments=("-m", ENGINE_MODULE, "unset-local-model"))

    def build_create_environment(self, venv_path: str | os.PathLike[str]) -> InvocationPayload:
        """Build ``-m venv <path>``."""
        return InvocationPayload(arguments=("-m", "venv", os.fspath(venv_path)))

    def build_upgrade_pip(self) -> InvocationPayload:
        """Build ``-m pip install --upgrade pip``."""
        return InvocationPayload(arguments=("-m", "pip", "install", "--upgrade", "pip"))

    def build_install_package(self, package_spec: str, upgrade: bool = False) -> InvocationPayload:
        """Build ``-m pip install [--upgrade] <package>``."""
        arguments = ["-m", "pip", "install"]
        if upgrade:
            arguments.append("--upgrade")
        arguments.append(package_spec)
        return InvocationPayload(arguments=tuple(arguments))
