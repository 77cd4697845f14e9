"""Entry point for the DeepEval bridge CLI."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

from deepeval_bridge import __version__
from deepeval_bridge.bridge import EvaluationBridge
from deepeval_bridge.config import BridgeConfig, Verbosity
from deepeval_bridge.evaluations import load_suite, run_tests
from deepeval_bridge.models import DEFAULT_THRESHOLD, EvaluationKind, EvaluationRequest
from deepeval_bridge.utils.errors import BridgeError, EvaluationError

EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


def setup_logging(verbosity: Verbosity) -> None:
    """Configure logging for the CLI."""
    logging.basicConfig(
        level=verbosity.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="deepeval-bridge",
        description="Run DeepEval metrics in an isolated virtual environment",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Environment options
    parser.add_argument(
        "--python",
        default=None,
        help="Python interpreter used to create the environment (default: current interpreter)",
    )
    parser.add_argument(
        "--venv",
        default=None,
        help="Path to the DeepEval virtual environment (default: ./.deepeval-venv)",
    )
    parser.add_argument(
        "--no-auto-create",
        action="store_true",
        help="Fail instead of creating a missing virtual environment",
    )

    # Model options
    parser.add_argument("--model-name", default=None, help="Local LLM model for DeepEval")
    parser.add_argument("--base-url", default=None, help="Base URL of the local LLM API")
    parser.add_argument("--api-key", default=None, help="API key for the local LLM API")

    # Logging
    parser.add_argument(
        "--verbosity",
        choices=[v.value for v in Verbosity],
        default=None,
        help="Log verbosity (default: normal)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # evaluate subcommand
    evaluate_parser = subparsers.add_parser("evaluate", help="Score one test case")
    evaluate_parser.add_argument("kind", choices=[k.value for k in EvaluationKind])
    evaluate_parser.add_argument(
        "--prompt", default="", help="Prompt, or reference text for similarity"
    )
    evaluate_parser.add_argument("--context", default="", help="Retrieval context")
    evaluate_parser.add_argument("--actual-output", default="", help="Output generated by the LLM")
    evaluate_parser.add_argument("--expected-output", default="", help="Ground-truth output")
    evaluate_parser.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        help=f"Pass threshold (default: {DEFAULT_THRESHOLD})",
    )
    evaluate_parser.add_argument(
        "--timeout", type=float, default=None, help="Deadline in seconds for the evaluation"
    )

    # run-suite subcommand
    suite_parser = subparsers.add_parser("run-suite", help="Run 'deepeval test run' on a path")
    suite_parser.add_argument("path", help="Test file or directory")
    suite_parser.add_argument(
        "extra_args", nargs=argparse.REMAINDER, help="Arguments passed through to deepeval"
    )

    # run-tests subcommand
    tests_parser = subparsers.add_parser("run-tests", help="Run named tests from a YAML file")
    tests_parser.add_argument("file", help="YAML file with a 'tests' list")

    subparsers.add_parser("set-model", help="Point DeepEval at the configured local model")
    subparsers.add_parser("unset-model", help="Remove the local model setting")

    return parser


def config_from_args(args: argparse.Namespace) -> BridgeConfig:
    """Build config from args, falling back to environment/defaults."""
    config_kwargs: dict[str, Any] = {}

    if args.python:
        config_kwargs["python_path"] = args.python
    if args.venv:
        config_kwargs["venv_path"] = args.venv
    if args.no_auto_create:
        config_kwargs["auto_create_venv"] = False
    if args.verbosity:
        config_kwargs["verbosity"] = Verbosity(args.verbosity)
    if args.model_name:
        config_kwargs["model_name"] = args.model_name
    if args.base_url:
        config_kwargs["model_base_url"] = args.base_url
    if args.api_key:
        config_kwargs["model_api_key"] = args.api_key

    return BridgeConfig(**config_kwargs)


async def _run(bridge: EvaluationBridge, args: argparse.Namespace) -> int:
    if args.command == "evaluate":
        request = EvaluationRequest(
            kind=EvaluationKind(args.kind),
            prompt=args.prompt,
            context=args.context,
            actual_output=args.actual_output,
            expected_output=args.expected_output,
            threshold=args.threshold,
        )
        outcome = await bridge.evaluate(request, timeout=args.timeout)
        passed = outcome.passed(request.threshold)
        print(f"{request.kind.value}: Score = {outcome.score}, Passed = {passed}")
        return EXIT_PASSED if passed else EXIT_FAILED

    if args.command == "run-suite":
        return await bridge.run_suite(args.path, args.extra_args)

    if args.command == "run-tests":
        suite = load_suite(args.file)
        results = await run_tests(suite.tests, bridge=bridge)
        for result in results:
            print(result)
        return EXIT_PASSED if all(result.passed for result in results) else EXIT_FAILED

    if args.command == "set-model":
        await bridge.configure_model()
        return EXIT_PASSED

    # unset-model
    await bridge.reset_model()
    return EXIT_PASSED


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    setup_logging(config.verbosity)
    logger = logging.getLogger(__name__)

    bridge = EvaluationBridge.get_instance()
    bridge.configure(config)

    try:
        return asyncio.run(_run(bridge, args))
    except EvaluationError as e:
        logger.error(f"Evaluation failed ({e.category.value}): {e.cause}")
        return EXIT_ERROR
    except BridgeError as e:
        logger.error(str(e))
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
