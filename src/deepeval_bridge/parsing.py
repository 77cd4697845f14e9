"""Reading scores from DeepEval output."""

from __future__ import annotations

import logging

from deepeval_bridge.utils.errors import ParseError

logger = logging.getLogger(__name__)


def parse_score(stdout: str, stderr: str) -> float:
    """Extract the score printed by an evaluation program.

    The last non-blank stdout line must be a float literal. Output on stderr
    is logged but does not fail the parse. The [0, 1] range is not checked
    here.

    Args:
        stdout: Captured standard output.
        stderr: Captured standard error.

    Returns:
        The parsed score.

    Raises:
        ParseError: If no float literal can be read. Carries both streams.
    """
    if stderr.strip():
        logger.warning(f"DeepEval stderr: {stderr.strip()}")

    lines = [line.strip() for line in stdout.strip().splitlines() if line.strip()]
    if not lines:
        raise ParseError(stdout, stderr)

    try:
        return float(lines[-1])
    except ValueError:
        raise ParseError(stdout, stderr) from None
