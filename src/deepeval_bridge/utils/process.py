"""External process execution for the DeepEval bridge.

CommandRunner is the only place that starts subprocesses. Each call starts
one process, waits for it, and returns everything it wrote. The exit code is
reported but never judged here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from deepeval_bridge.utils.errors import CommandTimeoutError, LaunchError

logger = logging.getLogger(__name__)

TERMINATE_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class CommandResult:
    """Captured result of one external process."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        """Whether the process exited with status 0."""
        return self.exit_code == 0


def redact_arguments(arguments: Sequence[str]) -> list[str]:
    """Return arguments with secret values replaced for logging."""
    redacted = []
    for arg in arguments:
        if arg.startswith("--api-key="):
            redacted.append("--api-key=****")
        else:
            redacted.append(arg)
    return redacted


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Terminate a process, escalating to kill after a grace period."""
    if process.returncode is not None:
        return
    process.terminate()
    try:
        await asyncio.wait_for(process.wait(), timeout=TERMINATE_GRACE_SECONDS)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()


class CommandRunner:
    """Runs external commands and captures their output.

    Usage:
        runner = CommandRunner()
        result = await runner.run("python", ["-c", "print(1)"])
        print(result.stdout, result.exit_code)
    """

    async def run(
        self,
        executable: str,
        arguments: Sequence[str],
        *,
        timeout: float | None = None,
        capture_output: bool = True,
    ) -> CommandResult:
        """Run a command to completion.

        Args:
            executable: Program to start.
            arguments: Arguments passed to the program, one argv entry each.
            timeout: Optional deadline in seconds. On expiry the process is
                terminated and CommandTimeoutError is raised.
            capture_output: When False the process writes straight to this
                process's stdout/stderr and the result streams are empty.

        Returns:
            CommandResult with decoded stdout, stderr and the exit code.

        Raises:
            LaunchError: If the executable cannot be started or the arguments
                cannot be passed to it.
            CommandTimeoutError: If the deadline expires.
        """
        args = list(arguments)
        logger.debug(f"Running command: {executable} {' '.join(redact_arguments(args))}")

        pipe = asyncio.subprocess.PIPE if capture_output else None
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdout=pipe,
                stderr=pipe,
            )
        except (OSError, ValueError) as e:
            # ValueError covers arguments the OS cannot receive (NUL bytes, lone surrogates).
            raise LaunchError(executable, redact_arguments(args), str(e)) from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except asyncio.TimeoutError:
            await _terminate(process)
            raise CommandTimeoutError(executable, redact_arguments(args), timeout or 0.0) from None
        except asyncio.CancelledError:
            # Cancellation must not leave the process running.
            await asyncio.shield(_terminate(process))
            raise

        result = CommandResult(
            stdout=(stdout_bytes or b"").decode("utf-8", errors="replace"),
            stderr=(stderr_bytes or b"").decode("utf-8", errors="replace"),
            exit_code=process.returncode if process.returncode is not None else -1,
        )

        if result.stderr.strip():
            logger.debug(f"Command stderr: {result.stderr.strip()}")
        logger.debug(f"Command exited with code {result.exit_code}: {result.stdout.strip()}")
        return result
