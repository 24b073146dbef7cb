"""Out-of-process tool invocation for the checkers."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

import structlog

from uiforge.errors import ToolInvocationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stdout, falling back to stderr when the tool wrote nothing there."""
        return self.stdout if self.stdout.strip() else self.stderr


async def run_command(tool: str, cmd: list[str], cwd: Path, timeout: float) -> CommandResult:
    """Run a command and capture its output.

    Raises:
        ToolInvocationError: the binary is missing, cannot start, or times out.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ToolInvocationError(tool, f"command not found: {cmd[0]}") from e
    except OSError as e:
        raise ToolInvocationError(tool, f"failed to start: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise ToolInvocationError(tool, f"timed out after {timeout}s") from e

    result = CommandResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    logger.debug(
        "tool_finished",
        tool=tool,
        returncode=result.returncode,
        stdout_length=len(result.stdout),
        stderr_length=len(result.stderr),
    )
    return result
