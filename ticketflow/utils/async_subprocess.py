"""Async subprocess utilities.

Non-blocking subprocess execution so git invocations never stall the event
loop while other work (tracker requests, validation checks) is in flight.

Example:
    >>> from ticketflow.utils.async_subprocess import run_command
    >>> stdout, stderr, code = await run_command("git", "status", "--porcelain", cwd="/repo")
    >>> dirty = bool(stdout.strip())
"""

import asyncio
import subprocess
from pathlib import Path


async def run_command(
    *args: str,
    cwd: Path | str | None = None,
    check: bool = True,
) -> tuple[str, str, int]:
    """Run a command asynchronously without shell interpolation.

    Args:
        *args: Command and arguments as separate strings, e.g.
            ``"git", "log", "-n1"``.
        cwd: Working directory for the command. None uses the current
            working directory of the process.
        check: If True (default), raise CalledProcessError when the command
            returns a non-zero exit code.

    Returns:
        Tuple of (stdout, stderr, return_code) with output decoded as UTF-8
        (invalid bytes replaced).

    Raises:
        subprocess.CalledProcessError: If check=True and the command exits
            non-zero. stdout and stderr are attached to the exception.
        FileNotFoundError: If the executable is not found.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout_bytes, stderr_bytes = await process.communicate()

    stdout = (stdout_bytes or b"").decode("utf-8", errors="replace")
    stderr = (stderr_bytes or b"").decode("utf-8", errors="replace")

    if check and process.returncode != 0:
        raise subprocess.CalledProcessError(
            process.returncode,
            args,
            stdout,
            stderr,
        )

    return stdout, stderr, process.returncode or 0
