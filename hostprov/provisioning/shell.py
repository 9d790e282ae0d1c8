"""Local subprocess execution for the ssh/scp/ssh-keygen collaborators."""

import asyncio
import logging
import shlex
from typing import NamedTuple

logger = logging.getLogger(__name__)


class CommandResult(NamedTuple):
    returncode: int
    stdout: str
    stderr: str


async def run_shell_cmd(command, dry_run=False, timeout=600):
    """Run *command* (an argv list) and capture its output.

    Args:
        command: list of command arguments
        dry_run: if True, log the command instead of executing
        timeout: maximum seconds to wait for the command

    Returns:
        CommandResult; a missing binary or a timeout is reported as
        returncode 1 with the reason in stderr.
    """
    printable = shlex.join(command)
    if dry_run:
        logger.info(f"[dry-run] {printable}")
        return CommandResult(0, "", "")

    logger.debug(f"$ {printable}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        logger.error(f"Error: '{command[0]}' not found. Is it installed and on PATH?")
        return CommandResult(1, "", f"'{command[0]}' not found")
    except OSError as e:
        logger.error(f"Error: could not run '{command[0]}': {e}")
        return CommandResult(1, "", str(e))

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        logger.error(f"Command timed out after {timeout}s: {printable}")
        proc.kill()
        await proc.wait()
        return CommandResult(1, "", "timeout")

    return CommandResult(
        proc.returncode,
        stdout_bytes.decode(errors="replace") if stdout_bytes else "",
        stderr_bytes.decode(errors="replace") if stderr_bytes else "",
    )
