"""Connect, authenticate and run one command on a remote host."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, TypeVar

from sshrun.models import ExecutionResult
from sshrun.services.auth import authenticate
from sshrun.services.executor import execute_command
from sshrun.services.session import open_session

if TYPE_CHECKING:
    from sshrun.config import Config

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _with_timeout(step: Awaitable[T], timeout: int | None, what: str) -> T:
    """Await a step, optionally bounded by a timeout in seconds."""
    if timeout is None:
        return await step
    try:
        return await asyncio.wait_for(step, timeout)
    except asyncio.TimeoutError as e:
        logger.error("%s timed out after %ds", what, timeout)
        raise TimeoutError(f"{what} timed out after {timeout}s") from e


async def run_remote_command(
    config: "Config",
    host_name: str,
    command: str,
) -> ExecutionResult:
    """Run a command on a host and return its combined result.

    The session is always closed before returning, whether the
    handshake, the command, or a timeout failed.

    Args:
        config: Application configuration
        host_name: Host name or ~/.ssh/config alias
        command: Command line to run

    Returns:
        ExecutionResult for the command

    Raises:
        AuthError: If authentication fails
        ExecError: If the command cannot be run to completion
        TimeoutError: If an opt-in timeout expires
    """
    host = config.resolve_host(host_name)
    session, events = open_session(host, backend=config.backend)
    try:
        logger.info("Authenticating to %s", host.destination)
        await _with_timeout(
            authenticate(events, config.answers, config.host_keys.verify),
            config.auth_timeout,
            "Authentication",
        )
        return await _with_timeout(
            execute_command(
                session,
                command,
                chunk_size=config.read_chunk_size,
                pause=config.reader_pause,
            ),
            config.command_timeout,
            f"Command {command!r}",
        )
    finally:
        await session.close()
