"""Run one remote command and collect its output and exit status."""

import asyncio
import logging

from sshrun.models import ExecutionResult
from sshrun.protocols import RemoteSession
from sshrun.services.drain import READ_CHUNK_SIZE, READER_PAUSE_SECONDS, drain_stream

logger = logging.getLogger(__name__)


class ExecError(Exception):
    """Remote command execution failed."""


class StartFailedError(ExecError):
    """The session could not start the command."""

    def __init__(self, command: str, original_error: Exception):
        self.command = command
        self.original_error = original_error
        super().__init__(f"Failed to start {command!r}: {original_error}")


class DrainFailedError(ExecError):
    """Reading one of the output streams failed.

    Output of the other stream is kept in `captured` if it had already
    reached end of stream.
    """

    def __init__(
        self,
        stream_name: str,
        original_error: BaseException,
        captured: dict[str, bytes] | None = None,
    ):
        self.stream_name = stream_name
        self.original_error = original_error
        self.captured = captured or {}
        super().__init__(f"Failed to read {stream_name}: {original_error}")


class WaitFailedError(ExecError):
    """Output was captured but the exit status could not be obtained."""

    def __init__(self, original_error: Exception, stdout: bytes, stderr: bytes):
        self.original_error = original_error
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"Failed to wait for process exit: {original_error}")


async def _join_drains(
    tasks: dict[str, "asyncio.Task[bytes]"],
) -> dict[str, bytes]:
    """Wait for every drain task, failing fast on the first error."""
    try:
        done, pending = await asyncio.wait(
            tasks.values(), return_when=asyncio.FIRST_EXCEPTION
        )
    finally:
        # Also reached when the caller is cancelled
        for task in tasks.values():
            if not task.done():
                task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    outputs: dict[str, bytes] = {}
    failed: tuple[str, BaseException] | None = None
    for name, task in tasks.items():
        if task.cancelled():
            continue
        error = task.exception()
        if error is None:
            outputs[name] = task.result()
        elif failed is None:
            failed = (name, error)

    if failed is not None:
        name, error = failed
        logger.error("Draining %s failed: %s", name, error)
        raise DrainFailedError(name, error, captured=outputs) from error
    return outputs


async def execute_command(
    session: RemoteSession,
    command: str,
    *,
    chunk_size: int = READ_CHUNK_SIZE,
    pause: float = READER_PAUSE_SECONDS,
) -> ExecutionResult:
    """Execute a command and gather stdout, stderr and exit status.

    Both output streams are drained concurrently, and while the process
    is still running, so a command that fills one stream's buffer
    cannot stall waiting for the other to be read.

    Args:
        session: Authenticated session
        command: Command line to run
        chunk_size: Scratch buffer size for each read
        pause: Seconds between polls of an idle stream

    Returns:
        ExecutionResult with both outputs and the success flag

    Raises:
        ValueError: If chunk_size is not positive
        StartFailedError: If the command could not be started
        DrainFailedError: If reading either stream failed
        WaitFailedError: If the exit status could not be obtained
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    logger.info("Executing %s", command)
    try:
        spawned = await session.exec(command)
        spawned.stdout.set_non_blocking(True)
        spawned.stderr.set_non_blocking(True)
    except Exception as e:
        logger.error("Failed to start %r: %s", command, e)
        raise StartFailedError(command, e) from e

    tasks = {
        name: asyncio.create_task(
            drain_stream(stream, chunk_size=chunk_size, pause=pause),
            name=f"drain-{name}",
        )
        for name, stream in (("stdout", spawned.stdout), ("stderr", spawned.stderr))
    }
    outputs = await _join_drains(tasks)
    stdout, stderr = outputs["stdout"], outputs["stderr"]

    try:
        status = await spawned.process.wait_for_exit()
    except Exception as e:
        logger.error("Failed waiting for %r to exit: %s", command, e)
        raise WaitFailedError(e, stdout, stderr) from e

    logger.info(
        "Command completed (exit=%s, stdout=%d bytes, stderr=%d bytes)",
        status.signal or status.code,
        len(stdout),
        len(stderr),
    )
    return ExecutionResult(
        success=status.success,
        stdout=stdout,
        stderr=stderr,
        exit_code=status.code,
    )
