"""Protocol interfaces for the transport collaborator.

The authentication state machine and the execution coordinator depend only
on these contracts. The asyncssh adapter in sshrun.services.session
implements them, and tests substitute in-memory fakes.

Usage Example:

    from sshrun.protocols import RemoteSession

    async def uptime(session: RemoteSession) -> bytes:
        '''Function depends on protocol, not concrete implementation.'''
        result = await execute_command(session, "uptime")
        return result.stdout

    # Or fake for testing
    class FakeSession:
        async def exec(self, command, env=None):
            return SpawnedProcess(process, stdout, stderr)

    await uptime(FakeSession())
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sshrun.models import AuthEvent, ExitStatus


@runtime_checkable
class ByteStream(Protocol):
    """Readable byte stream supporting non-blocking reads.

    Follows the os.read() convention for non-blocking descriptors:
    data is returned as bytes, b"" means end of stream, and
    BlockingIOError means nothing is available yet.
    """

    def set_non_blocking(self, enabled: bool) -> None:
        """Switch the stream in or out of non-blocking mode."""
        ...

    def read(self, size: int) -> bytes | None:
        """Read up to size bytes.

        Returns:
            Bytes read, b"" at end of stream, or None when no data is
            available (io.RawIOBase convention)

        Raises:
            BlockingIOError: If no data is available yet
            OSError: On any fatal stream error
        """
        ...


@runtime_checkable
class ProcessHandle(Protocol):
    """Remote process started by a session."""

    async def wait_for_exit(self) -> ExitStatus:
        """Wait for the process to terminate.

        Returns:
            Exit status reported by the remote side
        """
        ...


@dataclass
class SpawnedProcess:
    """Handles returned when a session starts a command."""

    process: ProcessHandle
    stdout: ByteStream
    stderr: ByteStream


@runtime_checkable
class RemoteSession(Protocol):
    """Authenticated transport connection able to spawn commands."""

    async def exec(
        self,
        command: str,
        env: dict[str, str] | None = None,
    ) -> SpawnedProcess:
        """Start a command on the remote host.

        Args:
            command: Command line to run
            env: Optional environment variables to request

        Returns:
            Process handle plus stdout and stderr streams

        Raises:
            Exception: If the command cannot be started
        """
        ...


@runtime_checkable
class AuthEventSource(Protocol):
    """Ordered source of authentication events.

    Iteration ends when the transport closes the channel.
    """

    def __aiter__(self) -> AsyncIterator[AuthEvent]:
        ...


__all__ = [
    "AuthEventSource",
    "ByteStream",
    "ProcessHandle",
    "RemoteSession",
    "SpawnedProcess",
]
