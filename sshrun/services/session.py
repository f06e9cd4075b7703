"""asyncssh transport adapter.

Turns an asyncssh connection attempt into the AuthEvent stream consumed by
authenticate(), and exposes the resulting connection as a RemoteSession
whose processes have non-blocking stdout/stderr streams.

Host key verification is event driven: the server key is probed first and
published as a HostVerify challenge. If it is trusted, the real connection
is opened with exactly that key pinned.
"""

import asyncio
import errno
import io
import logging
from collections.abc import Callable
from typing import Any

import asyncssh

from sshrun.models import (
    Authenticate,
    Authenticated,
    AuthFailed,
    Banner,
    CredentialChallenge,
    ExitStatus,
    HostKeyChallenge,
    HostVerify,
    SSHHost,
)
from sshrun.protocols import SpawnedProcess
from sshrun.services.channel import AuthEventChannel

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("asyncssh",)

# Channel flow control thresholds (bytes buffered across both streams)
HIGH_WATER_MARK = 256 * 1024
LOW_WATER_MARK = 64 * 1024


class ChannelStream:
    """Non-blocking byte stream fed by an SSH channel."""

    def __init__(self, name: str, on_read: Callable[[], None] | None = None) -> None:
        self.name = name
        self._on_read = on_read
        self._buffer = bytearray()
        self._eof = False
        self._error: BaseException | None = None
        self._non_blocking = False

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def feed_data(self, data: bytes) -> None:
        self._buffer.extend(data)

    def feed_eof(self) -> None:
        self._eof = True

    def set_exception(self, exc: BaseException) -> None:
        """Fail the stream unless it already reached end of data."""
        if not self._eof:
            self._error = exc

    def set_non_blocking(self, enabled: bool) -> None:
        if not enabled:
            raise io.UnsupportedOperation(
                f"{self.name}: SSH channel streams only support non-blocking reads"
            )
        self._non_blocking = True

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes of buffered data.

        Raises:
            io.UnsupportedOperation: If non-blocking mode is not enabled
            ValueError: If size is 0, which would look like end of stream
            BlockingIOError: If no data is buffered and the stream is open
        """
        if size == 0:
            raise ValueError(f"{self.name}: read size must be non-zero")
        if not self._non_blocking:
            raise io.UnsupportedOperation(
                f"{self.name}: call set_non_blocking(True) before reading"
            )
        if self._buffer:
            if size < 0 or size >= len(self._buffer):
                data = bytes(self._buffer)
                self._buffer.clear()
            else:
                data = bytes(self._buffer[:size])
                del self._buffer[:size]
            if self._on_read is not None:
                self._on_read()
            return data
        if self._error is not None:
            raise self._error
        if self._eof:
            return b""
        raise BlockingIOError(errno.EAGAIN, f"{self.name}: no data available")


class RemoteProcess(asyncssh.SSHClientSession):
    """Channel session for one remote command.

    Splits channel data into stdout/stderr streams and records the exit
    status. Implements the ProcessHandle protocol.
    """

    def __init__(self) -> None:
        self.stdout = ChannelStream("stdout", self._maybe_resume)
        self.stderr = ChannelStream("stderr", self._maybe_resume)
        self._chan: Any = None
        self._paused = False
        self._status: ExitStatus | None = None
        self._exited: asyncio.Future[ExitStatus] = (
            asyncio.get_running_loop().create_future()
        )

    def _buffered(self) -> int:
        return self.stdout.buffered + self.stderr.buffered

    def _maybe_resume(self) -> None:
        if self._paused and self._buffered() <= LOW_WATER_MARK:
            self._paused = False
            self._chan.resume_reading()

    def connection_made(self, chan: Any) -> None:
        self._chan = chan

    def data_received(self, data: bytes, datatype: Any) -> None:
        if datatype == asyncssh.EXTENDED_DATA_STDERR:
            self.stderr.feed_data(data)
        else:
            self.stdout.feed_data(data)

        if not self._paused and self._buffered() > HIGH_WATER_MARK:
            logger.debug(
                "Pausing channel reads (%d bytes buffered)", self._buffered()
            )
            self._paused = True
            self._chan.pause_reading()

    def eof_received(self) -> bool:
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        return False

    def exit_status_received(self, status: int) -> None:
        self._status = ExitStatus(code=status)

    def exit_signal_received(
        self, signal: str, core_dumped: bool, msg: str, lang: str
    ) -> None:
        self._status = ExitStatus(signal=signal)

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None:
            logger.warning("SSH channel closed with error: %s", exc)
            self.stdout.set_exception(exc)
            self.stderr.set_exception(exc)
        else:
            self.stdout.feed_eof()
            self.stderr.feed_eof()

        if not self._exited.done():
            if exc is not None and self._status is None:
                self._exited.set_exception(exc)
            else:
                # Servers may close without reporting a status
                self._exited.set_result(self._status or ExitStatus())

    async def wait_for_exit(self) -> ExitStatus:
        return await asyncio.shield(self._exited)


class _EventClient(asyncssh.SSHClient):
    """asyncssh client callbacks that publish authentication events.

    asyncssh asks again after every rejected attempt. Each method and
    each distinct keyboard-interactive challenge is offered once; later
    requests are declined so asyncssh runs out of methods and fails.
    """

    def __init__(self, events: AuthEventChannel) -> None:
        self._events = events
        self._offered: set[str] = set()
        self._answered: set[CredentialChallenge] = set()

    def _first_offer(self, method: str) -> bool:
        if method in self._offered:
            logger.debug("Declining repeated %s authentication", method)
            return False
        self._offered.add(method)
        return True

    def auth_banner_received(self, msg: str, lang: str) -> None:
        self._events.publish(Banner(msg or None))

    def auth_completed(self) -> None:
        self._events.publish(Authenticated())

    def kbdint_auth_requested(self) -> str | None:
        if not self._first_offer("keyboard-interactive"):
            return None
        # Empty string lets the server pick the submethods
        return ""

    async def kbdint_challenge_received(
        self,
        name: str,
        instructions: str,
        lang: str,
        prompts: list[tuple[str, bool]],
    ) -> list[str] | None:
        if not prompts:
            return []

        challenge = CredentialChallenge(
            name=name,
            instructions=instructions,
            prompts=tuple((prompt, echo) for prompt, echo in prompts),
        )
        if challenge in self._answered:
            logger.debug("Declining repeated keyboard-interactive challenge %r", name)
            return None
        self._answered.add(challenge)

        answers: list[str] = await self._events.ask(Authenticate, challenge)
        if len(answers) != len(prompts):
            logger.debug(
                "Declining keyboard-interactive: %d answer(s) for %d prompt(s)",
                len(answers),
                len(prompts),
            )
            return None
        return answers

    async def password_auth_requested(self) -> str | None:
        if not self._first_offer("password"):
            return None
        challenge = CredentialChallenge(
            name="password",
            prompts=(("Password: ", False),),
        )
        answers: list[str] = await self._events.ask(Authenticate, challenge)
        return answers[0] if answers else None


async def _establish(
    host: SSHHost, events: AuthEventChannel
) -> asyncssh.SSHClientConnection:
    """Connect and authenticate, publishing events along the way."""
    try:
        key = await asyncssh.get_server_host_key(host.hostname, host.port)
        if key is None:
            raise ConnectionRefusedError(f"{host.hostname} did not present a host key")

        challenge = HostKeyChallenge(
            host=host.hostname,
            port=host.port,
            key_type=key.get_algorithm(),
            fingerprint=key.get_fingerprint(),
            key=key,
        )
        trusted: bool = await events.ask(HostVerify, challenge)
        if not trusted:
            raise PermissionError(f"Host key for {host.hostname} was not trusted")

        options: dict[str, Any] = {}
        if host.identity_file:
            options["client_keys"] = [host.identity_file]

        conn = await asyncssh.connect(
            host.hostname,
            port=host.port,
            username=host.user,
            known_hosts=([key], [], []),
            client_factory=lambda: _EventClient(events),
            **options,
        )
    except Exception as e:
        logger.error("SSH connection to %s failed: %s", host.destination, e)
        events.publish(AuthFailed(str(e) or type(e).__name__))
        raise
    finally:
        events.close()

    logger.info("SSH connection established to %s", host.destination)
    return conn


class AsyncSSHSession:
    """SSH session backed by an asyncssh connection.

    Created by open_session() before authentication finishes; exec()
    waits for the connection to be ready.
    """

    def __init__(
        self,
        host: SSHHost,
        connect_task: "asyncio.Task[asyncssh.SSHClientConnection]",
    ) -> None:
        self.host = host
        self._connect_task = connect_task

    async def connection(self) -> asyncssh.SSHClientConnection:
        return await asyncio.shield(self._connect_task)

    async def exec(
        self,
        command: str,
        env: dict[str, str] | None = None,
    ) -> SpawnedProcess:
        conn = await self.connection()
        options: dict[str, Any] = {"encoding": None}
        if env:
            options["env"] = env
        _chan, process = await conn.create_session(RemoteProcess, command, **options)
        return SpawnedProcess(
            process=process,
            stdout=process.stdout,
            stderr=process.stderr,
        )

    async def close(self) -> None:
        """Abort a pending connect or close the established connection."""
        if not self._connect_task.done():
            self._connect_task.cancel()
            await asyncio.gather(self._connect_task, return_exceptions=True)
            return
        if self._connect_task.cancelled() or self._connect_task.exception():
            return

        conn = self._connect_task.result()
        logger.debug("Closing SSH connection to %s", self.host.destination)
        conn.close()
        await conn.wait_closed()

    async def __aenter__(self) -> "AsyncSSHSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


def open_session(
    host: SSHHost,
    backend: str = "asyncssh",
) -> tuple[AsyncSSHSession, AuthEventChannel]:
    """Start connecting to a host.

    Must be called from a running event loop. The connection proceeds
    in the background; authenticate() must consume the returned events
    for it to complete.

    Args:
        host: Resolved connection parameters
        backend: Transport backend name

    Returns:
        Tuple of (session, authentication event source)

    Raises:
        ValueError: If backend is not supported
    """
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(
            f"Unsupported backend {backend!r} (supported: {', '.join(SUPPORTED_BACKENDS)})"
        )

    logger.info("Opening SSH connection to %s (%s)", host.name, host.destination)
    events = AuthEventChannel()
    task = asyncio.create_task(_establish(host, events), name=f"ssh-connect-{host.name}")
    return AsyncSSHSession(host, task), events
