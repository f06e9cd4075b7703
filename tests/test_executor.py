"""Tests for remote command execution."""

import asyncio
from collections import deque
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from sshrun.models import ExecutionResult, ExitStatus
from sshrun.protocols import SpawnedProcess
from sshrun.services.executor import (
    DrainFailedError,
    StartFailedError,
    WaitFailedError,
    execute_command,
)


class ScriptedStream:
    """Stream whose reads follow a script; repeats the last step."""

    def __init__(self, steps: list[Any]) -> None:
        self.steps = deque(steps)
        self.reads = 0
        self.non_blocking = False

    def set_non_blocking(self, enabled: bool) -> None:
        self.non_blocking = enabled

    def read(self, size: int) -> bytes:
        self.reads += 1
        step = self.steps.popleft() if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, BaseException):
            raise step
        return step


class BoundedPipe:
    """In-memory pipe whose writer waits while the buffer is full."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self.non_blocking = False
        self._buffer = bytearray()
        self._closed = False
        self._space = asyncio.Event()

    def set_non_blocking(self, enabled: bool) -> None:
        self.non_blocking = enabled

    def read(self, size: int) -> bytes:
        if self._buffer:
            data = bytes(self._buffer[:size])
            del self._buffer[:size]
            self._space.set()
            return data
        if self._closed:
            return b""
        raise BlockingIOError()

    async def write(self, data: bytes) -> None:
        while data:
            while len(self._buffer) >= self.capacity:
                self._space.clear()
                await self._space.wait()
            room = self.capacity - len(self._buffer)
            self._buffer.extend(data[:room])
            data = data[room:]

    def close(self) -> None:
        self._closed = True


class PipeProcess:
    """Remote process writing interleaved output through bounded pipes."""

    def __init__(self, stdout_data: bytes, stderr_data: bytes, capacity: int) -> None:
        self.stdout = BoundedPipe(capacity)
        self.stderr = BoundedPipe(capacity)
        self._stdout_data = stdout_data
        self._stderr_data = stderr_data
        self._task: asyncio.Task[None] | None = None

    def start(self) -> None:
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        piece = 512
        for offset in range(0, max(len(self._stdout_data), len(self._stderr_data)), piece):
            await self.stdout.write(self._stdout_data[offset:offset + piece])
            await self.stderr.write(self._stderr_data[offset:offset + piece])
        self.stdout.close()
        self.stderr.close()

    async def wait_for_exit(self) -> ExitStatus:
        assert self._task is not None
        await self._task
        return ExitStatus(code=0)


class PipeSession:
    def __init__(self, process: PipeProcess) -> None:
        self.process = process

    async def exec(self, command: str, env: dict[str, str] | None = None) -> SpawnedProcess:
        self.process.start()
        return SpawnedProcess(self.process, self.process.stdout, self.process.stderr)


def make_session(
    stdout: ScriptedStream,
    stderr: ScriptedStream,
    status: ExitStatus | Exception = ExitStatus(code=0),
) -> tuple[MagicMock, MagicMock]:
    """Fake session returning the given streams and exit status."""
    process = MagicMock()
    if isinstance(status, Exception):
        process.wait_for_exit = AsyncMock(side_effect=status)
    else:
        process.wait_for_exit = AsyncMock(return_value=status)
    session = MagicMock()
    session.exec = AsyncMock(return_value=SpawnedProcess(process, stdout, stderr))
    return session, process


class TestExecuteCommand:
    """Result assembly and typed failures."""

    @pytest.mark.asyncio
    async def test_collects_stdout_and_success(self) -> None:
        """OK on stdout, nothing on stderr, exit 0."""
        session, _ = make_session(
            ScriptedStream([b"OK\n", b""]),
            ScriptedStream([b""]),
        )

        result = await execute_command(session, "echo OK")

        assert result == ExecutionResult(success=True, stdout=b"OK\n", stderr=b"", exit_code=0)
        session.exec.assert_awaited_once_with("echo OK")

    @pytest.mark.asyncio
    async def test_switches_streams_to_non_blocking(self) -> None:
        stdout, stderr = ScriptedStream([b""]), ScriptedStream([b""])
        session, _ = make_session(stdout, stderr)

        await execute_command(session, "true")

        assert stdout.non_blocking and stderr.non_blocking

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_not_success(self) -> None:
        session, _ = make_session(
            ScriptedStream([b""]),
            ScriptedStream([b"not found\n", b""]),
            ExitStatus(code=127),
        )

        result = await execute_command(session, "missing-cmd")

        assert result.success is False
        assert result.exit_code == 127
        assert result.stderr == b"not found\n"

    @pytest.mark.asyncio
    async def test_signal_exit_is_not_success(self) -> None:
        session, _ = make_session(
            ScriptedStream([b""]),
            ScriptedStream([b""]),
            ExitStatus(signal="KILL"),
        )

        result = await execute_command(session, "sleep 100")

        assert result.success is False
        assert result.exit_code is None

    @pytest.mark.asyncio
    async def test_polls_until_both_streams_end(self) -> None:
        session, _ = make_session(
            ScriptedStream([BlockingIOError(), b"out", BlockingIOError(), b""]),
            ScriptedStream([b"err", BlockingIOError(), BlockingIOError(), b""]),
        )

        result = await execute_command(session, "cmd", pause=0)

        assert result.stdout == b"out"
        assert result.stderr == b"err"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chunk_size", [0, -1])
    async def test_non_positive_chunk_size_rejected(self, chunk_size: int) -> None:
        """A zero-byte read would be mistaken for end of stream."""
        session, _ = make_session(ScriptedStream([b"data", b""]), ScriptedStream([b""]))

        with pytest.raises(ValueError, match="chunk_size must be positive"):
            await execute_command(session, "cat big.log", chunk_size=chunk_size)

        session.exec.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_failure(self) -> None:
        original = ConnectionResetError("channel open failed")
        session = MagicMock()
        session.exec = AsyncMock(side_effect=original)

        with pytest.raises(StartFailedError) as exc_info:
            await execute_command(session, "ls")

        assert exc_info.value.command == "ls"
        assert exc_info.value.original_error is original

    @pytest.mark.asyncio
    async def test_non_blocking_switch_failure_is_start_failure(self) -> None:
        stdout = MagicMock()
        stdout.set_non_blocking.side_effect = OSError("unsupported")
        session, process = make_session(stdout, ScriptedStream([b""]))

        with pytest.raises(StartFailedError, match="unsupported"):
            await execute_command(session, "ls")

        process.wait_for_exit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_drain_failure_keeps_completed_stream(self) -> None:
        """stderr fails, stdout already finished and is kept on the error."""
        error = OSError("stderr reset")
        session, process = make_session(
            ScriptedStream([b"partial output", b""]),
            ScriptedStream([error]),
        )

        with pytest.raises(DrainFailedError) as exc_info:
            await execute_command(session, "cmd")

        assert exc_info.value.stream_name == "stderr"
        assert exc_info.value.original_error is error
        assert exc_info.value.captured == {"stdout": b"partial output"}
        process.wait_for_exit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_drain_failure_cancels_stalled_sibling(self) -> None:
        """A stream that never ends does not hold up the failure."""
        stalled = ScriptedStream([BlockingIOError()])
        session, process = make_session(
            ScriptedStream([BlockingIOError(), OSError("stdout reset")]),
            stalled,
        )

        with pytest.raises(DrainFailedError) as exc_info:
            await asyncio.wait_for(execute_command(session, "cmd", pause=0.01), timeout=5)

        assert exc_info.value.stream_name == "stdout"
        assert exc_info.value.captured == {}
        process.wait_for_exit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wait_failure_keeps_output(self) -> None:
        original = ConnectionResetError("connection lost")
        session, _ = make_session(
            ScriptedStream([b"out", b""]),
            ScriptedStream([b"err", b""]),
            original,
        )

        with pytest.raises(WaitFailedError) as exc_info:
            await execute_command(session, "cmd")

        assert exc_info.value.original_error is original
        assert exc_info.value.stdout == b"out"
        assert exc_info.value.stderr == b"err"

    @pytest.mark.asyncio
    async def test_streams_drained_before_exit_wait(self) -> None:
        stdout, stderr = ScriptedStream([b"x", b""]), ScriptedStream([b""])
        session, process = make_session(stdout, stderr)

        async def check_drained() -> ExitStatus:
            assert stdout.reads == 2
            assert stderr.reads == 1
            return ExitStatus(code=0)

        process.wait_for_exit = AsyncMock(side_effect=check_drained)

        result = await execute_command(session, "cmd")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_cancellation_cancels_drain_tasks(self) -> None:
        """Cancelling the caller leaves no drain task running."""
        session, _ = make_session(
            ScriptedStream([BlockingIOError()]),
            ScriptedStream([BlockingIOError()]),
        )
        before = asyncio.all_tasks()

        task = asyncio.create_task(execute_command(session, "cmd", pause=0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.02)

        leftover = [t for t in asyncio.all_tasks() - before if not t.done()]
        assert leftover == []


class TestConcurrentDraining:
    """Large interleaved output through small buffers."""

    @pytest.mark.asyncio
    async def test_large_interleaved_output_does_not_deadlock(self) -> None:
        size = 256 * 1024
        stdout_data = bytes(i % 251 for i in range(size))
        stderr_data = bytes((i * 7) % 253 for i in range(size))
        process = PipeProcess(stdout_data, stderr_data, capacity=4096)

        result = await asyncio.wait_for(
            execute_command(PipeSession(process), "spew", pause=0.001),
            timeout=30,
        )

        assert result.success is True
        assert result.stdout == stdout_data
        assert result.stderr == stderr_data

    @pytest.mark.asyncio
    async def test_uneven_output_sizes(self) -> None:
        """One chatty stream and one nearly silent stream."""
        stdout_data = b"o" * (64 * 1024)
        stderr_data = b"warning\n"
        process = PipeProcess(stdout_data, stderr_data, capacity=1024)

        result = await asyncio.wait_for(
            execute_command(PipeSession(process), "build", pause=0.001),
            timeout=30,
        )

        assert result.stdout == stdout_data
        assert result.stderr == stderr_data
