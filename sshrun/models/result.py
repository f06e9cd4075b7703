"""Command execution data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ExitStatus:
    """How a remote process terminated."""

    code: int | None = None
    signal: str | None = None

    @property
    def success(self) -> bool:
        """True only for a normal exit with code 0."""
        return self.code == 0 and self.signal is None


@dataclass(frozen=True)
class ExecutionResult:
    """Result of a remote command execution."""

    success: bool
    stdout: bytes
    stderr: bytes
    exit_code: int | None = None

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")
