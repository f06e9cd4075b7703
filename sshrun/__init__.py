"""sshrun: run one command on a remote host over SSH."""

from sshrun.models import ExecutionResult
from sshrun.services import authenticate, execute_command, run_remote_command

__all__ = [
    "ExecutionResult",
    "authenticate",
    "execute_command",
    "run_remote_command",
]
