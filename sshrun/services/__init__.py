"""Services for sshrun."""

from sshrun.services.auth import (
    AuthError,
    AuthRejectedError,
    AuthTransportError,
    IncompleteHandshakeError,
    authenticate,
)
from sshrun.services.channel import AuthEventChannel
from sshrun.services.connection import run_remote_command
from sshrun.services.drain import drain_stream
from sshrun.services.executor import (
    DrainFailedError,
    ExecError,
    StartFailedError,
    WaitFailedError,
    execute_command,
)
from sshrun.services.session import (
    AsyncSSHSession,
    ChannelStream,
    RemoteProcess,
    open_session,
)

__all__ = [
    "AsyncSSHSession",
    "AuthError",
    "AuthEventChannel",
    "AuthRejectedError",
    "AuthTransportError",
    "ChannelStream",
    "DrainFailedError",
    "ExecError",
    "IncompleteHandshakeError",
    "RemoteProcess",
    "StartFailedError",
    "WaitFailedError",
    "authenticate",
    "drain_stream",
    "execute_command",
    "open_session",
    "run_remote_command",
]
