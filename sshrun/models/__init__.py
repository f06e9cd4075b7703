"""Data models for sshrun."""

from sshrun.models.events import (
    Authenticate,
    Authenticated,
    AuthEvent,
    AuthFailed,
    Banner,
    CredentialChallenge,
    HostKeyChallenge,
    HostVerify,
    Responder,
    ResponderUsedError,
)
from sshrun.models.result import ExecutionResult, ExitStatus
from sshrun.models.ssh import SSHHost

__all__ = [
    "AuthEvent",
    "AuthFailed",
    "Authenticate",
    "Authenticated",
    "Banner",
    "CredentialChallenge",
    "ExecutionResult",
    "ExitStatus",
    "HostKeyChallenge",
    "HostVerify",
    "Responder",
    "ResponderUsedError",
    "SSHHost",
]
