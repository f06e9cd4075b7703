"""Authentication events published by the transport during the handshake.

The set of events is closed:

- HostVerify: trust the remote host key? (answered with a bool)
- Authenticate: credential prompts (answered with a list of strings)
- Banner: informational text from the server
- AuthFailed: authentication failed (terminal)
- Authenticated: authentication succeeded (terminal)
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ResponderUsedError(RuntimeError):
    """A challenge was answered more than once."""


class Responder(Generic[T]):
    """One-shot answer slot attached to a challenge event.

    The first call to answer() consumes the responder. Any later call
    raises ResponderUsedError without touching the transport.
    """

    def __init__(self, send: Callable[[T], Awaitable[None]]) -> None:
        """Initialize responder.

        Args:
            send: Coroutine function that transmits the answer
        """
        self._send = send
        self._used = False

    @classmethod
    def for_future(cls, reply: "asyncio.Future[T]") -> "Responder[T]":
        """Create a responder that resolves a pending future.

        Args:
            reply: Future the transport is waiting on

        Returns:
            Responder whose answer sets the future result
        """

        async def send(value: T) -> None:
            if reply.done():
                raise ConnectionResetError(
                    "transport closed before the answer could be sent"
                )
            reply.set_result(value)

        return cls(send)

    @property
    def answered(self) -> bool:
        """Whether the responder has been consumed."""
        return self._used

    async def answer(self, value: T) -> None:
        """Transmit the answer.

        Raises:
            ResponderUsedError: If already answered
            Exception: Whatever the transport raises while sending
        """
        if self._used:
            raise ResponderUsedError("challenge has already been answered")
        self._used = True
        await self._send(value)


@dataclass(frozen=True)
class HostKeyChallenge:
    """Remote host identity awaiting a trust decision."""

    host: str
    port: int
    key_type: str
    fingerprint: str
    key: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class CredentialChallenge:
    """Server request for one or more credentials."""

    name: str = ""
    instructions: str = ""
    # (prompt text, echo input)
    prompts: tuple[tuple[str, bool], ...] = ()


@dataclass(frozen=True)
class HostVerify:
    """Asks whether to trust the remote host key."""

    challenge: HostKeyChallenge
    responder: Responder[bool] = field(compare=False, repr=False)


@dataclass(frozen=True)
class Authenticate:
    """Asks for credential answers, in prompt order."""

    challenge: CredentialChallenge
    responder: Responder[list[str]] = field(compare=False, repr=False)


@dataclass(frozen=True)
class Banner:
    """Informational server banner."""

    text: str | None = None


@dataclass(frozen=True)
class AuthFailed:
    """Authentication failed."""

    message: str


@dataclass(frozen=True)
class Authenticated:
    """Authentication succeeded."""


AuthEvent = HostVerify | Authenticate | Banner | AuthFailed | Authenticated
