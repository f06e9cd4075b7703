"""Authentication handshake driven by server events."""

import logging
from collections.abc import Callable, Sequence
from typing import Any

from sshrun.models import (
    Authenticate,
    Authenticated,
    AuthFailed,
    Banner,
    HostKeyChallenge,
    HostVerify,
    Responder,
    ResponderUsedError,
)
from sshrun.protocols import AuthEventSource

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Authentication did not complete."""


class AuthTransportError(AuthError):
    """Sending an answer to the transport failed."""

    def __init__(self, step: str, original_error: Exception):
        """Initialize transport error.

        Args:
            step: Which challenge was being answered
            original_error: Exception raised by the transport
        """
        self.step = step
        self.original_error = original_error
        super().__init__(f"Failed to answer {step}: {original_error}")


class AuthRejectedError(AuthError):
    """Server or transport reported an authentication failure."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Authentication rejected: {message}")


class IncompleteHandshakeError(AuthError):
    """Event source closed before a terminal event arrived."""

    def __init__(self) -> None:
        super().__init__("Authentication ended before the server accepted or rejected it")


async def _respond(responder: Responder[Any], value: Any, step: str) -> None:
    try:
        await responder.answer(value)
    except ResponderUsedError:
        raise
    except Exception as e:
        logger.error("Transport failed while answering %s: %s", step, e)
        raise AuthTransportError(step, e) from e


async def authenticate(
    events: AuthEventSource,
    answers: Sequence[str] = (),
    verify_host: Callable[[HostKeyChallenge], bool] | None = None,
) -> None:
    """Consume authentication events until the session is authenticated.

    Events are handled strictly in arrival order:

    - HostVerify is answered True (trust on first use), or with the
      verdict of verify_host when one is given
    - Authenticate is answered with a copy of answers
    - Banner text is logged
    - AuthFailed and Authenticated end the loop

    Args:
        events: Event source published by the transport
        answers: Credential answers offered to every prompt
        verify_host: Optional host key policy

    Raises:
        AuthRejectedError: On an AuthFailed event
        AuthTransportError: If an answer cannot be sent
        IncompleteHandshakeError: If the source ends without a verdict
    """
    async for event in events:
        if isinstance(event, HostVerify):
            challenge = event.challenge
            trusted = True if verify_host is None else verify_host(challenge)
            logger.info(
                "Host key for %s:%d (%s %s) %s",
                challenge.host,
                challenge.port,
                challenge.key_type,
                challenge.fingerprint,
                "trusted" if trusted else "rejected",
            )
            await _respond(event.responder, trusted, "host verification")

        elif isinstance(event, Authenticate):
            logger.debug(
                "Answering %s with %d credential(s) for %d prompt(s)",
                event.challenge.name or "credential challenge",
                len(answers),
                len(event.challenge.prompts),
            )
            await _respond(event.responder, list(answers), "credential challenge")

        elif isinstance(event, Banner):
            if event.text is not None:
                logger.info("Banner: %s", event.text)

        elif isinstance(event, AuthFailed):
            logger.error("Authentication failed: %s", event.message)
            raise AuthRejectedError(event.message)

        elif isinstance(event, Authenticated):
            logger.info("Authenticated")
            return

        else:
            raise TypeError(f"Unknown authentication event: {event!r}")

    logger.error("Authentication event source closed without a verdict")
    raise IncompleteHandshakeError()
