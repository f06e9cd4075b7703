"""Event channel between the transport and the authentication loop."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from sshrun.models import AuthEvent, Responder

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class AuthEventChannel:
    """FIFO of authentication events with one-shot reply futures.

    The transport side calls publish() and ask(); the consumer iterates
    with ``async for``. Once closed, iteration ends after the events
    already queued are delivered, and any reply still pending is
    cancelled so a late answer fails instead of vanishing.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._pending: set[asyncio.Future[Any]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: AuthEvent) -> None:
        """Queue an event for the consumer.

        Events published after close() are dropped.
        """
        if self._closed:
            logger.debug("Dropping %s published after close", type(event).__name__)
            return
        self._queue.put_nowait(event)

    async def ask(
        self,
        make_event: Callable[[Any, Responder[T]], AuthEvent],
        challenge: Any,
    ) -> T:
        """Publish a challenge event and wait for its answer.

        Args:
            make_event: Event class taking (challenge, responder)
            challenge: Challenge payload

        Returns:
            The value passed to the responder

        Raises:
            asyncio.CancelledError: If the channel closes first
        """
        reply: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._pending.add(reply)
        reply.add_done_callback(self._pending.discard)
        self.publish(make_event(challenge, Responder.for_future(reply)))
        return await reply

    def close(self) -> None:
        """End the event stream."""
        if self._closed:
            return
        self._closed = True
        for reply in list(self._pending):
            reply.cancel()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "AuthEventChannel":
        return self

    async def __anext__(self) -> AuthEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # Stay exhausted for any later iteration
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        event: AuthEvent = item
        return event
