"""Tests for authentication event models."""

import asyncio
from typing import Any

import pytest

from sshrun.models import (
    Authenticate,
    AuthFailed,
    Banner,
    CredentialChallenge,
    HostKeyChallenge,
    HostVerify,
    Responder,
    ResponderUsedError,
)


class TestResponder:
    """One-shot answer guard."""

    @pytest.mark.asyncio
    async def test_answer_sends_once(self) -> None:
        sent: list[Any] = []

        async def send(value: Any) -> None:
            sent.append(value)

        responder: Responder[bool] = Responder(send)
        assert not responder.answered

        await responder.answer(True)

        assert responder.answered
        assert sent == [True]

    @pytest.mark.asyncio
    async def test_second_answer_raises(self) -> None:
        sent: list[Any] = []

        async def send(value: Any) -> None:
            sent.append(value)

        responder: Responder[list[str]] = Responder(send)
        await responder.answer(["a"])

        with pytest.raises(ResponderUsedError):
            await responder.answer(["b"])

        assert sent == [["a"]]

    @pytest.mark.asyncio
    async def test_failed_send_still_consumes(self) -> None:
        """A failed transmission cannot be retried through the same slot."""

        async def send(value: Any) -> None:
            raise OSError("closed")

        responder: Responder[bool] = Responder(send)
        with pytest.raises(OSError):
            await responder.answer(True)

        with pytest.raises(ResponderUsedError):
            await responder.answer(True)

    @pytest.mark.asyncio
    async def test_for_future_resolves_future(self) -> None:
        reply: asyncio.Future[bool] = asyncio.get_running_loop().create_future()

        await Responder.for_future(reply).answer(False)

        assert reply.result() is False

    @pytest.mark.asyncio
    async def test_for_future_fails_when_cancelled(self) -> None:
        reply: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        reply.cancel()

        with pytest.raises(ConnectionResetError):
            await Responder.for_future(reply).answer(True)


def test_challenge_events_compare_by_challenge() -> None:
    """Responders do not take part in equality."""

    async def send(value: Any) -> None:
        pass

    challenge = HostKeyChallenge(host="h", port=22, key_type="ssh-ed25519", fingerprint="SHA256:f")
    assert HostVerify(challenge, Responder(send)) == HostVerify(challenge, Responder(send))

    prompts = CredentialChallenge(name="kbd", prompts=(("Password: ", False),))
    assert Authenticate(prompts, Responder(send)).challenge.prompts[0] == ("Password: ", False)


def test_host_key_challenge_ignores_raw_key() -> None:
    first = HostKeyChallenge(host="h", port=22, key_type="t", fingerprint="f", key=object())
    second = HostKeyChallenge(host="h", port=22, key_type="t", fingerprint="f", key=object())
    assert first == second


def test_informational_events() -> None:
    assert Banner().text is None
    assert AuthFailed("nope").message == "nope"
