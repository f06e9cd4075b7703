"""Drain a non-blocking byte stream to end of data."""

import asyncio

from sshrun.protocols import ByteStream

READ_CHUNK_SIZE = 1024
READER_PAUSE_SECONDS = 0.1


async def drain_stream(
    stream: ByteStream,
    *,
    chunk_size: int = READ_CHUNK_SIZE,
    pause: float = READER_PAUSE_SECONDS,
) -> bytes:
    """Read a stream until end of data.

    Polls the stream, sleeping `pause` seconds whenever no data is
    available. Errors other than "would block" end the drain and
    propagate; nothing read so far is returned in that case.

    Args:
        stream: Stream already switched to non-blocking mode
        chunk_size: Maximum bytes per read
        pause: Seconds to wait when the stream would block

    Returns:
        Every byte read before end of stream
    """
    buffer = bytearray()
    while True:
        try:
            chunk = stream.read(chunk_size)
        except BlockingIOError:
            chunk = None

        if chunk is None:
            await asyncio.sleep(pause)
        elif chunk:
            buffer.extend(chunk)
        else:
            return bytes(buffer)
