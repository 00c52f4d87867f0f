"""Outbound delivery of responses to the client's response socket.

The daemon is the connecting party here. The connection is only kept while at
least one request connection is open; responses fall back to the request
connection whenever it is missing or broken.
"""

import asyncio
from pathlib import Path

from quickfile.config import ResponseChannelIntervals
from quickfile.logger import logging

logger = logging.getLogger(__name__)


class ClientCounter:
    """Number of open request connections."""

    def __init__(self):
        self._count = 0

    def increment(self) -> int:
        self._count += 1
        return self._count

    def decrement(self) -> int:
        self._count = max(self._count - 1, 0)
        return self._count

    @property
    def active(self) -> int:
        return self._count


async def _write_frame(writer: asyncio.StreamWriter, frame: str):
    if writer.is_closing():
        raise ConnectionResetError("connection is closed")
    writer.write(frame.encode("utf-8") + b"\n")
    await writer.drain()


def _discard(writer: asyncio.StreamWriter):
    try:
        writer.close()
    except OSError as e:
        logger.debug("Error closing response connection: %s", e)


class ResponseChannel:
    socket_path: Path
    clients: ClientCounter
    intervals: ResponseChannelIntervals

    def __init__(
        self,
        socket_path: Path,
        clients: ClientCounter,
        intervals: ResponseChannelIntervals | None = None,
    ):
        self.socket_path = socket_path
        self.clients = clients
        self.intervals = intervals if intervals else ResponseChannelIntervals()
        self._writer: asyncio.StreamWriter | None = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._writer is not None

    async def run(self):
        """Keep the outbound connection in step with client activity. Never returns."""
        while True:
            await asyncio.sleep(await self.step())

    async def step(self) -> float:
        """Evaluate the connection state once and return how long to wait before the next check."""
        if self.clients.active == 0:
            async with self._lock:
                if self._writer is not None:
                    logger.debug("No active clients, disconnecting from response server")
                    _discard(self._writer)
                    self._writer = None
            return self.intervals.idle

        async with self._lock:
            if self._writer is not None:
                return self.intervals.hold

            logger.info(
                "Attempting to connect to response server at %s (active clients: %d)",
                self.socket_path,
                self.clients.active,
            )
            try:
                _, writer = await asyncio.open_unix_connection(str(self.socket_path))
            except OSError as e:
                logger.debug("Failed to connect to response server: %s", e)
                return self.intervals.retry

            logger.info("Connected to response server")
            self._writer = writer
            return self.intervals.hold

    async def deliver(self, frame: str, fallback: asyncio.StreamWriter):
        """
        Send one response frame.

        Uses the outbound connection when one is available, otherwise writes to
        ``fallback``. Errors on the fallback connection propagate to the caller.
        """
        async with self._lock:
            writer, self._writer = self._writer, None

        if writer is not None:
            try:
                await _write_frame(writer, frame)
            except (OSError, RuntimeError) as e:
                logger.warning("Failed to send via response socket: %s", e)
                _discard(writer)
            else:
                logger.debug("Sent response via response socket: %s", frame)
                async with self._lock:
                    if self._writer is None:
                        self._writer = writer
                    else:
                        _discard(writer)
                return

        await _write_frame(fallback, frame)
        logger.debug("Sent response via request socket (fallback): %s", frame)

    async def close(self):
        async with self._lock:
            if self._writer is not None:
                _discard(self._writer)
                self._writer = None
