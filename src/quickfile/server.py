"""Request channel: newline-delimited JSON requests over a Unix socket."""

import asyncio
from pathlib import Path

from quickfile.errors import IndexRebuildError, ProtocolError
from quickfile.index.file_index import FileIndex
from quickfile.index.messages import (
    DaemonRequest,
    DaemonResponse,
    ErrorResponse,
    RefreshCompleteResponse,
    RefreshRequest,
    SearchRequest,
    SearchResultsResponse,
    StatusRequest,
    StatusResponse,
    encode_response,
    parse_request,
)
from quickfile.logger import logging
from quickfile.response_channel import ClientCounter, ResponseChannel

logger = logging.getLogger(__name__)

STREAM_LIMIT = 16 * 1024 * 1024  # longest accepted request line, in bytes


def handle_request(request: DaemonRequest, index: FileIndex) -> DaemonResponse:
    """Service one parsed request against the index. Blocks while the index is locked."""
    if isinstance(request, SearchRequest):
        outcome = index.search(request.query, request.limit)
        return SearchResultsResponse(
            results=list(outcome.results),
            results_count=len(outcome.results),
            total_files=outcome.total_files,
        )
    if isinstance(request, RefreshRequest):
        try:
            files_count = index.update()
        except IndexRebuildError as e:
            logger.error("Refresh failed: %s", e)
            return ErrorResponse(message=str(e))
        return RefreshCompleteResponse(files_count=files_count)
    if isinstance(request, StatusRequest):
        status = index.status()
        return StatusResponse(files_count=status.files_count, last_updated=status.last_updated)
    raise TypeError(f"Unsupported request: {request!r}")


class RequestServer:
    index: FileIndex
    responder: ResponseChannel
    clients: ClientCounter
    socket_path: Path
    stream_limit: int

    def __init__(
        self,
        index: FileIndex,
        responder: ResponseChannel,
        clients: ClientCounter,
        socket_path: Path,
        stream_limit: int = STREAM_LIMIT,
    ):
        self.index = index
        self.responder = responder
        self.clients = clients
        self.socket_path = socket_path
        self.stream_limit = stream_limit
        self._server: asyncio.Server | None = None

    async def start(self):
        # Only one daemon may own the address, so a leftover socket file is stale.
        if self.socket_path.exists() or self.socket_path.is_symlink():
            logger.info("Removing stale socket %s", self.socket_path)
            self.socket_path.unlink()

        self._server = await asyncio.start_unix_server(
            self._handle_connection, path=str(self.socket_path), limit=self.stream_limit
        )
        logger.info("Request server listening on %s", self.socket_path)

    async def serve_forever(self):
        if self._server is None:
            await self.start()
        assert self._server is not None
        await self._server.serve_forever()

    async def close(self):
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self.socket_path.unlink(missing_ok=True)

    async def respond(self, frame: bytes) -> DaemonResponse:
        try:
            text = frame.decode("utf-8")
        except UnicodeDecodeError:
            return ErrorResponse(message="Invalid request: frame is not valid UTF-8")

        logger.debug("Received request: %s", text)
        try:
            request = parse_request(text)
        except ProtocolError as e:
            return ErrorResponse(message=f"Invalid request: {e}")

        # Index work happens off the event loop; the lock is released before delivery.
        return await asyncio.to_thread(handle_request, request, self.index)

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        logger.debug("Client connected. Active clients: %d", self.clients.increment())
        try:
            await self._serve_connection(reader, writer)
        except Exception as e:
            logger.warning("Client handler error: %s", e)
        finally:
            logger.debug("Client disconnected. Active clients: %d", self.clients.decrement())
            writer.close()

    async def _serve_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        while True:
            oversized = False
            try:
                line = await reader.readline()
            except ValueError:
                # The stream cannot resync after an overlong line, so answer and close.
                logger.warning("Request frame exceeds %d bytes", self.stream_limit)
                oversized = True
            else:
                if not line:
                    return

            if oversized:
                response = ErrorResponse(message="Invalid request: frame too long")
            else:
                response = await self.respond(line.rstrip(b"\r\n"))
            try:
                await self.responder.deliver(encode_response(response), writer)
            except (OSError, RuntimeError) as e:
                logger.warning("Failed to write fallback response: %s", e)
                return
            if oversized:
                return
