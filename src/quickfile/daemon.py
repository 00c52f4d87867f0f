import asyncio
from functools import partial

from quickfile.config import DaemonConfig
from quickfile.errors import IndexRebuildError, StartupError
from quickfile.index.file_index import FileIndex
from quickfile.index.lister import list_files
from quickfile.logger import logging
from quickfile.response_channel import ClientCounter, ResponseChannel
from quickfile.scheduler import RefreshScheduler
from quickfile.server import RequestServer

logger = logging.getLogger(__name__)


class Daemon:
    config: DaemonConfig
    index: FileIndex
    clients: ClientCounter
    responder: ResponseChannel
    server: RequestServer
    scheduler: RefreshScheduler

    def __init__(self, config: DaemonConfig, index: FileIndex | None = None):
        self.config = config
        self.index = (
            index
            if index is not None
            else FileIndex(root=config.root, lister=partial(list_files, command=config.lister))
        )
        self.clients = ClientCounter()
        self.responder = ResponseChannel(config.response_socket, self.clients, config.intervals)
        self.server = RequestServer(
            self.index, self.responder, self.clients, config.request_socket
        )
        self.scheduler = RefreshScheduler(self.index, config.refresh_interval)
        self._tasks: list[asyncio.Task] = []

    def initialize(self):
        """
        Build the index before serving.

        Raises:
            StartupError: If the initial listing fails.
        """
        try:
            self.index.update()
        except IndexRebuildError as e:
            logger.error("Failed to initialize file index: %s", e)
            raise StartupError(str(e)) from e

    async def start(self):
        await self.server.start()
        self._tasks = [
            asyncio.create_task(self.scheduler.run(), name="quickfile-refresh"),
            asyncio.create_task(self.responder.run(), name="quickfile-response-channel"),
        ]

    async def stop(self):
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.responder.close()
        await self.server.close()

    async def serve(self):
        self.initialize()
        await self.start()
        try:
            await self.server.serve_forever()
        finally:
            await self.stop()


def run_daemon(config: DaemonConfig):
    logger.info("Starting quickfile daemon...")
    asyncio.run(Daemon(config).serve())
