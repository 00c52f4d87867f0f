import asyncio

from quickfile.errors import IndexRebuildError
from quickfile.index.file_index import FileIndex
from quickfile.logger import logging

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Rebuilds the index on a fixed interval, independent of client activity."""

    index: FileIndex
    interval: float

    def __init__(self, index: FileIndex, interval: float):
        self.index = index
        self.interval = interval

    async def run(self):
        # The index is already fresh at startup, so the first rebuild waits one interval.
        while True:
            await asyncio.sleep(self.interval)
            await self.tick()

    async def tick(self) -> bool:
        logger.info("Performing periodic file index refresh...")
        try:
            await asyncio.to_thread(self.index.update)
        except IndexRebuildError as e:
            logger.error("Periodic refresh failed: %s", e)
            return False
        return True
