import threading
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from quickfile.index.lister import list_files, resolve_home
from quickfile.index.matcher import FuzzyMatcher, translate_offsets
from quickfile.index.messages import SearchMatch, SearchResult
from quickfile.index.models import FileEntry, IndexStatus, SearchOutcome, make_display_path
from quickfile.logger import logging

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100

Lister = Callable[[Path], Sequence[str]]


class ReadWriteLock:
    """Many concurrent readers or one writer. Waiting writers block new readers."""

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._condition:
            while self._writer or self._writers_waiting:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._condition.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()


class FileIndex:
    """
    The daemon's searchable set of file entries.

    Entries keep the order the lister produced them in and are only ever
    replaced wholesale by ``update``.
    """

    root: Path
    home: str
    lister: Lister
    matcher: FuzzyMatcher

    def __init__(
        self,
        root: Path | None = None,
        lister: Lister | None = None,
        matcher: FuzzyMatcher | None = None,
        home: str | None = None,
    ):
        self.home = home if home is not None else resolve_home()
        self.root = root if root is not None else Path(self.home)
        self.lister = lister if lister is not None else list_files
        self.matcher = matcher if matcher is not None else FuzzyMatcher()
        self._entries: list[FileEntry] = []
        self._last_updated = time.time()
        self._lock = ReadWriteLock()

    def update(self) -> int:
        """
        Rebuild the index from a fresh file listing.

        Returns the new number of entries. On failure the previous entries are kept.

        Raises:
            IndexRebuildError: If the listing fails.
        """
        with self._lock.write():
            logger.info("Updating file index under %s...", self.root)
            time_start = time.time()
            paths = self.lister(self.root)
            self._entries = [
                FileEntry(path=path, display_path=make_display_path(path, self.home))
                for path in paths
            ]
            self._last_updated = time.time()
            logger.info(
                "Indexed %d files in %.2fs", len(self._entries), self._last_updated - time_start
            )
            return len(self._entries)

    def search(self, query: str, limit: int | None = None) -> SearchOutcome:
        """
        Rank entries whose filename fuzzily matches ``query``.

        A query with no terms returns the first ``limit`` entries in index order, unscored.
        """
        if limit is None:
            limit = DEFAULT_LIMIT

        with self._lock.read():
            entries = self._entries
            total_files = len(entries)

            if not query.strip():
                results = [
                    SearchResult(path=entry.path, display_path=entry.display_path)
                    for entry in entries[:limit]
                ]
                return SearchOutcome(results=results, total_files=total_files)

            scored = []
            for entry in entries:
                filename = entry.display_path.rsplit("/", 1)[-1]
                found = self.matcher.match(query, filename)
                if found is None:
                    continue
                scored.append(
                    SearchResult(
                        path=entry.path,
                        display_path=entry.display_path,
                        matches=[
                            SearchMatch(char_index=index)
                            for index in translate_offsets(found.indices, entry.display_path)
                        ],
                        score=found.score,
                    )
                )

        # list.sort is stable, so equal scores keep scan order
        scored.sort(key=lambda result: result.score, reverse=True)
        return SearchOutcome(results=scored[:limit], total_files=total_files)

    def status(self) -> IndexStatus:
        with self._lock.read():
            return IndexStatus(
                files_count=len(self._entries),
                last_updated=self._timestamp(),
            )

    def last_updated_timestamp(self) -> int:
        """Seconds since the Unix epoch of the last successful rebuild, 0 if unknown."""
        with self._lock.read():
            return self._timestamp()

    def entries(self) -> list[FileEntry]:
        with self._lock.read():
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def _timestamp(self) -> int:
        return max(int(self._last_updated), 0)
