"""In-memory index data model."""

from collections.abc import Sequence
from dataclasses import dataclass

from quickfile.index.messages import SearchResult


@dataclass(frozen=True)
class FileEntry:
    path: str  # absolute
    display_path: str  # path with the home directory shown as "~"


@dataclass(frozen=True)
class SearchOutcome:
    results: Sequence[SearchResult]
    total_files: int


@dataclass(frozen=True)
class IndexStatus:
    files_count: int
    last_updated: int  # epoch seconds


def make_display_path(path: str, home: str) -> str:
    """
    Replace a leading home directory with "~".

    Only whole path segments are replaced, so with home "/home/u" the path
    "/home/u2/x" is left untouched.
    """
    home = home.rstrip("/")
    if not home:
        return path
    if path == home:
        return "~"
    if path.startswith(home + "/"):
        return "~" + path[len(home) :]
    return path
