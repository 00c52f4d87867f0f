from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import pytest

from quickfile.index.file_index import FileIndex

HOME = "/home/u"


class FakeLister:
    """Stands in for the external listing utility."""

    def __init__(self, paths: Sequence[str]) -> None:
        self.paths = list(paths)
        self.calls: list[Path] = []
        self.error: Exception | None = None

    def __call__(self, root: Path) -> list[str]:
        self.calls.append(root)
        if self.error is not None:
            raise self.error
        return list(self.paths)


@pytest.fixture
def make_index() -> Callable[..., tuple[FileIndex, FakeLister]]:
    def build(paths: Sequence[str], populate: bool = True) -> tuple[FileIndex, FakeLister]:
        lister = FakeLister(paths)
        index = FileIndex(root=Path(HOME), lister=lister, home=HOME)
        if populate:
            index.update()
        return index, lister

    return build


@pytest.fixture
def socket_dir() -> Iterator[Path]:
    # Unix socket paths are limited to ~100 bytes, which pytest's tmp_path can exceed.
    path = Path(tempfile.mkdtemp(prefix="qf-"))
    yield path
    shutil.rmtree(path, ignore_errors=True)
