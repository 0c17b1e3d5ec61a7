"""A file made of fixed-size pages, with every page read kept in memory."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Union

from .config import PAGE_SIZE

PathLike = Union[str, "os.PathLike[str]"]


class PageFile:
    """Fixed-size pages of one file, cached in memory and written back on flush.

    ``read_page`` hands out the cached buffer itself. Changes made to it are
    written to disk by the next ``flush`` or ``close``.
    """

    def __init__(self, path: PathLike, page_size: int = PAGE_SIZE) -> None:
        if page_size <= 0:
            raise ValueError(f"page size must be positive, got {page_size}")
        self.path = Path(path)
        self.page_size = page_size
        if not self.path.exists():
            self.path.touch()
        self._file = open(self.path, "r+b")
        size = os.fstat(self._file.fileno()).st_size
        self._num_pages = -(-size // page_size)
        self._pages: dict[int, bytearray] = {}
        self._lock = threading.RLock()

    @property
    def num_pages(self) -> int:
        """Number of pages in the file, counting those not yet flushed."""
        return self._num_pages

    @property
    def closed(self) -> bool:
        return self._file.closed

    def _check_open(self) -> None:
        if self._file.closed:
            raise ValueError(f"page file {self.path} is closed")

    def _load(self, page_no: int) -> bytearray:
        page = self._pages.get(page_no)
        if page is None:
            self._file.seek(page_no * self.page_size)
            raw = self._file.read(self.page_size)
            page = bytearray(raw.ljust(self.page_size, b"\x00"))
            self._pages[page_no] = page
        return page

    def read_page(self, page_no: int) -> bytearray:
        """Return the cached, mutable buffer of page ``page_no``."""
        with self._lock:
            self._check_open()
            if not 0 <= page_no < self._num_pages:
                raise IndexError(f"page {page_no} out of range (file has {self._num_pages} pages)")
            return self._load(page_no)

    def write_page(self, page_no: int, data: bytes) -> None:
        """Overwrite the start of page ``page_no`` with ``data``; the rest is kept."""
        with self._lock:
            self._check_open()
            if page_no < 0:
                raise IndexError(f"negative page number {page_no}")
            if len(data) > self.page_size:
                raise ValueError(f"{len(data)} bytes do not fit in a page of {self.page_size}")
            if page_no < self._num_pages:
                page = self._load(page_no)
            else:
                page = self._pages.setdefault(page_no, bytearray(self.page_size))
                self._num_pages = page_no + 1
            page[: len(data)] = data

    def allocate_page(self) -> int:
        """Append a zero-filled page and return its number."""
        with self._lock:
            self._check_open()
            page_no = self._num_pages
            self._pages[page_no] = bytearray(self.page_size)
            self._num_pages += 1
            return page_no

    def flush(self) -> None:
        """Write every cached page to disk."""
        with self._lock:
            self._check_open()
            for page_no in sorted(self._pages):
                self._file.seek(page_no * self.page_size)
                self._file.write(self._pages[page_no])
            self._file.flush()

    def close(self) -> None:
        """Flush and close the file; closing twice does nothing."""
        with self._lock:
            if self._file.closed:
                return
            self.flush()
            self._file.close()
            self._pages.clear()

    def __enter__(self) -> "PageFile":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()