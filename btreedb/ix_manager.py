"""Creation, opening and removal of B+ tree index files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from .config import PAGE_SIZE
from .ix_defs import (
    IX_FILE_HDR_PAGE,
    IX_INIT_NUM_PAGES,
    IX_INIT_ROOT_PAGE,
    IX_LEAF_HEADER_PAGE,
    IX_MAX_COL_LEN,
    IX_NO_PAGE,
    ColType,
    IxFileHdr,
    IxPageHdr,
    Rid,
)
from .ix_index import IxIndexHandle
from .page_file import PageFile

PathLike = Union[str, "os.PathLike[str]"]


class IxManager:
    """Manages the index files kept in one directory.

    An index on column number ``index_no`` of table ``filename`` lives in the
    file ``<filename>.<index_no>.idx``.
    """

    def __init__(self, directory: PathLike = ".") -> None:
        self.directory = Path(directory)

    def get_index_name(self, filename: str, index_no: int) -> str:
        """File name of the index on column ``index_no`` of ``filename``."""
        return f"{filename}.{index_no}.idx"

    def _path(self, filename: str, index_no: int) -> Path:
        return self.directory / self.get_index_name(filename, index_no)

    def exists(self, filename: str, index_no: int) -> bool:
        """Whether the index file is present."""
        return self._path(filename, index_no).is_file()

    def create_index(self, filename: str, index_no: int, col_type: ColType, col_len: int) -> None:
        """Create an empty index file for keys of ``col_type`` and ``col_len`` bytes."""
        if index_no < 0:
            raise ValueError(f"index number must not be negative, got {index_no}")
        if not 0 < col_len <= IX_MAX_COL_LEN:
            raise ValueError(f"invalid column length {col_len} (at most {IX_MAX_COL_LEN})")
        path = self._path(filename, index_no)
        if path.exists():
            raise FileExistsError(f"index file {path} already exists")

        # One slot more than btree_order is reserved so that a node can hold
        # an extra pair for the moment between an insertion and its split.
        btree_order = (PAGE_SIZE - IxPageHdr.SIZE) // (col_len + Rid.SIZE) - 1
        if btree_order <= 2:
            raise ValueError(f"column length {col_len} leaves too few keys per node")

        file_hdr = IxFileHdr(
            first_free_page_no=IX_NO_PAGE,
            num_pages=IX_INIT_NUM_PAGES,
            root_page=IX_INIT_ROOT_PAGE,
            col_type=ColType(col_type),
            col_len=col_len,
            btree_order=btree_order,
            keys_size=(btree_order + 1) * col_len,
            first_leaf=IX_INIT_ROOT_PAGE,
            last_leaf=IX_INIT_ROOT_PAGE,
        )
        leaf_header = IxPageHdr(
            next_free_page_no=IX_NO_PAGE,
            parent=IX_NO_PAGE,
            num_key=0,
            is_leaf=True,
            prev_leaf=IX_INIT_ROOT_PAGE,
            next_leaf=IX_INIT_ROOT_PAGE,
        )
        root = IxPageHdr(
            next_free_page_no=IX_NO_PAGE,
            parent=IX_NO_PAGE,
            num_key=0,
            is_leaf=True,
            prev_leaf=IX_LEAF_HEADER_PAGE,
            next_leaf=IX_LEAF_HEADER_PAGE,
        )

        def full_page(hdr: IxPageHdr) -> bytes:
            return hdr.to_bytes().ljust(PAGE_SIZE, b"\x00")

        self.directory.mkdir(parents=True, exist_ok=True)
        with PageFile(path) as page_file:
            page_file.write_page(IX_FILE_HDR_PAGE, file_hdr.to_bytes())
            page_file.write_page(IX_LEAF_HEADER_PAGE, full_page(leaf_header))
            page_file.write_page(IX_INIT_ROOT_PAGE, full_page(root))

    def destroy_index(self, filename: str, index_no: int) -> None:
        """Delete the index file."""
        os.remove(self._path(filename, index_no))

    def open_index(self, filename: str, index_no: int) -> IxIndexHandle:
        """Open an existing index file."""
        path = self._path(filename, index_no)
        if not path.is_file():
            raise FileNotFoundError(f"index file {path} does not exist")
        return IxIndexHandle(PageFile(path))

    def close_index(self, ih: IxIndexHandle) -> None:
        """Write the header of ``ih`` back, flush its pages and close its file."""
        ih.page_file.write_page(IX_FILE_HDR_PAGE, ih.file_hdr.to_bytes())
        ih.page_file.close()