import struct

import pytest

from btreedb.config import PAGE_SIZE
from btreedb.ix_defs import (
    IX_INIT_NUM_PAGES,
    IX_INIT_ROOT_PAGE,
    IX_LEAF_HEADER_PAGE,
    IX_MAX_COL_LEN,
    IX_NO_PAGE,
    ColType,
    IxPageHdr,
    Rid,
)
from btreedb.ix_manager import IxManager

TABLE = "table1"


def key(k):
    return struct.pack("<i", k)


@pytest.fixture
def manager(tmp_path):
    return IxManager(tmp_path)


def test_index_name(manager):
    assert manager.get_index_name(TABLE, 0) == "table1.0.idx"


def test_create_makes_file(manager, tmp_path):
    assert manager.exists(TABLE, 0) is False
    manager.create_index(TABLE, 0, ColType.INT, 4)
    assert manager.exists(TABLE, 0) is True
    assert (tmp_path / "table1.0.idx").stat().st_size == IX_INIT_NUM_PAGES * PAGE_SIZE


def test_create_twice_fails(manager):
    manager.create_index(TABLE, 0, ColType.INT, 4)
    with pytest.raises(FileExistsError):
        manager.create_index(TABLE, 0, ColType.INT, 4)


def test_invalid_column_length(manager):
    with pytest.raises(ValueError):
        manager.create_index(TABLE, 0, ColType.STRING, IX_MAX_COL_LEN + 1)
    assert manager.exists(TABLE, 0) is False


def test_negative_index_no(manager):
    with pytest.raises(ValueError):
        manager.create_index(TABLE, -1, ColType.INT, 4)


def test_fresh_header(manager):
    manager.create_index(TABLE, 0, ColType.INT, 4)
    ih = manager.open_index(TABLE, 0)
    hdr = ih.file_hdr
    assert hdr.root_page == IX_INIT_ROOT_PAGE
    assert hdr.first_leaf == IX_INIT_ROOT_PAGE
    assert hdr.last_leaf == IX_INIT_ROOT_PAGE
    assert hdr.num_pages == IX_INIT_NUM_PAGES
    assert hdr.first_free_page_no == IX_NO_PAGE
    assert hdr.col_type is ColType.INT
    assert hdr.btree_order == 338
    assert hdr.keys_size == (hdr.btree_order + 1) * hdr.col_len
    assert IxPageHdr.SIZE + hdr.keys_size + (hdr.btree_order + 1) * Rid.SIZE <= PAGE_SIZE
    manager.close_index(ih)


def test_fresh_leaf_list(manager):
    manager.create_index(TABLE, 0, ColType.INT, 4)
    ih = manager.open_index(TABLE, 0)
    root = ih.fetch_node(IX_INIT_ROOT_PAGE)
    header = ih.fetch_node(IX_LEAF_HEADER_PAGE)
    assert root.is_leaf and root.num_key == 0
    assert root.prev_leaf == IX_LEAF_HEADER_PAGE and root.next_leaf == IX_LEAF_HEADER_PAGE
    assert header.prev_leaf == IX_INIT_ROOT_PAGE and header.next_leaf == IX_INIT_ROOT_PAGE
    manager.close_index(ih)


def test_entries_survive_reopen(manager):
    manager.create_index(TABLE, 0, ColType.INT, 4)
    ih = manager.open_index(TABLE, 0)
    ih.file_hdr.btree_order = 4
    for k in range(1, 31):
        assert ih.insert_entry(key(k), Rid(0, k)) is True
    manager.close_index(ih)

    ih = manager.open_index(TABLE, 0)
    assert ih.file_hdr.btree_order == 4
    assert [ih.get_value(key(k)) for k in range(1, 31)] == [Rid(0, k) for k in range(1, 31)]
    assert ih.get_value(key(31)) is None
    manager.close_index(ih)


def test_open_missing(manager):
    with pytest.raises(FileNotFoundError):
        manager.open_index(TABLE, 3)


def test_destroy(manager):
    manager.create_index(TABLE, 1, ColType.STRING, 16)
    manager.destroy_index(TABLE, 1)
    assert manager.exists(TABLE, 1) is False
    with pytest.raises(FileNotFoundError):
        manager.destroy_index(TABLE, 1)


def test_string_index(manager):
    manager.create_index(TABLE, 2, ColType.STRING, 8)
    ih = manager.open_index(TABLE, 2)
    words = [b"pear", b"apple", b"fig", b"kiwi"]
    for n, w in enumerate(words):
        assert ih.insert_entry(w.ljust(8, b"\x00"), Rid(1, n)) is True
    assert ih.get_value(b"fig".ljust(8, b"\x00")) == Rid(1, 2)
    manager.close_index(ih)