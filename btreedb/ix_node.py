"""A B+ tree node laid out inside one page buffer."""

from __future__ import annotations

import struct
from bisect import bisect_left, bisect_right
from typing import Optional, Sequence

from .config import INVALID_PAGE_ID
from .ix_defs import IxFileHdr, IxPageHdr, Rid, ix_compare

_INT = struct.Struct("<i")


class _HeaderField:
    """A field of the page header, read and written in place."""

    def __init__(self, offset: int, fmt: str) -> None:
        self._offset = offset
        self._struct = struct.Struct(fmt)

    def __get__(self, node: Optional["IxNodeHandle"], owner: type):
        if node is None:
            return self
        return self._struct.unpack_from(node.data, self._offset)[0]

    def __set__(self, node: "IxNodeHandle", value) -> None:
        self._struct.pack_into(node.data, self._offset, value)


class IxNodeHandle:
    """A node of the tree: page header, then keys, then record ids.

    The node works directly on ``data``, the page buffer it was given, so every
    change lands in that buffer.
    """

    next_free_page_no = _HeaderField(0, "<i")
    parent = _HeaderField(4, "<i")
    num_key = _HeaderField(8, "<i")
    is_leaf = _HeaderField(12, "<?")
    prev_leaf = _HeaderField(16, "<i")
    next_leaf = _HeaderField(20, "<i")

    def __init__(self, file_hdr: IxFileHdr, page_no: int, data: bytearray) -> None:
        self.file_hdr = file_hdr
        self.page_no = page_no
        self.data = data
        self._keys_off = IxPageHdr.SIZE
        self._rids_off = IxPageHdr.SIZE + file_hdr.keys_size
        needed = self._rids_off + self.capacity * Rid.SIZE
        if len(data) < needed:
            raise ValueError(f"page of {len(data)} bytes cannot hold a node of {needed}")

    @property
    def page_hdr(self) -> IxPageHdr:
        return IxPageHdr.from_bytes(self.data)

    @page_hdr.setter
    def page_hdr(self, hdr: IxPageHdr) -> None:
        self.data[: IxPageHdr.SIZE] = hdr.to_bytes()

    @property
    def capacity(self) -> int:
        """Number of key slots the page has room for."""
        return self.file_hdr.keys_size // self.file_hdr.col_len

    @property
    def max_size(self) -> int:
        return self.file_hdr.btree_order + 1

    @property
    def min_size(self) -> int:
        return self.max_size // 2

    @property
    def is_root(self) -> bool:
        return self.parent == INVALID_PAGE_ID

    def _check_slot(self, idx: int) -> None:
        if not 0 <= idx < self.capacity:
            raise IndexError(f"slot {idx} out of range 0..{self.capacity - 1}")

    def _fit(self, key: bytes) -> bytes:
        key = bytes(key)
        if len(key) < self.file_hdr.col_len:
            raise ValueError(f"key of {len(key)} bytes is shorter than column length {self.file_hdr.col_len}")
        return key[: self.file_hdr.col_len]

    def _compare(self, idx: int, target: bytes) -> int:
        return ix_compare(self.get_key(idx), target, self.file_hdr.col_type, self.file_hdr.col_len)

    def get_key(self, key_idx: int) -> bytes:
        self._check_slot(key_idx)
        col_len = self.file_hdr.col_len
        start = self._keys_off + key_idx * col_len
        return bytes(self.data[start : start + col_len])

    def get_rid(self, rid_idx: int) -> Rid:
        self._check_slot(rid_idx)
        return Rid.from_bytes(self.data, self._rids_off + rid_idx * Rid.SIZE)

    def set_key(self, key_idx: int, key: bytes) -> None:
        self._check_slot(key_idx)
        col_len = self.file_hdr.col_len
        start = self._keys_off + key_idx * col_len
        self.data[start : start + col_len] = self._fit(key)

    def set_rid(self, rid_idx: int, rid: Rid) -> None:
        self._check_slot(rid_idx)
        start = self._rids_off + rid_idx * Rid.SIZE
        self.data[start : start + Rid.SIZE] = rid.to_bytes()

    def key_at(self, i: int) -> int:
        """The key in slot ``i`` read as a 32-bit integer."""
        return _INT.unpack(self.get_key(i)[: _INT.size])[0]

    def value_at(self, i: int) -> int:
        """Page number of the ``i``-th child."""
        return self.get_rid(i).page_no

    def lower_bound(self, target: bytes) -> int:
        """Index of the first key >= ``target``, or ``num_key`` if none."""
        return bisect_left(range(self.num_key), 0, key=lambda i: self._compare(i, target))

    def upper_bound(self, target: bytes) -> int:
        """Index of the first key > ``target``, searching from slot 1; ``num_key`` if none."""
        return bisect_right(range(self.num_key), 0, lo=1, key=lambda i: self._compare(i, target))

    def leaf_lookup(self, key: bytes) -> Optional[Rid]:
        """Return the record id stored under ``key``, or None."""
        pos = self.lower_bound(key)
        if pos < self.num_key and self._compare(pos, key) == 0:
            return self.get_rid(pos)
        return None

    def internal_lookup(self, key: bytes) -> int:
        """Page number of the child subtree that holds ``key``."""
        return self.value_at(self.upper_bound(key) - 1)

    def insert_pairs(self, pos: int, keys: Sequence[bytes], rids: Sequence[Rid]) -> None:
        """Insert consecutive (key, rid) pairs so that the first lands at ``pos``."""
        new_keys = [self._fit(k) for k in keys]
        new_rids = list(rids)
        if len(new_keys) != len(new_rids):
            raise ValueError(f"{len(new_keys)} keys but {len(new_rids)} rids")
        size = self.num_key
        if not 0 <= pos <= size:
            raise IndexError(f"insert position {pos} out of range 0..{size}")
        n = len(new_keys)
        if size + n > self.capacity:
            raise ValueError(f"node holds at most {self.capacity} pairs, cannot add {n} to {size}")

        col_len = self.file_hdr.col_len
        start = self._keys_off + pos * col_len
        end = self._keys_off + size * col_len
        block = b"".join(new_keys) + bytes(self.data[start:end])
        self.data[start : start + len(block)] = block

        start = self._rids_off + pos * Rid.SIZE
        end = self._rids_off + size * Rid.SIZE
        block = b"".join(r.to_bytes() for r in new_rids) + bytes(self.data[start:end])
        self.data[start : start + len(block)] = block

        self.num_key = size + n

    def insert_pair(self, pos: int, key: bytes, rid: Rid) -> None:
        self.insert_pairs(pos, [key], [rid])

    def insert(self, key: bytes, value: Rid) -> int:
        """Insert a pair unless ``key`` is present; return the size afterwards."""
        pos = self.lower_bound(key)
        if pos == self.num_key or self._compare(pos, key) > 0:
            self.insert_pair(pos, key, value)
        return self.num_key

    def erase_pair(self, pos: int) -> None:
        """Remove the pair in slot ``pos``."""
        size = self.num_key
        if not 0 <= pos < size:
            raise IndexError(f"erase position {pos} out of range 0..{size - 1}")
        col_len = self.file_hdr.col_len
        start = self._keys_off + pos * col_len
        end = self._keys_off + size * col_len
        self.data[start : end - col_len] = self.data[start + col_len : end]

        start = self._rids_off + pos * Rid.SIZE
        end = self._rids_off + size * Rid.SIZE
        self.data[start : end - Rid.SIZE] = self.data[start + Rid.SIZE : end]

        self.num_key = size - 1

    def remove(self, key: bytes) -> int:
        """Remove the pair holding ``key`` if there is one; return the size afterwards."""
        pos = self.lower_bound(key)
        if pos < self.num_key and self._compare(pos, key) == 0:
            self.erase_pair(pos)
        return self.num_key

    def find_child(self, child: "IxNodeHandle") -> int:
        """Slot of ``child`` among this node's children."""
        for idx in range(self.num_key):
            if self.value_at(idx) == child.page_no:
                return idx
        raise ValueError(f"page {child.page_no} is not a child of page {self.page_no}")

    def remove_and_return_only_child(self) -> int:
        """Empty a node with a single child and return that child's page number."""
        if self.num_key != 1:
            raise ValueError(f"node has {self.num_key} children, expected exactly one")
        child_page_no = self.value_at(0)
        self.erase_pair(0)
        return child_page_no

    def __repr__(self) -> str:
        kind = "leaf" if self.is_leaf else "internal"
        return f"IxNodeHandle(page_no={self.page_no}, {kind}, num_key={self.num_key})"