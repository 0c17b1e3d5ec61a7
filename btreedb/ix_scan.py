"""Forward iteration over the leaf level of a B+ tree index."""

from __future__ import annotations

from typing import Iterator

from .ix_defs import Iid, Rid
from .ix_index import IxIndexHandle


class IxScan:
    """Walk index slots from ``lower`` up to, but not including, ``upper``."""

    def __init__(self, ih: IxIndexHandle, lower: Iid, upper: Iid) -> None:
        self.ih = ih
        self._iid = lower
        self._end = upper

    @property
    def iid(self) -> Iid:
        """Current slot."""
        return self._iid

    def is_end(self) -> bool:
        return self._iid == self._end

    def next(self) -> None:
        """Advance to the next slot, moving on to the next leaf when this one is used up."""
        if self.is_end():
            raise IndexError("scan is already at its end")
        node = self.ih.fetch_node(self._iid.page_no)
        if not node.is_leaf:
            raise ValueError(f"page {node.page_no} is not a leaf")
        if self._iid.slot_no >= node.num_key:
            raise IndexError(f"slot {self._iid.slot_no} is past the end of leaf {node.page_no}")
        slot_no = self._iid.slot_no + 1
        page_no = self._iid.page_no
        if page_no != self.ih.file_hdr.last_leaf and slot_no == node.num_key:
            page_no, slot_no = node.next_leaf, 0
        self._iid = Iid(page_no, slot_no)

    def rid(self) -> Rid:
        """Record id stored in the current slot."""
        return self.ih.get_rid(self._iid)

    def __iter__(self) -> Iterator[Rid]:
        while not self.is_end():
            yield self.rid()
            self.next()