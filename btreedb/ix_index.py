"""B+ tree index stored in a page file."""

from __future__ import annotations

import threading
from enum import Enum
from typing import Optional

from .config import INVALID_PAGE_ID
from .ix_defs import (
    IX_FILE_HDR_PAGE,
    IX_LEAF_HEADER_PAGE,
    IX_NO_PAGE,
    Iid,
    IxFileHdr,
    IxPageHdr,
    Rid,
)
from .ix_node import IxNodeHandle
from .page_file import PageFile


class Operation(Enum):
    """Kind of access made while walking down the tree."""

    FIND = 0
    INSERT = 1
    DELETE = 2


class IxIndexHandle:
    """A B+ tree over fixed-width keys, mapping each key to one record id.

    Page 0 of the file holds the file header, page 1 the head of the leaf
    list and the remaining pages the nodes of the tree. The header is kept in
    ``file_hdr``; whoever closes the index writes it back to page 0.
    """

    def __init__(self, page_file: PageFile) -> None:
        self.page_file = page_file
        self.file_hdr = IxFileHdr.from_bytes(page_file.read_page(IX_FILE_HDR_PAGE))
        self._root_latch = threading.Lock()

    # -- lookup ---------------------------------------------------------

    def is_empty(self) -> bool:
        return self.file_hdr.root_page == IX_NO_PAGE

    def find_leaf_page(self, key: bytes, operation: Operation = Operation.FIND) -> IxNodeHandle:
        """Walk from the root down to the leaf whose range holds ``key``."""
        if self.is_empty():
            raise LookupError("index is empty")
        node = self.fetch_node(self.file_hdr.root_page)
        while not node.is_leaf:
            node = self.fetch_node(node.internal_lookup(key))
        return node

    def get_value(self, key: bytes) -> Optional[Rid]:
        """Return the record id stored under ``key``, or None."""
        with self._root_latch:
            if self.is_empty():
                return None
            return self.find_leaf_page(key, Operation.FIND).leaf_lookup(key)

    # -- insertion ------------------------------------------------------

    def insert_entry(self, key: bytes, value: Rid) -> bool:
        """Insert ``key`` -> ``value``; return False if the key is already present."""
        with self._root_latch:
            if self.is_empty():
                self._start_new_root()
            leaf = self.find_leaf_page(key, Operation.INSERT)
            size = leaf.num_key
            if leaf.insert(key, value) == size:
                return False
            if leaf.num_key == leaf.max_size:
                new_node = self.split(leaf)
                if leaf.page_no == self.file_hdr.last_leaf:
                    self.file_hdr.last_leaf = new_node.page_no
                self.insert_into_parent(leaf, new_node.get_key(0), new_node)
            return True

    def split(self, node: IxNodeHandle) -> IxNodeHandle:
        """Move the upper half of ``node`` into a new right sibling and return it."""
        new_node = self.create_node()
        new_node.page_hdr = IxPageHdr(
            next_free_page_no=node.next_free_page_no,
            parent=node.parent,
            num_key=0,
            is_leaf=node.is_leaf,
            prev_leaf=IX_NO_PAGE,
            next_leaf=IX_NO_PAGE,
        )
        if new_node.is_leaf:
            new_node.prev_leaf = node.page_no
            new_node.next_leaf = node.next_leaf
            node.next_leaf = new_node.page_no
            self.fetch_node(new_node.next_leaf).prev_leaf = new_node.page_no

        size = node.num_key
        pos = size // 2
        moved = range(pos, size)
        new_node.insert_pairs(0, [node.get_key(i) for i in moved], [node.get_rid(i) for i in moved])
        node.num_key = pos
        for i in range(new_node.num_key):
            self._maintain_child(new_node, i)
        return new_node

    def insert_into_parent(self, old_node: IxNodeHandle, key: bytes, new_node: IxNodeHandle) -> None:
        """Link ``new_node``, split off ``old_node``, into the parent, splitting upwards as needed."""
        if old_node.is_root:
            root = self.create_node()
            root.page_hdr = IxPageHdr(
                next_free_page_no=IX_NO_PAGE,
                parent=INVALID_PAGE_ID,
                num_key=0,
                is_leaf=False,
                prev_leaf=IX_NO_PAGE,
                next_leaf=IX_NO_PAGE,
            )
            root.insert_pair(0, old_node.get_key(0), Rid(old_node.page_no, -1))
            root.insert_pair(1, key, Rid(new_node.page_no, -1))
            self.file_hdr.root_page = root.page_no
            new_node.parent = root.page_no
            old_node.parent = root.page_no
            return

        parent = self.fetch_node(old_node.parent)
        idx = parent.find_child(old_node)
        parent.insert_pair(idx + 1, key, Rid(new_node.page_no, -1))
        if parent.num_key == parent.max_size:
            new_parent = self.split(parent)
            self.insert_into_parent(parent, new_parent.get_key(0), new_parent)

    # -- deletion -------------------------------------------------------

    def delete_entry(self, key: bytes) -> bool:
        """Remove ``key``; return False if it was not present."""
        with self._root_latch:
            if self.is_empty():
                return False
            leaf = self.find_leaf_page(key, Operation.DELETE)
            size = leaf.num_key
            if leaf.remove(key) == size:
                return False
            self.coalesce_or_redistribute(leaf)
            return True

    def coalesce_or_redistribute(self, node: IxNodeHandle) -> bool:
        """Restore the minimum fill of ``node``; return True if a node was removed."""
        if node.is_root:
            return self.adjust_root(node)
        if node.num_key >= node.min_size:
            self._maintain_parent(node)
            return False

        parent = self.fetch_node(node.parent)
        pos = parent.find_child(node)
        brother = self.fetch_node(parent.value_at(pos - 1 if pos else pos + 1))
        if node.num_key + brother.num_key >= node.min_size * 2:
            self.redistribute(brother, node, parent, pos)
            return False
        self.coalesce(brother, node, parent, pos)
        return True

    def adjust_root(self, old_root_node: IxNodeHandle) -> bool:
        """Shrink the tree after a deletion from the root; return True if the root went away."""
        if old_root_node.is_leaf:
            if old_root_node.num_key == 0:
                self._release_node(old_root_node)
                self.file_hdr.root_page = INVALID_PAGE_ID
                return True
        elif old_root_node.num_key == 1:
            new_root = self.fetch_node(old_root_node.value_at(0))
            new_root.parent = INVALID_PAGE_ID
            self.file_hdr.root_page = new_root.page_no
            self._release_node(old_root_node)
            return True
        return False

    def redistribute(
        self, neighbor_node: IxNodeHandle, node: IxNodeHandle, parent: IxNodeHandle, index: int
    ) -> None:
        """Move one pair from ``neighbor_node`` into ``node``.

        With ``index`` 0 the neighbour is the right sibling and gives its first
        pair; otherwise it is the left sibling and gives its last pair.
        """
        if index != 0:
            pos = neighbor_node.num_key - 1
            node.insert_pair(0, neighbor_node.get_key(pos), neighbor_node.get_rid(pos))
            neighbor_node.erase_pair(pos)
            self._maintain_child(node, 0)
            self._maintain_parent(node)
        else:
            node.insert_pair(node.num_key, neighbor_node.get_key(0), neighbor_node.get_rid(0))
            neighbor_node.erase_pair(0)
            self._maintain_child(node, node.num_key - 1)
            self._maintain_parent(neighbor_node)

    def coalesce(
        self, neighbor_node: IxNodeHandle, node: IxNodeHandle, parent: IxNodeHandle, index: int
    ) -> bool:
        """Merge the right one of two siblings into the left one and drop it from the parent.

        Returns whether fixing up the parent removed a node in turn.
        """
        if index == 0:
            neighbor_node, node = node, neighbor_node
            index = 1
        before = neighbor_node.num_key
        moved = range(node.num_key)
        neighbor_node.insert_pairs(before, [node.get_key(i) for i in moved], [node.get_rid(i) for i in moved])
        for i in range(before, neighbor_node.num_key):
            self._maintain_child(neighbor_node, i)
        if node.is_leaf:
            if node.page_no == self.file_hdr.last_leaf:
                self.file_hdr.last_leaf = neighbor_node.page_no
            self._erase_leaf(node)
        self._release_node(node)
        parent.erase_pair(index)
        return self.coalesce_or_redistribute(parent)

    # -- positions for scans --------------------------------------------

    def lower_bound(self, key: bytes) -> Iid:
        """Slot of the first key >= ``key`` in the leaf that covers it."""
        node = self.find_leaf_page(key, Operation.FIND)
        return Iid(node.page_no, node.lower_bound(key))

    def upper_bound(self, key: bytes) -> Iid:
        """Slot of the first key > ``key`` in its leaf, or ``leaf_end()`` past the leaf's end."""
        node = self.find_leaf_page(key, Operation.FIND)
        idx = node.upper_bound(key)
        if idx == node.num_key:
            return self.leaf_end()
        return Iid(node.page_no, idx)

    def leaf_begin(self) -> Iid:
        """First slot of the first leaf."""
        return Iid(self.file_hdr.first_leaf, 0)

    def leaf_end(self) -> Iid:
        """One past the last slot of the last leaf."""
        return Iid(self.file_hdr.last_leaf, self.fetch_node(self.file_hdr.last_leaf).num_key)

    def get_rid(self, iid: Iid) -> Rid:
        """Record id stored in index slot ``iid``."""
        node = self.fetch_node(iid.page_no)
        if not 0 <= iid.slot_no < node.num_key:
            raise IndexError(f"no index entry at page {iid.page_no}, slot {iid.slot_no}")
        return node.get_rid(iid.slot_no)

    # -- node management ------------------------------------------------

    def fetch_node(self, page_no: int) -> IxNodeHandle:
        """Node stored in page ``page_no``."""
        return IxNodeHandle(self.file_hdr, page_no, self.page_file.read_page(page_no))

    def create_node(self) -> IxNodeHandle:
        """Allocate a fresh, zero-filled node page."""
        self.file_hdr.num_pages += 1
        page_no = self.page_file.allocate_page()
        return self.fetch_node(page_no)

    def _start_new_root(self) -> None:
        root = self.create_node()
        root.page_hdr = IxPageHdr(
            next_free_page_no=IX_NO_PAGE,
            parent=INVALID_PAGE_ID,
            num_key=0,
            is_leaf=True,
            prev_leaf=IX_LEAF_HEADER_PAGE,
            next_leaf=IX_LEAF_HEADER_PAGE,
        )
        header = self.fetch_node(IX_LEAF_HEADER_PAGE)
        header.prev_leaf = root.page_no
        header.next_leaf = root.page_no
        self.file_hdr.root_page = root.page_no
        self.file_hdr.first_leaf = root.page_no
        self.file_hdr.last_leaf = root.page_no

    def _maintain_parent(self, node: IxNodeHandle) -> None:
        """Copy the first key of ``node`` up through its ancestors until one already matches."""
        curr = node
        while curr.parent != IX_NO_PAGE:
            parent = self.fetch_node(curr.parent)
            rank = parent.find_child(curr)
            first_key = curr.get_key(0)
            if parent.get_key(rank) == first_key:
                break
            parent.set_key(rank, first_key)
            curr = parent

    def _erase_leaf(self, leaf: IxNodeHandle) -> None:
        """Unlink ``leaf`` from the doubly linked leaf list."""
        self.fetch_node(leaf.prev_leaf).next_leaf = leaf.next_leaf
        self.fetch_node(leaf.next_leaf).prev_leaf = leaf.prev_leaf

    def _release_node(self, node: IxNodeHandle) -> None:
        self.file_hdr.num_pages -= 1

    def _maintain_child(self, node: IxNodeHandle, child_idx: int) -> None:
        """Point the parent of the ``child_idx``-th child of ``node`` back at ``node``."""
        if not node.is_leaf:
            self.fetch_node(node.value_at(child_idx)).parent = node.page_no