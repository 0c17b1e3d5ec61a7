"""On-disk structures and key helpers of the B+ tree index."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Union

IX_NO_PAGE = -1
IX_FILE_HDR_PAGE = 0
IX_LEAF_HEADER_PAGE = 1
IX_INIT_ROOT_PAGE = 2
IX_INIT_NUM_PAGES = 3
IX_MAX_COL_LEN = 512


class ColType(IntEnum):
    """Column value types."""

    INT = 0
    FLOAT = 1
    STRING = 2


@dataclass(frozen=True, order=True)
class Rid:
    """Location of a record: page number and slot number."""

    page_no: int
    slot_no: int

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("<ii")
    SIZE: ClassVar[int] = 8

    def to_bytes(self) -> bytes:
        return self._FORMAT.pack(self.page_no, self.slot_no)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "Rid":
        return cls(*cls._FORMAT.unpack_from(data, offset))


@dataclass(frozen=True)
class Iid:
    """Location of an index slot: leaf page number and slot number."""

    page_no: int
    slot_no: int


@dataclass
class IxFileHdr:
    """Header stored in the first page of an index file."""

    first_free_page_no: int
    num_pages: int
    root_page: int
    col_type: ColType
    col_len: int
    btree_order: int
    keys_size: int
    first_leaf: int
    last_leaf: int

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("<9i")
    SIZE: ClassVar[int] = 36

    def to_bytes(self) -> bytes:
        return self._FORMAT.pack(
            self.first_free_page_no,
            self.num_pages,
            self.root_page,
            int(self.col_type),
            self.col_len,
            self.btree_order,
            self.keys_size,
            self.first_leaf,
            self.last_leaf,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "IxFileHdr":
        fields = list(cls._FORMAT.unpack_from(data))
        fields[3] = ColType(fields[3])
        return cls(*fields)


@dataclass
class IxPageHdr:
    """Header at the start of every index node page."""

    next_free_page_no: int
    parent: int
    num_key: int
    is_leaf: bool
    prev_leaf: int
    next_leaf: int

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("<iii?3xii")
    SIZE: ClassVar[int] = 24

    def to_bytes(self) -> bytes:
        return self._FORMAT.pack(
            self.next_free_page_no,
            self.parent,
            self.num_key,
            bool(self.is_leaf),
            self.prev_leaf,
            self.next_leaf,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "IxPageHdr":
        return cls(*cls._FORMAT.unpack_from(data))


KeyValue = Union[int, float, str, bytes]

_INT = struct.Struct("<i")
_FLOAT = struct.Struct("<f")


def encode_key(value: KeyValue, col_type: ColType, col_len: int) -> bytes:
    """Encode ``value`` as the fixed-width raw bytes of a column."""
    col_type = ColType(col_type)
    if col_type is ColType.INT:
        if col_len != _INT.size:
            raise ValueError(f"int column must be {_INT.size} bytes, got {col_len}")
        try:
            return _INT.pack(value)
        except struct.error as exc:
            raise ValueError(f"int value out of range: {value!r}") from exc
    if col_type is ColType.FLOAT:
        if col_len != _FLOAT.size:
            raise ValueError(f"float column must be {_FLOAT.size} bytes, got {col_len}")
        return _FLOAT.pack(value)
    raw = value.encode() if isinstance(value, str) else bytes(value)
    if len(raw) > col_len:
        raise ValueError(f"string of {len(raw)} bytes does not fit in {col_len}")
    return raw.ljust(col_len, b"\x00")


def decode_key(data: bytes, col_type: ColType) -> KeyValue:
    """Decode raw column bytes; strings stop at the first NUL byte."""
    col_type = ColType(col_type)
    if col_type is ColType.INT:
        return _INT.unpack_from(data)[0]
    if col_type is ColType.FLOAT:
        return _FLOAT.unpack_from(data)[0]
    return bytes(data).split(b"\x00", 1)[0].decode()


def ix_compare(a: bytes, b: bytes, col_type: ColType, col_len: int) -> int:
    """Compare two raw keys; return -1, 0 or 1."""
    col_type = ColType(col_type)
    if col_type is ColType.INT:
        left, right = _INT.unpack_from(a)[0], _INT.unpack_from(b)[0]
    elif col_type is ColType.FLOAT:
        left, right = _FLOAT.unpack_from(a)[0], _FLOAT.unpack_from(b)[0]
    else:
        left, right = bytes(a[:col_len]), bytes(b[:col_len])
    if left < right:
        return -1
    if left > right:
        return 1
    return 0