"""Column references, literal values and comparison conditions of queries."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Union

from .ix_defs import ColType, encode_key, ix_compare


class StringOverflowError(ValueError):
    """A string value is longer than the column that should hold it."""

    def __init__(self, length: int = -1, capacity: int = -1) -> None:
        if length >= 0 and capacity >= 0:
            super().__init__(f"String is too long: {length} bytes for a column of {capacity}")
        else:
            super().__init__("String is too long")


class CompOp(Enum):
    """Comparison operators of a where clause."""

    EQ = "="
    NE = "<>"
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="

    def swapped(self) -> "CompOp":
        """The operator that gives the same result with its operands exchanged."""
        return _SWAPPED[self]

    def holds(self, cmp: int) -> bool:
        """Whether the operator is satisfied by a three-way comparison result."""
        if self is CompOp.EQ:
            return cmp == 0
        if self is CompOp.NE:
            return cmp != 0
        if self is CompOp.LT:
            return cmp < 0
        if self is CompOp.GT:
            return cmp > 0
        if self is CompOp.LE:
            return cmp <= 0
        return cmp >= 0


_SWAPPED = {
    CompOp.EQ: CompOp.EQ,
    CompOp.NE: CompOp.NE,
    CompOp.LT: CompOp.GT,
    CompOp.GT: CompOp.LT,
    CompOp.LE: CompOp.GE,
    CompOp.GE: CompOp.LE,
}


@dataclass(frozen=True, order=True)
class TabCol:
    """A column, optionally qualified by its table; an empty table name means unknown."""

    tab_name: str
    col_name: str


@dataclass(frozen=True)
class Value:
    """A typed literal value."""

    type: ColType
    value: Union[int, float, str]

    def encode(self, length: int) -> bytes:
        """Raw bytes of the value in a column of ``length`` bytes; strings are NUL padded."""
        col_type = ColType(self.type)
        if col_type is ColType.STRING:
            raw = str(self.value).encode()
            if len(raw) > length:
                raise StringOverflowError(len(raw), length)
            return raw.ljust(length, b"\x00")
        return encode_key(self.value, col_type, length)


Operand = Union[TabCol, Value]


@dataclass(frozen=True)
class Condition:
    """``lhs_col op rhs`` where ``rhs`` is a column or a literal value."""

    lhs_col: TabCol
    op: CompOp
    rhs: Operand

    @property
    def is_rhs_val(self) -> bool:
        return isinstance(self.rhs, Value)

    def oriented_to(self, tab_name: str) -> "Condition":
        """The same condition with a column of ``tab_name`` on the left-hand side."""
        if self.lhs_col.tab_name == tab_name:
            return self
        if not isinstance(self.rhs, TabCol) or self.rhs.tab_name != tab_name:
            raise ValueError(f"condition does not refer to table {tab_name!r}")
        return Condition(self.rhs, self.op.swapped(), self.lhs_col)

    def evaluate(self, lhs: bytes, rhs: bytes, col_type: ColType, col_len: int) -> bool:
        """Apply the operator to the raw bytes of both sides."""
        return self.op.holds(ix_compare(lhs, rhs, col_type, col_len))


def pop_conds(conds: List[Condition], tab_names: Sequence[str]) -> List[Condition]:
    """Remove from ``conds`` and return those that only involve tables in ``tab_names``."""
    tables = set(tab_names)

    def solved(cond: Condition) -> bool:
        if cond.lhs_col.tab_name not in tables:
            return False
        return cond.is_rhs_val or cond.rhs.tab_name in tables

    taken = [c for c in conds if solved(c)]
    conds[:] = [c for c in conds if not solved(c)]
    return taken