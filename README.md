# btreedb

`btreedb` is a small storage engine core. It keeps a B+ tree index in
fixed-size pages on disk and provides the pieces around it that a query layer
needs: a key codec, range scans, and comparison conditions for `WHERE`-style
predicates. It uses only the standard library.

## Modules

- **`btreedb.config`**: engine-wide constants such as `PAGE_SIZE` (4096) and
  `INVALID_PAGE_ID` (-1).
- **`btreedb.ix_defs`**: the on-disk structures of an index file. `IxFileHdr`
  and `IxPageHdr` have `to_bytes` and `from_bytes`. It also defines the record
  and index slot identifiers `Rid` and `Iid`, the column types `ColType`
  (`INT`, `FLOAT`, `STRING`) and the key codec:
  - `encode_key(value, col_type, col_len)` produces the fixed-width raw bytes
    of a column. Ints and floats are 4 bytes, little-endian. Strings are
    NUL-padded. It raises `ValueError` when the value does not fit.
  - `decode_key(data, col_type)` reverses the encoding. A string stops at its
    first NUL byte.
  - `ix_compare(a, b, col_type, col_len)` returns -1, 0 or 1. Ints and floats
    are compared by value, strings byte by byte.
- **`btreedb.page_file`**: `PageFile`, a file of fixed-size pages. It has
  `read_page`, `write_page`, `allocate_page`, `flush` and `close`, the
  `num_pages` and `closed` properties, and works as a context manager.
  - `read_page` returns the cached, mutable buffer of a page. Changes to that
    buffer reach the disk on the next `flush` or `close`.
  - Reading a page beyond the end raises `IndexError`.
- **`btreedb.ix_node`**: `IxNodeHandle`, one tree node laid out in a page
  buffer. It provides:
  - binary search within the node (`lower_bound`, `upper_bound`);
  - lookups (`leaf_lookup`, `internal_lookup`);
  - pair insertion and removal (`insert`, `insert_pair`, `insert_pairs`,
    `remove`, `erase_pair`);
  - slot accessors (`get_key`, `get_rid`, `set_key`, `set_rid`, `key_at`,
    `value_at`);
  - `find_child` and `remove_and_return_only_child`.
- **`btreedb.ix_index`**: `IxIndexHandle`, the tree itself, which maps each
  unique key to one `Rid`.
  - `insert_entry(key, rid)` returns `False` if the key is already present.
  - `delete_entry(key)` returns `False` if the key is absent.
  - `get_value(key)` returns the stored `Rid`, or `None`.
  - Node splits, redistribution and merges happen underneath.
  - `lower_bound(key)`, `upper_bound(key)`, `leaf_begin()` and `leaf_end()`
    give `Iid` positions for range scans.
  - `get_rid(iid)` reads the `Rid` stored at a position.
  - `Operation` names the kind of access made by `find_leaf_page`.
- **`btreedb.ix_scan`**: `IxScan(ih, lower, upper)` walks the leaf chain from
  `lower` up to, but not including, `upper`. It has `next()`, `is_end()`,
  `rid()` and `iid`, and iterating over it yields the `Rid`s in key order.
- **`btreedb.ix_manager`**: `IxManager(directory)` names, creates, opens,
  closes and destroys index files. The index number `index_no` of table
  `filename` lives in `<filename>.<index_no>.idx`.
- **`btreedb.predicates`**: types for query conditions.
  - `TabCol` is a column reference.
  - `Value` is a typed literal. `Value.encode(length)` raises
    `StringOverflowError` when a string is too long.
  - `CompOp` is a comparison operator, with `swapped()` and `holds(cmp)`.
  - `Condition` has `oriented_to(tab_name)` and
    `evaluate(lhs, rhs, col_type, col_len)`.
  - `pop_conds(conds, tab_names)` removes from a list, and returns, the
    conditions that involve only the given tables.
- **`btreedb.rwlatch`**: `ReaderWriterLatch`, a reader/writer latch that
  blocks new readers once a writer is waiting.
- **`btreedb.log`**: `LogLevel`, `level_tag`, `format_header` and
  `get_logger`. `get_logger` writes to standard output, in lines of the form
  `2008-07-06 10:00:00 [file.py:123:func] ERROR - message`.

## Working with an index

```python
from btreedb.ix_defs import ColType, Rid, encode_key
from btreedb.ix_manager import IxManager
from btreedb.ix_scan import IxScan

manager = IxManager("data")
manager.create_index("orders", 0, ColType.INT, 4)
index = manager.open_index("orders", 0)

for n in (3, 1, 2):
    index.insert_entry(encode_key(n, ColType.INT, 4), Rid(0, n))

index.get_value(encode_key(2, ColType.INT, 4))   # Rid(page_no=0, slot_no=2)

scan = IxScan(index, index.leaf_begin(), index.leaf_end())
[rid.slot_no for rid in scan]                    # [1, 2, 3]

manager.close_index(index)
```

### Creating an index

`create_index` writes three pages: the file header, the head of the leaf list,
and an empty root leaf. It creates the directory if needed. It raises an error
in these cases:

- `ValueError` for a negative index number;
- `ValueError` for a column length outside 1..512;
- `ValueError` for a column length that leaves too few keys per node;
- `FileExistsError` if the file already exists.

### Opening and closing

`open_index` raises `FileNotFoundError` for a missing file. `close_index`
writes the file header back to page 0, then flushes and closes the file.

### Locking

`insert_entry`, `delete_entry` and `get_value` each take a lock on the index,
so threads may call them concurrently. Scans and the bound lookups do not
take that lock.

## Predicates

```python
from btreedb.ix_defs import ColType, encode_key
from btreedb.predicates import CompOp, Condition, TabCol, Value

limit = Value(ColType.INT, 10)
cond = Condition(TabCol("orders", "qty"), CompOp.LT, limit)
cond.evaluate(encode_key(7, ColType.INT, 4), limit.encode(4), ColType.INT, 4)  # True
```

## Latching

```python
from btreedb.rwlatch import ReaderWriterLatch

latch = ReaderWriterLatch()

with latch.read_locked():
    ...  # many readers may be here at once

with latch.write_locked():
    ...  # a writer waits for readers to leave and blocks new ones
```

The explicit `r_lock`, `r_unlock`, `w_lock` and `w_unlock` methods are there
for code that cannot use a `with` block. Releasing a latch that is not held
raises `RuntimeError`.

## What it does not do

- It has no SQL parser, no command-line program and no server.
- It has no query executor. Conditions can be evaluated, but nothing here
  scans tables or joins them.
- There is no storage for table records. `Rid`s are stored and returned as
  given.
- `PageFile` keeps every page it has read in memory until it is closed. There
  is no buffer pool that evicts pages.
- Pages of nodes removed by merges are not reused.
- Each key maps to exactly one `Rid`; duplicate keys are refused.

## Requirements

Python 3.10 or later. The test suite uses pytest (`pip install .[test]`).