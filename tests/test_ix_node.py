import pytest

from btreedb.config import INVALID_PAGE_ID, PAGE_SIZE
from btreedb.ix_defs import (
    IX_NO_PAGE,
    ColType,
    IxFileHdr,
    IxPageHdr,
    Rid,
    decode_key,
    encode_key,
)
from btreedb.ix_node import IxNodeHandle


def make_node(order=4, col_type=ColType.INT, col_len=4, is_leaf=True, page_no=2):
    hdr = IxFileHdr(
        first_free_page_no=IX_NO_PAGE,
        num_pages=3,
        root_page=2,
        col_type=col_type,
        col_len=col_len,
        btree_order=order,
        keys_size=(order + 1) * col_len,
        first_leaf=2,
        last_leaf=2,
    )
    node = IxNodeHandle(hdr, page_no, bytearray(PAGE_SIZE))
    node.page_hdr = IxPageHdr(
        next_free_page_no=IX_NO_PAGE,
        parent=INVALID_PAGE_ID,
        num_key=0,
        is_leaf=is_leaf,
        prev_leaf=IX_NO_PAGE,
        next_leaf=IX_NO_PAGE,
    )
    return node


def k(value):
    return encode_key(value, ColType.INT, 4)


def keys_of(node):
    return [node.key_at(i) for i in range(node.num_key)]


def test_insert_keeps_keys_sorted():
    node = make_node()
    values = [30, 10, 20, 40]
    for v in values:
        node.insert(k(v), Rid(0, v))
    assert keys_of(node) == sorted(values)
    assert [node.get_rid(i).slot_no for i in range(node.num_key)] == sorted(values)


def test_insert_returns_size_and_ignores_duplicates():
    node = make_node()
    assert node.insert(k(5), Rid(1, 1)) == 1
    assert node.insert(k(7), Rid(1, 2)) == 2
    assert node.insert(k(5), Rid(9, 9)) == 2
    assert node.leaf_lookup(k(5)) == Rid(1, 1)


def test_lower_bound_finds_each_key():
    node = make_node()
    values = [3, 8, 15, 21]
    for v in values:
        node.insert(k(v), Rid(0, v))
    for v in values:
        assert node.get_key(node.lower_bound(k(v))) == k(v)
    assert node.lower_bound(k(100)) == node.num_key
    assert node.lower_bound(k(-5)) == 0
    pos = node.lower_bound(k(10))
    assert node.key_at(pos) >= 10 and node.key_at(pos - 1) < 10


def test_upper_bound_invariant():
    node = make_node()
    values = [3, 8, 15, 21]
    for v in values:
        node.insert(k(v), Rid(0, v))
    for target in [3, 9, 15, 20]:
        pos = node.upper_bound(k(target))
        assert node.key_at(pos) > target
        assert node.key_at(pos - 1) <= target
    assert node.upper_bound(k(21)) == node.num_key


def test_leaf_lookup_found_and_missing():
    node = make_node()
    node.insert(k(4), Rid(2, 4))
    node.insert(k(6), Rid(2, 6))
    assert node.leaf_lookup(k(6)) == Rid(2, 6)
    assert node.leaf_lookup(k(5)) is None
    assert node.leaf_lookup(k(7)) is None


def test_internal_lookup_routes_to_child():
    node = make_node(is_leaf=False)
    node.insert_pairs(0, [k(1), k(10), k(20)], [Rid(7, -1), Rid(8, -1), Rid(9, -1)])
    assert node.internal_lookup(k(5)) == 7
    assert node.internal_lookup(k(10)) == 8
    assert node.internal_lookup(k(15)) == 8
    assert node.internal_lookup(k(25)) == 9


def test_remove_existing_and_missing():
    node = make_node()
    for v in [1, 2, 3]:
        node.insert(k(v), Rid(0, v))
    assert node.remove(k(2)) == 2
    assert keys_of(node) == [1, 3]
    assert node.remove(k(2)) == 2
    assert node.get_rid(1) == Rid(0, 3)


def test_erase_pair_shifts_tail():
    node = make_node()
    for v in [1, 2, 3, 4]:
        node.insert(k(v), Rid(0, v))
    node.erase_pair(0)
    assert keys_of(node) == [2, 3, 4]
    assert [node.get_rid(i) for i in range(node.num_key)] == [Rid(0, 2), Rid(0, 3), Rid(0, 4)]
    with pytest.raises(IndexError):
        node.erase_pair(node.num_key)


def test_insert_pairs_in_middle():
    node = make_node()
    node.insert_pairs(0, [k(1), k(9)], [Rid(0, 1), Rid(0, 9)])
    node.insert_pairs(1, [k(4), k(6)], [Rid(0, 4), Rid(0, 6)])
    assert keys_of(node) == [1, 4, 6, 9]
    assert [node.get_rid(i).slot_no for i in range(node.num_key)] == [1, 4, 6, 9]


def test_insert_pairs_errors():
    node = make_node(order=3)
    with pytest.raises(ValueError):
        node.insert_pairs(0, [k(1), k(2)], [Rid(0, 1)])
    with pytest.raises(IndexError):
        node.insert_pair(1, k(1), Rid(0, 1))
    node.insert_pairs(0, [k(v) for v in range(node.capacity)], [Rid(0, v) for v in range(node.capacity)])
    with pytest.raises(ValueError):
        node.insert_pair(0, k(-1), Rid(0, -1))
    assert node.num_key == node.capacity


def test_short_key_rejected():
    node = make_node()
    with pytest.raises(ValueError):
        node.insert(b"\x01", Rid(0, 0))


def test_find_child():
    parent = make_node(is_leaf=False, page_no=10)
    left = make_node(page_no=3)
    right = make_node(page_no=4)
    stranger = make_node(page_no=5)
    parent.insert_pairs(0, [k(0), k(50)], [Rid(3, -1), Rid(4, -1)])
    assert parent.find_child(left) == 0
    assert parent.find_child(right) == 1
    with pytest.raises(ValueError):
        parent.find_child(stranger)


def test_remove_and_return_only_child():
    node = make_node(is_leaf=False)
    node.insert_pair(0, k(0), Rid(12, -1))
    assert node.remove_and_return_only_child() == 12
    assert node.num_key == 0
    with pytest.raises(ValueError):
        node.remove_and_return_only_child()


def test_header_fields_live_in_page_bytes():
    node = make_node()
    node.insert(k(1), Rid(0, 1))
    node.parent = 6
    node.prev_leaf = 1
    node.next_leaf = 8
    hdr = IxPageHdr.from_bytes(node.data)
    assert hdr.num_key == node.num_key
    assert (hdr.parent, hdr.prev_leaf, hdr.next_leaf) == (6, 1, 8)
    assert hdr.is_leaf is True
    assert node.is_root is False


def test_root_and_sizes():
    node = make_node(order=4)
    assert node.is_root is True
    assert node.max_size == 5
    assert node.min_size == 2


def test_set_key_and_rid_round_trip():
    node = make_node()
    node.set_key(2, k(77))
    node.set_rid(2, Rid(3, 4))
    assert node.key_at(2) == 77
    assert node.get_rid(2) == Rid(3, 4)
    with pytest.raises(IndexError):
        node.get_key(node.capacity)


def test_string_keys_sorted():
    node = make_node(col_type=ColType.STRING, col_len=8)
    names = ["bob", "alice", "carol"]
    for i, name in enumerate(names):
        node.insert(encode_key(name, ColType.STRING, 8), Rid(0, i))
    stored = [decode_key(node.get_key(i), ColType.STRING) for i in range(node.num_key)]
    assert stored == sorted(names)
    assert node.leaf_lookup(encode_key("carol", ColType.STRING, 8)) == Rid(0, 2)


def test_page_too_small_rejected():
    hdr = IxFileHdr(IX_NO_PAGE, 3, 2, ColType.INT, 4, 4, 20, 2, 2)
    with pytest.raises(ValueError):
        IxNodeHandle(hdr, 2, bytearray(16))