#!/usr/bin/env python3
# tests/pool_tests/merkle_tree_tests.py
#
# Incremental Merkle tree tests:
#   - initialization limits and the empty-tree root;
#   - capacity: exactly 2^height appends succeed;
#   - root history aging over the ring buffer;
#   - incremental root equals the client mirror root, mirror paths verify.

import os
import sys

# Add project root to sys.path
THIS_FILE = os.path.abspath(__file__)
THIS_DIR = os.path.dirname(THIS_FILE)
PROJECT_ROOT = os.path.abspath(os.path.join(THIS_DIR, "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from errors import ErrorCode, PoolError
from field_codec import FR_MODULUS, ZERO32, fr_to_be_bytes
from merkle_tree import (
    IncrementalMerkleTree,
    MerkleTree,
    hash_pair,
    verify_merkle_proof,
    zero_hashes,
)
from state import MAX_ROOT_HISTORY_SIZE, MAX_TREE_HEIGHT


def _leaf(i):
    return fr_to_be_bytes(1000 + i)


def _expect_pool_error(code, func, *args):
    try:
        func(*args)
    except PoolError as e:
        assert e.code == code, e.code
        return
    raise AssertionError("expected PoolError " + code)


def test_initialize_limits():
    for height, history in ((0, 4), (MAX_TREE_HEIGHT + 1, 4), (3, 0), (3, MAX_ROOT_HISTORY_SIZE + 1)):
        _expect_pool_error(ErrorCode.INVALID_TREE_PARAMETERS,
                           IncrementalMerkleTree.initialize, height, history)

    tree = IncrementalMerkleTree.initialize(MAX_TREE_HEIGHT, MAX_ROOT_HISTORY_SIZE)
    assert tree.capacity() == 2 ** MAX_TREE_HEIGHT


def test_empty_root_is_zero_hash_of_height():
    tree = IncrementalMerkleTree.initialize(3, 4)
    zeros = zero_hashes(3)
    assert len(zeros) == 4
    assert zeros[0] == ZERO32
    assert zeros[1] == hash_pair(ZERO32, ZERO32)
    assert tree.root() == zeros[3]
    assert tree.state.next_index == 0
    assert tree.is_known_root(zeros[3])
    assert not tree.is_known_root(ZERO32)


def test_capacity_exactly_two_pow_height():
    tree = IncrementalMerkleTree.initialize(2, 4)
    i = 0
    while i < 4:
        assert tree.append(_leaf(i)) == i
        i += 1
    assert tree.state.next_index == 4

    root_before = tree.root()
    _expect_pool_error(ErrorCode.MERKLE_TREE_FULL, tree.append, _leaf(99))
    assert tree.state.next_index == 4
    assert tree.root() == root_before


def test_non_canonical_leaf_rejected():
    tree = IncrementalMerkleTree.initialize(3, 4)
    _expect_pool_error(ErrorCode.INVALID_COMMITMENT, tree.append, FR_MODULUS.to_bytes(32, "big"))
    assert tree.state.next_index == 0


def test_root_history_aging():
    history = 4
    tree = IncrementalMerkleTree.initialize(4, history)
    produced = [tree.root()]
    i = 0
    while i < 10:
        tree.append(_leaf(i))
        produced.append(tree.root())

        # the last `history` roots are known, anything older is not
        recent = produced[-history:]
        for r in recent:
            assert tree.is_known_root(r)
        for r in produced[:-history]:
            assert not tree.is_known_root(r)
        i += 1


def test_incremental_matches_mirror():
    height = 3
    tree = IncrementalMerkleTree.initialize(height, 4)
    mirror = MerkleTree(height)
    assert mirror.root() == tree.root().hex()

    i = 0
    while i < 6:
        tree.append(_leaf(i))
        mirror.append(_leaf(i).hex())
        assert mirror.root() == tree.root().hex()
        i += 1

    j = 0
    while j < mirror.size():
        path = mirror.gen_proof(j)
        assert len(path) == height
        assert verify_merkle_proof(_leaf(j).hex(), path, mirror.root())
        j += 1

    # wrong leaf does not verify against the same path
    assert not verify_merkle_proof(_leaf(42).hex(), mirror.gen_proof(0), mirror.root())


def test_end_to_end_two_commitments():
    """Height 3, history 4: two appends, current root is in history."""
    tree = IncrementalMerkleTree.initialize(3, 4)
    tree.append(_leaf(0))
    tree.append(_leaf(1))
    assert tree.state.next_index == 2
    assert tree.root() in tree.state.root_history[:4]
    assert tree.is_known_root(tree.root())


if __name__ == "__main__":
    test_initialize_limits()
    test_empty_root_is_zero_hash_of_height()
    test_capacity_exactly_two_pow_height()
    test_non_canonical_leaf_rejected()
    test_root_history_aging()
    test_incremental_matches_mirror()
    test_end_to_end_two_commitments()
    print("\n=== all Merkle tree tests finished ===")
