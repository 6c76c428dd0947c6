#!/usr/bin/env python3
# tests/pool_tests/event_ledger_tests.py
#
# Node event ledger:
#   - every committed request appends one linked block;
#   - get_events filters by type and start height;
#   - tampering with a stored event breaks verify_chain;
#   - dump_path writes the chain to a readable file after each commit.

import os
import sys
import tempfile

# Add project root and tests dir to sys.path
THIS_FILE = os.path.abspath(__file__)
THIS_DIR = os.path.dirname(THIS_FILE)
TESTS_DIR = os.path.abspath(os.path.join(THIS_DIR, ".."))
PROJECT_ROOT = os.path.abspath(os.path.join(THIS_DIR, "..", ".."))
for p in (PROJECT_ROOT, TESTS_DIR):
    if p not in sys.path:
        sys.path.insert(0, p)

from blockchain import Block, Blockchain
from client.core import Client
from tools import run_silently

from pool_fixtures import MINT_A, do_deposit, make_pool, new_identity


def test_blocks_are_linked():
    chain = Blockchain()
    run_silently(chain.append_block, Block("aa" * 32, 0, [{"event_type": "A"}]))
    run_silently(chain.append_block, Block("bb" * 32, 2, [{"event_type": "B", "n": 1}]))
    run_silently(chain.append_block, Block("cc" * 32, 4, [{"event_type": "B", "n": 2}]))

    assert chain.get_newest_block().height == 2
    assert chain.lst_of_blocks[0].previous_block_hash == "0" * 64
    assert chain.lst_of_blocks[1].previous_block_hash == chain.lst_of_blocks[0].block_hash
    assert run_silently(chain.verify_chain)

    assert [e["n"] for e in chain.get_events("B")] == [1, 2]
    assert [e["n"] for e in chain.get_events("B", 2)] == [2]
    assert len(chain.get_events()) == 3

    chain.lst_of_blocks[1].events[0]["n"] = 99
    assert not run_silently(chain.verify_chain)


def test_node_dumps_chain_after_commit():
    fd, path = tempfile.mkstemp(suffix=".txt")
    os.close(fd)
    try:
        node, _admin = make_pool()
        node.dump_path = path
        user = run_silently(Client)
        node.mint_tokens(MINT_A, user.pk, 5000)
        res, _ = do_deposit(node, user, MINT_A, 1000, 0, new_identity())
        assert res["ok"], res

        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        assert "=== Block 0 ===" in text
        assert "=== Block 1 ===" in text
        assert "CommitmentData" in text
        assert "number_of_blocks: 2" in run_silently(str, node.blockchain)
    finally:
        os.remove(path)


if __name__ == "__main__":
    test_blocks_are_linked()
    test_node_dumps_chain_after_commit()
    print("\n=== all event ledger tests finished ===")
