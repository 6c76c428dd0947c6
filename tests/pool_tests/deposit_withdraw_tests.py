#!/usr/bin/env python3
# tests/pool_tests/deposit_withdraw_tests.py
#
# End-to-end Deposit / Withdraw through Node.deal_with_request:
#   - a deposit moves ext_amount into the reserve and the fee to the fee
#     recipient, appends two leaves and commits a CommitmentData block;
#   - a relayed withdraw pays the recipient and the fee recipient;
#   - every rejected request leaves balances, tree, nullifiers and the
#     event ledger exactly as they were.

import os
import sys

# Add project root and tests dir to sys.path
THIS_FILE = os.path.abspath(__file__)
THIS_DIR = os.path.dirname(THIS_FILE)
TESTS_DIR = os.path.abspath(os.path.join(THIS_DIR, ".."))
PROJECT_ROOT = os.path.abspath(os.path.join(THIS_DIR, "..", ".."))
for p in (PROJECT_ROOT, TESTS_DIR):
    if p not in sys.path:
        sys.path.insert(0, p)

from acct import reserve_owner, token_account_address
from client.core import Client
from errors import ErrorCode
from tools import run_silently

from pool_fixtures import MINT_A, NoteProver, do_deposit, make_pool, new_identity, send


def _snapshot(node, owners):
    info = send(node, {"application_type": "GetTreeInfo", "payload": {}})
    balances = [node.balance_of(MINT_A, o) for o in owners]
    return (info["next_index"], info["root"], len(node.blockchain.lst_of_blocks), balances)


def _spent(node, nullifiers):
    info = send(node, {
        "application_type": "GetTreeInfo",
        "payload": {"nullifiers": [n.hex() for n in nullifiers]},
    })
    return [info["spent"][n.hex()] for n in nullifiers]


def _setup():
    node, admin = make_pool(height=3, root_history_size=4, deposit_limit=1_000_000)
    user = run_silently(Client)
    node.mint_tokens(MINT_A, user.pk, 10_000)
    fee_owner = new_identity()
    return node, admin, user, fee_owner


def test_deposit_success():
    node, _admin, user, fee_owner = _setup()
    res, prover = do_deposit(node, user, MINT_A, 1000, 25, fee_owner)
    assert res["ok"], res

    reserve = reserve_owner()
    assert node.balance_of(MINT_A, user.pk) == 10_000 - 1025
    assert node.balance_of(MINT_A, reserve) == 1000
    assert node.balance_of(MINT_A, fee_owner) == 25

    block = node.blockchain.get_newest_block()
    assert block.next_index == 2
    events = node.blockchain.get_events("CommitmentData")
    assert len(events) == 1
    assert events[0]["index"] == 0
    assert events[0]["commitment0"] == prover.commitments[0].hex()
    assert events[0]["encrypted_output"] == b"enc".hex()
    assert node.blockchain.verify_chain()
    assert node.blockchain.get_block_by_height(block.height) is block
    assert node.blockchain.get_block_by_hash(block.block_hash) is block
    assert node.blockchain.get_block_by_height(block.height + 1) is None

    assert _spent(node, prover.nullifiers) == [True, True]

    assert run_silently(user.sync_tree, node)
    assert user.tree.size() == 2
    assert user.current_root().hex() == block.tree_root
    assert user.check_leaf(1)


def test_withdraw_success():
    node, _admin, user, fee_owner = _setup()
    res, _ = do_deposit(node, user, MINT_A, 1000, 0, fee_owner)
    assert res["ok"], res

    relayer = run_silently(Client)
    recipient = new_identity()
    assert run_silently(relayer.sync_tree, node)
    envelope = run_silently(relayer.apply_for_withdraw, MINT_A, recipient, -600, 2,
                            fee_owner, b"enc2", NoteProver())
    res = send(node, envelope)
    assert res["ok"], res

    assert node.balance_of(MINT_A, recipient) == 600
    assert node.balance_of(MINT_A, fee_owner) == 2
    assert node.balance_of(MINT_A, reserve_owner()) == 398
    assert node.blockchain.get_newest_block().next_index == 4


def test_deposit_limit_exceeded_rolls_back():
    node, _admin, user, fee_owner = _setup()
    node.mint_tokens(MINT_A, user.pk, 5_000_000)
    before = _snapshot(node, [user.pk, reserve_owner(), fee_owner])

    res, prover = do_deposit(node, user, MINT_A, 1_000_001, 0, fee_owner)
    assert not res["ok"]
    assert res["err"] == ErrorCode.DEPOSIT_LIMIT_EXCEEDED
    assert _snapshot(node, [user.pk, reserve_owner(), fee_owner]) == before
    assert _spent(node, prover.nullifiers) == [False, False]


def test_deposit_without_funds_rolls_back_nullifiers():
    node, _admin, _user, fee_owner = _setup()
    poor = run_silently(Client)
    node.mint_tokens(MINT_A, poor.pk, 100)
    before = _snapshot(node, [poor.pk, reserve_owner(), fee_owner])

    # fails at the token transfer, after the nullifiers were consumed
    res, prover = do_deposit(node, poor, MINT_A, 1000, 0, fee_owner)
    assert res["err"] == ErrorCode.INSUFFICIENT_FUNDS
    assert _snapshot(node, [poor.pk, reserve_owner(), fee_owner]) == before
    assert _spent(node, prover.nullifiers) == [False, False]


def test_withdraw_reserve_checks():
    node, _admin, user, fee_owner = _setup()
    res, _ = do_deposit(node, user, MINT_A, 1000, 0, fee_owner)
    assert res["ok"], res

    relayer = run_silently(Client)
    recipient = new_identity()
    assert run_silently(relayer.sync_tree, node)

    envelope = run_silently(relayer.apply_for_withdraw, MINT_A, recipient, -1001, 3,
                            fee_owner, b"", NoteProver())
    res = send(node, envelope)
    assert res["err"] == ErrorCode.INSUFFICIENT_FUNDS_FOR_WITHDRAWAL

    envelope = run_silently(relayer.apply_for_withdraw, MINT_A, recipient, -1000, 5,
                            fee_owner, b"", NoteProver())
    res = send(node, envelope)
    assert res["err"] == ErrorCode.INSUFFICIENT_FUNDS_FOR_FEE
    assert node.balance_of(MINT_A, reserve_owner()) == 1000


def test_withdraw_request_with_positive_amount_rejected():
    node, _admin, user, fee_owner = _setup()
    assert run_silently(user.sync_tree, node)
    envelope = run_silently(user.apply_for_deposit, MINT_A, 500, 0, fee_owner, b"enc", NoteProver())

    # same proof and ext data, submitted as a withdraw to the reserve account
    payload = envelope["payload"]
    payload["recipient"] = token_account_address(MINT_A, reserve_owner())
    user.sign_payload(payload)
    res = send(node, {"application_type": "Withdraw", "payload": payload})
    assert res["err"] == ErrorCode.INVALID_EXT_AMOUNT
    assert node.balance_of(MINT_A, user.pk) == 10_000


def test_fee_below_policy_minimum_rejected():
    node, _admin, user, fee_owner = _setup()
    res, _ = do_deposit(node, user, MINT_A, 5000, 0, fee_owner)
    assert res["ok"], res

    relayer = run_silently(Client)
    assert run_silently(relayer.sync_tree, node)
    # 4000 * 25 / 10000 = 10, minimum 9
    envelope = run_silently(relayer.apply_for_withdraw, MINT_A, new_identity(), -4000, 8,
                            fee_owner, b"", NoteProver())
    res = send(node, envelope)
    assert res["err"] == ErrorCode.INVALID_FEE_AMOUNT


def test_malformed_and_unsigned_requests():
    node, _admin, user, fee_owner = _setup()
    assert run_silently(user.sync_tree, node)
    envelope = run_silently(user.apply_for_deposit, MINT_A, 500, 0, fee_owner, b"enc", NoteProver())

    tampered = dict(envelope["payload"])
    tampered["ext_data"] = {"ext_amount": 501, "fee": 0}
    res = send(node, {"application_type": "Deposit", "payload": tampered})
    assert res["err"] == ErrorCode.UNAUTHORIZED

    missing = dict(envelope["payload"])
    del missing["proof"]
    res = send(node, {"application_type": "Deposit", "payload": missing})
    assert res["err"] == ErrorCode.INVALID_REQUEST

    bad_hex = dict(envelope["payload"])
    bad_hex["mint"] = "zz" * 32
    res = send(node, {"application_type": "Deposit", "payload": bad_hex})
    assert res["err"] == ErrorCode.INVALID_REQUEST

    assert node.balance_of(MINT_A, user.pk) == 10_000


def test_stale_root_is_accepted_until_it_ages_out():
    node, _admin, user, fee_owner = _setup()
    stale = run_silently(Client)
    node.mint_tokens(MINT_A, stale.pk, 10_000)
    assert run_silently(stale.sync_tree, node)

    # one more deposit moves the root; the old one is still in history
    res, _ = do_deposit(node, user, MINT_A, 100, 0, fee_owner)
    assert res["ok"], res
    envelope = run_silently(stale.apply_for_deposit, MINT_A, 100, 0, fee_owner, b"", NoteProver())
    assert send(node, envelope)["ok"]

    # history 4: after four more roots the synced root is gone
    assert run_silently(stale.sync_tree, node)
    old_root_envelope = run_silently(stale.apply_for_deposit, MINT_A, 100, 0, fee_owner, b"", NoteProver())
    i = 0
    while i < 2:
        res, _ = do_deposit(node, user, MINT_A, 100, 0, fee_owner)
        assert res["ok"], res
        i += 1
    res = send(node, old_root_envelope)
    assert res["err"] == ErrorCode.UNKNOWN_ROOT


if __name__ == "__main__":
    test_deposit_success()
    test_withdraw_success()
    test_deposit_limit_exceeded_rolls_back()
    test_deposit_without_funds_rolls_back_nullifiers()
    test_withdraw_reserve_checks()
    test_withdraw_request_with_positive_amount_rejected()
    test_fee_below_policy_minimum_rejected()
    test_malformed_and_unsigned_requests()
    test_stale_root_is_accepted_until_it_ages_out()
    print("\n=== all deposit / withdraw tests finished ===")
