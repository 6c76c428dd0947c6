#!/usr/bin/env python3
# tests/pool_tests/admin_tests.py
#
# Initialize / UpdateDepositLimit / UpdateGlobalConfig / GetTreeInfo:
#   - initialization happens once, with validated parameters;
#   - a configured admin key restricts who may initialize;
#   - only the stored authority may change the limit or the fee policy;
#   - invalid fee rates are rejected without touching the policy.

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

from client.core import Client
from errors import ErrorCode
from merkle_tree import zero_hashes
from node.core import Node
from tools import run_silently

from pool_fixtures import make_pool, send, trapdoor_vk


def _info(node):
    return send(node, {"application_type": "GetTreeInfo", "payload": {}})


def test_initialize_once():
    node, admin = make_pool(height=3, root_history_size=4, deposit_limit=5000)
    info = _info(node)
    assert info["initialized"]
    assert info["height"] == 3
    assert info["root_history_size"] == 4
    assert info["next_index"] == 0
    assert info["max_deposit_amount"] == 5000
    assert info["root"] == zero_hashes(3)[3].hex()
    assert info["root_history"] == [info["root"]]
    assert info["authority"] == admin.get_pk_hex()
    assert info["policy"]["withdrawal_fee_rate"] == 25
    assert info["policy"]["fee_error_margin"] == 500

    events = node.blockchain.get_events("PoolInitialized")
    assert len(events) == 1

    res = send(node, admin.build_initialize_request(3, 4, 5000))
    assert res["err"] == ErrorCode.ALREADY_INITIALIZED
    other = run_silently(Client)
    res = send(node, other.build_initialize_request())
    assert res["err"] == ErrorCode.ALREADY_INITIALIZED
    assert len(node.blockchain.lst_of_blocks) == 1


def test_initialize_defaults_and_bad_parameters():
    node = run_silently(Node, verifying_key=trapdoor_vk())
    assert _info(node) == {"ok": True, "initialized": False}

    admin = run_silently(Client)
    for height, history in ((0, 4), (33, 4), (3, 0), (3, 101)):
        res = send(node, admin.build_initialize_request(height, history))
        assert res["err"] == ErrorCode.INVALID_TREE_PARAMETERS
    res = send(node, admin.build_initialize_request(deposit_limit=-1))
    assert res["err"] == ErrorCode.INVALID_REQUEST
    assert not _info(node)["initialized"]

    res = send(node, admin.build_initialize_request())
    assert res["ok"], res
    info = _info(node)
    assert info["height"] == 26
    assert info["root_history_size"] == 100
    assert info["max_deposit_amount"] == 1_000_000_000_000


def test_configured_admin_key():
    admin = run_silently(Client)
    intruder = run_silently(Client)
    node = run_silently(Node, verifying_key=trapdoor_vk(), admin_pk_hex=admin.get_pk_hex())

    res = send(node, intruder.build_initialize_request(3, 4))
    assert res["err"] == ErrorCode.UNAUTHORIZED
    res = send(node, admin.build_initialize_request(3, 4))
    assert res["ok"], res


def test_update_deposit_limit():
    node, admin = make_pool(deposit_limit=5000)
    intruder = run_silently(Client)

    res = send(node, intruder.build_update_deposit_limit_request(1))
    assert res["err"] == ErrorCode.UNAUTHORIZED
    assert _info(node)["max_deposit_amount"] == 5000

    res = send(node, admin.build_update_deposit_limit_request(2 ** 64))
    assert res["err"] == ErrorCode.INVALID_REQUEST

    res = send(node, admin.build_update_deposit_limit_request(777))
    assert res["ok"], res
    assert _info(node)["max_deposit_amount"] == 777
    ev = node.blockchain.get_events("DepositLimitUpdated")[-1]
    assert (ev["old_limit"], ev["new_limit"]) == (5000, 777)


def test_update_global_config():
    node, admin = make_pool()
    intruder = run_silently(Client)

    res = send(node, intruder.build_update_global_config_request(withdrawal_fee_rate=1))
    assert res["err"] == ErrorCode.UNAUTHORIZED

    res = send(node, admin.build_update_global_config_request(deposit_fee_rate=10, withdrawal_fee_rate=10001))
    assert res["err"] == ErrorCode.INVALID_FEE_RATE
    res = send(node, admin.build_update_global_config_request(fee_error_margin=-5))
    assert res["err"] == ErrorCode.INVALID_REQUEST
    assert _info(node)["policy"]["deposit_fee_rate"] == 0

    res = send(node, admin.build_update_global_config_request(withdrawal_fee_rate=100))
    assert res["ok"], res
    policy = _info(node)["policy"]
    assert policy["deposit_fee_rate"] == 0
    assert policy["withdrawal_fee_rate"] == 100
    assert policy["fee_error_margin"] == 500

    res = send(node, admin.build_update_global_config_request(0, 10000, 10000))
    assert res["ok"], res
    policy = _info(node)["policy"]
    assert (policy["deposit_fee_rate"], policy["withdrawal_fee_rate"], policy["fee_error_margin"]) == (0, 10000, 10000)


def test_requests_before_initialize_and_unknown_types():
    node = run_silently(Node, verifying_key=trapdoor_vk())
    admin = run_silently(Client)

    res = send(node, admin.build_update_deposit_limit_request(10))
    assert res["err"] == ErrorCode.NOT_INITIALIZED
    res = send(node, admin.build_update_global_config_request(deposit_fee_rate=1))
    assert res["err"] == ErrorCode.NOT_INITIALIZED

    res = send(node, {"application_type": "Mint", "payload": {}})
    assert res["err"] == ErrorCode.INVALID_REQUEST
    res = send(node, "not an envelope")
    assert res["err"] == ErrorCode.INVALID_REQUEST
    assert len(node.blockchain.lst_of_blocks) == 0


if __name__ == "__main__":
    test_initialize_once()
    test_initialize_defaults_and_bad_parameters()
    test_configured_admin_key()
    test_update_deposit_limit()
    test_update_global_config()
    test_requests_before_initialize_and_unknown_types()
    print("\n=== all admin tests finished ===")
