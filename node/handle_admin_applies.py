# node/handle_admin_applies.py
# Handle authority-only requests:
#   - UpdateDepositLimit  (signer must be the tree authority)
#   - UpdateGlobalConfig  (signer must be the policy authority)
#
# Both are signed like every other request; the signer key is then compared
# with the authority stored at initialization.

from errors import ErrorCode
from field_codec import U64_MAX
from state import MAX_BASIS_POINTS, store_global_policy, store_tree_state
from tools import short_hex

from .utils import (
    build_block,
    check_signature,
    load_pool_state,
    make_bad_response,
    make_ok_response,
    require_fields,
)

_POLICY_FIELDS = ["deposit_fee_rate", "withdrawal_fee_rate", "fee_error_margin"]


def handle_update_deposit_limit(node, txn, payload):
    """
    Payload: signer, new_limit (u64), signature.
    """
    print("[NODE][UpdateDepositLimit] start handling request.")

    try:
        require_fields(payload, ["signer", "new_limit", "signature"], "UpdateDepositLimit")
        new_limit = payload["new_limit"]
        if not isinstance(new_limit, int) or isinstance(new_limit, bool):
            raise ValueError("new_limit must be int")
        if new_limit < 0 or new_limit > U64_MAX:
            raise ValueError("new_limit out of u64 range")
    except ValueError as e:
        return make_bad_response(ErrorCode.INVALID_REQUEST, str(e))

    signer, err = check_signature(payload)
    if err is not None:
        return err

    tree, _policy = load_pool_state(txn)
    if signer != tree.state.authority:
        print("[NODE][UpdateDepositLimit][ERROR] signer is not the authority:", short_hex(signer))
        return make_bad_response(ErrorCode.UNAUTHORIZED)

    old_limit = tree.state.max_deposit_amount
    tree.state.max_deposit_amount = new_limit
    store_tree_state(txn, tree.state)

    print("[NODE][UpdateDepositLimit] max_deposit_amount", old_limit, "->", new_limit)
    event = {
        "event_type": "DepositLimitUpdated",
        "old_limit": old_limit,
        "new_limit": new_limit,
    }
    return make_ok_response(build_block(tree, [event]))


def handle_update_global_config(node, txn, payload):
    """
    Payload: signer, signature and any of deposit_fee_rate,
    withdrawal_fee_rate, fee_error_margin (basis points, 0..10000).
    Fields that are absent or null keep their current value. All given
    fields are validated before anything is stored.
    """
    print("[NODE][UpdateGlobalConfig] start handling request.")

    try:
        require_fields(payload, ["signer", "signature"], "UpdateGlobalConfig")
    except ValueError as e:
        return make_bad_response(ErrorCode.INVALID_REQUEST, str(e))

    updates = {}
    for name in _POLICY_FIELDS:
        value = payload.get(name)
        if value is None:
            continue
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            return make_bad_response(ErrorCode.INVALID_REQUEST, name + " must be a non-negative int")
        if value > MAX_BASIS_POINTS:
            return make_bad_response(ErrorCode.INVALID_FEE_RATE, "%s=%d" % (name, value))
        updates[name] = value

    signer, err = check_signature(payload)
    if err is not None:
        return err

    tree, policy = load_pool_state(txn)
    if signer != policy.authority:
        print("[NODE][UpdateGlobalConfig][ERROR] signer is not the authority:", short_hex(signer))
        return make_bad_response(ErrorCode.UNAUTHORIZED)

    for name in _POLICY_FIELDS:
        if name in updates:
            setattr(policy, name, updates[name])
    store_global_policy(txn, policy)

    print("[NODE][UpdateGlobalConfig] policy now", policy.to_dict())
    event = {"event_type": "GlobalConfigUpdated"}
    event.update(policy.to_dict())
    return make_ok_response(build_block(tree, [event]))
