# node/handle_initialize.py
# Handle Initialize requests: create the tree state and the global policy.
#
# Protocol summary:
#   - Payload fields:
#       signer, signature                       (required)
#       height, root_history_size, deposit_limit (optional, defaults in state.py)
#   - If the node was configured with an admin key, only that key may initialize.
#   - The signer becomes the authority of both singletons.
#   - Both slots are created with create_if_absent, so a second Initialize
#     fails with AlreadyInitialized and changes nothing.
#
# Return values:
#   - On success: {"ok": True, "new_block": {...}} with a PoolInitialized event.
#   - On failure: {"ok": False, "err": "<code>", "msg": "..."}

from errors import ErrorCode
from field_codec import U64_MAX
from merkle_tree import IncrementalMerkleTree
from state import (
    DEFAULT_MAX_DEPOSIT_AMOUNT,
    DEFAULT_ROOT_HISTORY_SIZE,
    DEFAULT_TREE_HEIGHT,
    GlobalPolicy,
    global_config_address,
    tree_state_address,
)
from storage import ALREADY_EXISTS
from tools import short_hex

from .utils import build_block, check_signature, make_bad_response, make_ok_response, require_fields


def _optional_int(payload, name, default):
    value = payload.get(name, default)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(name + " must be int")
    return value


def handle_initialize(node, txn, payload):
    """
    Handle an Initialize request inside the node's storage transaction.

    Returns:
      {"ok": True, "new_block": {...}} or {"ok": False, "err": "...", "msg": "..."}.
    """
    print("[NODE][Initialize] start handling initialize request.")

    try:
        require_fields(payload, ["signer", "signature"], "Initialize")
        height = _optional_int(payload, "height", DEFAULT_TREE_HEIGHT)
        root_history_size = _optional_int(payload, "root_history_size", DEFAULT_ROOT_HISTORY_SIZE)
        deposit_limit = _optional_int(payload, "deposit_limit", DEFAULT_MAX_DEPOSIT_AMOUNT)
        if deposit_limit < 0 or deposit_limit > U64_MAX:
            raise ValueError("deposit_limit out of u64 range")
    except ValueError as e:
        return make_bad_response(ErrorCode.INVALID_REQUEST, str(e))

    signer, err = check_signature(payload)
    if err is not None:
        return err

    if node.admin_pk_hex is not None and signer.hex() != node.admin_pk_hex.lower():
        print("[NODE][Initialize][ERROR] signer is not the configured admin:", short_hex(signer))
        return make_bad_response(ErrorCode.UNAUTHORIZED)

    if txn.exists(tree_state_address()):
        return make_bad_response(ErrorCode.ALREADY_INITIALIZED)

    # Raises InvalidTreeParameters for out-of-range height / history size
    tree = IncrementalMerkleTree.initialize(
        height,
        root_history_size,
        authority=signer,
        max_deposit_amount=deposit_limit,
    )
    policy = GlobalPolicy(authority=signer)

    if txn.create_if_absent(tree_state_address(), tree.state.to_bytes()) == ALREADY_EXISTS:
        return make_bad_response(ErrorCode.ALREADY_INITIALIZED)
    if txn.create_if_absent(global_config_address(), policy.to_bytes()) == ALREADY_EXISTS:
        return make_bad_response(ErrorCode.ALREADY_INITIALIZED)

    print("[NODE][Initialize] pool initialized: height =", height,
          ", root_history_size =", root_history_size,
          ", authority =", short_hex(signer))

    event = {
        "event_type": "PoolInitialized",
        "authority": signer.hex(),
        "height": height,
        "root_history_size": root_history_size,
        "max_deposit_amount": deposit_limit,
        "root": tree.root().hex(),
    }
    return make_ok_response(build_block(tree, [event]))
