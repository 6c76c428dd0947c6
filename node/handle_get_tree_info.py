# node/handle_get_tree_info.py
# Handle GetTreeInfo requests on the node side (read-only).
#
# Design notes:
#   - Reads committed state only; no storage transaction is opened.
#   - Before Initialize -> {"ok": True, "initialized": False}.
#   - root_history is listed newest first and skips unused (zero) slots.
#   - An optional "nullifiers" list is answered with {"spent": {hex: bool}}.

from errors import ErrorCode
from field_codec import ZERO32
from nullifier_registry import is_spent
from state import load_global_policy, load_tree_state
from tools import decode_hex_exact

from .utils import make_bad_response


def handle_get_tree_info(node, payload):
    print("[NODE][GetTreeInfo] start handling tree info request.")

    nullifiers = []
    if isinstance(payload, dict) and payload.get("nullifiers") is not None:
        lst = payload["nullifiers"]
        if not isinstance(lst, list):
            return make_bad_response(ErrorCode.INVALID_REQUEST, "nullifiers must be a list")
        try:
            for item in lst:
                nullifiers.append(decode_hex_exact(item, 32, "nullifier"))
        except ValueError as e:
            return make_bad_response(ErrorCode.INVALID_REQUEST, str(e))

    state = load_tree_state(node.storage)
    policy = load_global_policy(node.storage)
    if state is None or policy is None:
        print("[NODE][GetTreeInfo] pool not initialized yet.")
        return {"ok": True, "initialized": False}

    roots = []
    size = state.root_history_size
    i = state.root_index
    count = 0
    while count < size:
        r = state.root_history[i]
        if r != ZERO32:
            roots.append(r.hex())
        i = (i - 1) % size
        count += 1

    res = {
        "ok": True,
        "initialized": True,
        "height": state.height,
        "root_history_size": state.root_history_size,
        "next_index": state.next_index,
        "root": state.current_root().hex(),
        "root_history": roots,
        "max_deposit_amount": state.max_deposit_amount,
        "authority": state.authority.hex(),
        "policy": policy.to_dict(),
    }
    if nullifiers:
        spent = {}
        for nf in nullifiers:
            spent[nf.hex()] = is_spent(node.storage, nf)
        res["spent"] = spent

    print("[NODE][GetTreeInfo] next_index =", state.next_index, ", roots listed =", len(roots))
    return res
