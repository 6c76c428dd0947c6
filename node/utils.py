# node/utils.py
# Shared helpers for node request handlers: responses, payload decoding
# and request signatures.

from errors import ERROR_MESSAGES, ErrorCode, PoolError
from merkle_tree import IncrementalMerkleTree
from state import load_global_policy, load_tree_state
from tools import canonical_json, decode_hex_exact, get_hash, short_hex
from wrappers.ed25519_wrapper import Ed25519Keypair


def make_bad_response(code, msg=None):
    if msg is None:
        msg = ERROR_MESSAGES.get(code, code)
    return {"ok": False, "err": code, "msg": msg}


def make_ok_response(new_block=None):
    if new_block is None:
        return {"ok": True}
    return {"ok": True, "new_block": new_block}


def require_fields(payload, required_fields, request_name):
    """Raise ValueError naming the first missing field."""
    if not isinstance(payload, dict):
        raise ValueError(request_name + " payload must be an object")
    i = 0
    while i < len(required_fields):
        f = required_fields[i]
        if f not in payload:
            raise ValueError("missing field in " + request_name + " payload: " + f)
        i += 1


def decode_hex_any(s, field_name):
    """Hex string of any (possibly zero) length."""
    return decode_hex_exact(s, None, field_name)


def canonical_payload_bytes_for_signature(payload_dict, exclude_keys=("signature",)):
    """
    Build canonical JSON bytes for signature verification, excluding given keys.
    """
    payload_copy = {k: v for k, v in payload_dict.items() if k not in exclude_keys}
    return canonical_json(payload_copy)


def payload_digest(payload_dict):
    """sha256 of the canonical payload; this is what gets signed."""
    return bytes.fromhex(get_hash(canonical_payload_bytes_for_signature(payload_dict)))


def check_signature(payload):
    """
    Verify payload["signature"] by payload["signer"].
    Returns (signer_bytes, None) on success or (None, bad_response).
    """
    try:
        signer = decode_hex_exact(payload.get("signer"), 32, "signer")
        sig_bytes = decode_hex_exact(payload.get("signature"), 64, "signature")
    except ValueError as e:
        return None, make_bad_response(ErrorCode.INVALID_REQUEST, str(e))

    verifier_kp = Ed25519Keypair()
    try:
        verifier_kp.set_pk(signer)
        ok_verify = verifier_kp.verify_signature(sig_bytes, payload_digest(payload))
    except ValueError as e:
        print("[NODE][WARN] signer key rejected:", repr(e))
        return None, make_bad_response(ErrorCode.UNAUTHORIZED, "bad signer key")

    if not ok_verify:
        print("[NODE][WARN] bad signature from", short_hex(signer))
        return None, make_bad_response(ErrorCode.UNAUTHORIZED, "bad signature")
    return signer, None


def _truncate_long_hex_in_obj(obj, max_len=80):
    """Copy of obj with long strings shortened, for logging payloads."""
    if isinstance(obj, dict):
        new_dict = {}
        for k in obj:
            new_dict[k] = _truncate_long_hex_in_obj(obj[k], max_len)
        return new_dict

    if isinstance(obj, list):
        new_list = []
        i = 0
        while i < len(obj):
            new_list.append(_truncate_long_hex_in_obj(obj[i], max_len))
            i += 1
        return new_list

    if isinstance(obj, str):
        s = obj.strip()
        if len(s) > max_len:
            return short_hex(s)
        return s

    return obj


def load_pool_state(txn):
    """Load (IncrementalMerkleTree, GlobalPolicy); NotInitialized if absent."""
    state = load_tree_state(txn)
    policy = load_global_policy(txn)
    if state is None or policy is None:
        raise PoolError(ErrorCode.NOT_INITIALIZED)
    return IncrementalMerkleTree(state), policy


def build_block(tree, events):
    return {
        "tree_root": tree.root().hex(),
        "next_index": tree.state.next_index,
        "events": events,
    }


def commitment_event(event):
    d = {"event_type": "CommitmentData"}
    d.update(event.to_dict())
    return d
