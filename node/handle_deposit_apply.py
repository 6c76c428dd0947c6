# node/handle_deposit_apply.py
# Handle Deposit requests: move public tokens into the shielded pool.
#
# Protocol summary:
#   - Payload fields:
#       signer, mint, fee_recipient, proof, ext_data, encrypted_output, signature.
#   - signer is the depositor; its token account pays ext_amount into the
#     reserve and fee to the fee recipient's token account.
#   - The ext-data recipient is the reserve token account of the mint.
#   - Admission runs through TransactionValidator.validate_transact, then
#     ext_amount > 0 and the deposit limit are enforced.
#
# Return values:
#   - On success: {"ok": True, "new_block": {...}} with a CommitmentData event.
#   - On failure: {"ok": False, "err": "<code>", "msg": "..."}

from acct import TokenLedger, reserve_owner, token_account_address
from errors import ErrorCode
from pool_types import ExtData, ExtDataMinified, Proof
from state import store_tree_state
from tools import decode_hex_exact, short_hex
from transaction_validator import TransactionValidator

from .utils import (
    build_block,
    check_signature,
    commitment_event,
    decode_hex_any,
    load_pool_state,
    make_bad_response,
    make_ok_response,
    require_fields,
)


def handle_deposit(node, txn, payload):
    """
    Handle a Deposit request inside the node's storage transaction.

    Required payload fields:
      - signer           (Hex32, depositor Ed25519 public key)
      - mint             (Hex32)
      - fee_recipient    (Hex32, owner of the fee token account)
      - proof            (dict of hex fields, see pool_types.Proof)
      - ext_data         ({"ext_amount": int, "fee": int})
      - encrypted_output (hex, any length)
      - signature        (hex, 64 bytes)
    """
    print("[NODE][Deposit] start handling deposit request.")

    try:
        require_fields(
            payload,
            ["signer", "mint", "fee_recipient", "proof", "ext_data", "encrypted_output", "signature"],
            "Deposit",
        )
        mint = decode_hex_exact(payload["mint"], 32, "mint")
        fee_recipient = decode_hex_exact(payload["fee_recipient"], 32, "fee_recipient")
        proof = Proof.from_payload(payload["proof"])
        minified = ExtDataMinified.from_payload(payload["ext_data"])
        encrypted_output = decode_hex_any(payload["encrypted_output"], "encrypted_output")
    except ValueError as e:
        return make_bad_response(ErrorCode.INVALID_REQUEST, str(e))

    depositor, err = check_signature(payload)
    if err is not None:
        return err

    tree, policy = load_pool_state(txn)

    reserve = reserve_owner()
    recipient = bytes.fromhex(token_account_address(mint, reserve))
    ext_data = ExtData.from_minified(recipient, fee_recipient, minified)

    validator = TransactionValidator(tree, policy, node.verifying_key)
    validator.validate_transact(proof, ext_data, encrypted_output, mint)

    if ext_data.ext_amount <= 0:
        return make_bad_response(ErrorCode.INVALID_EXT_AMOUNT, "deposit ext_amount must be positive")
    if ext_data.ext_amount > tree.state.max_deposit_amount:
        return make_bad_response(
            ErrorCode.DEPOSIT_LIMIT_EXCEEDED,
            "ext_amount=%d limit=%d" % (ext_data.ext_amount, tree.state.max_deposit_amount),
        )

    validator.consume_nullifiers(txn, proof)

    ledger = TokenLedger(txn)
    ledger.transfer(mint, depositor, reserve, ext_data.ext_amount)
    ledger.transfer(mint, depositor, fee_recipient, ext_data.fee)

    event = validator.append_outputs(proof, encrypted_output)
    store_tree_state(txn, tree.state)

    print("[NODE][Deposit] deposited", ext_data.ext_amount, "of", short_hex(mint),
          "from", short_hex(depositor), ", leaf index =", event.index)
    return make_ok_response(build_block(tree, [commitment_event(event)]))
