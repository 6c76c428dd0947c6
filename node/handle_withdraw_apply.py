# node/handle_withdraw_apply.py
# Handle Withdraw requests: release tokens from the reserve to a recipient.
#
# Protocol summary:
#   - Payload fields:
#       signer, mint, recipient, fee_recipient, proof, ext_data,
#       encrypted_output, signature.
#   - signer is the relayer submitting the request; ownership of the notes
#     is proven by the zk proof, not by the signature.
#   - recipient / fee_recipient are owner identities; both are bound into
#     the ext-data hash.
#   - The reserve must cover |ext_amount| and then the fee.

from acct import TokenLedger, reserve_owner
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


def handle_withdraw(node, txn, payload):
    print("[NODE][Withdraw] start handling withdraw request.")

    try:
        require_fields(
            payload,
            ["signer", "mint", "recipient", "fee_recipient", "proof", "ext_data",
             "encrypted_output", "signature"],
            "Withdraw",
        )
        mint = decode_hex_exact(payload["mint"], 32, "mint")
        recipient = decode_hex_exact(payload["recipient"], 32, "recipient")
        fee_recipient = decode_hex_exact(payload["fee_recipient"], 32, "fee_recipient")
        proof = Proof.from_payload(payload["proof"])
        minified = ExtDataMinified.from_payload(payload["ext_data"])
        encrypted_output = decode_hex_any(payload["encrypted_output"], "encrypted_output")
    except ValueError as e:
        return make_bad_response(ErrorCode.INVALID_REQUEST, str(e))

    relayer, err = check_signature(payload)
    if err is not None:
        return err

    tree, policy = load_pool_state(txn)
    ext_data = ExtData.from_minified(recipient, fee_recipient, minified)

    validator = TransactionValidator(tree, policy, node.verifying_key)
    validator.validate_transact(proof, ext_data, encrypted_output, mint)

    if ext_data.ext_amount >= 0:
        return make_bad_response(ErrorCode.INVALID_EXT_AMOUNT, "withdraw ext_amount must be negative")
    amount = -ext_data.ext_amount

    ledger = TokenLedger(txn)
    reserve = reserve_owner()
    reserve_balance = ledger.balance_of(mint, reserve)
    if reserve_balance < amount:
        return make_bad_response(
            ErrorCode.INSUFFICIENT_FUNDS_FOR_WITHDRAWAL,
            "reserve=%d amount=%d" % (reserve_balance, amount),
        )
    if reserve_balance - amount < ext_data.fee:
        return make_bad_response(
            ErrorCode.INSUFFICIENT_FUNDS_FOR_FEE,
            "reserve=%d amount=%d fee=%d" % (reserve_balance, amount, ext_data.fee),
        )

    validator.consume_nullifiers(txn, proof)

    ledger.transfer(mint, reserve, recipient, amount)
    ledger.transfer(mint, reserve, fee_recipient, ext_data.fee)

    event = validator.append_outputs(proof, encrypted_output)
    store_tree_state(txn, tree.state)

    print("[NODE][Withdraw] withdrew", amount, "of", short_hex(mint),
          "to", short_hex(recipient), "relayed by", short_hex(relayer))
    return make_ok_response(build_block(tree, [commitment_event(event)]))
