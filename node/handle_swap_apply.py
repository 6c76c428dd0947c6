# node/handle_swap_apply.py
# Handle Swap requests: exchange shielded value of one mint for another.
#
# Protocol summary:
#   - Payload fields:
#       signer, mint_in, mint_out, fee_recipient, proof, ext_data,
#       routing_data, encrypted_output, signature.
#   - signer is the relayer. ext_amount (< 0) is taken out of the mint_in
#     reserve, exchanged through node.aggregator, and the output lands in
#     the mint_out reserve. The proof already credits ext_min_amount_out
#     of mint_out to the user's new notes.
#   - The declared fee is checked against the deposit rate and stays in
#     the mint_in reserve. Any output above ext_min_amount_out goes to the
#     fee recipient.
#   - The realized output is measured from the reserve balance change, not
#     taken from the aggregator's return value.

from acct import TokenLedger, reserve_owner
from errors import ErrorCode
from pool_types import Proof, SwapExtData, SwapExtDataMinified
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


def handle_swap(node, txn, payload):
    print("[NODE][Swap] start handling swap request.")

    try:
        require_fields(
            payload,
            ["signer", "mint_in", "mint_out", "fee_recipient", "proof", "ext_data",
             "routing_data", "encrypted_output", "signature"],
            "Swap",
        )
        mint_in = decode_hex_exact(payload["mint_in"], 32, "mint_in")
        mint_out = decode_hex_exact(payload["mint_out"], 32, "mint_out")
        fee_recipient = decode_hex_exact(payload["fee_recipient"], 32, "fee_recipient")
        proof = Proof.from_payload(payload["proof"])
        minified = SwapExtDataMinified.from_payload(payload["ext_data"])
        routing_data = decode_hex_any(payload["routing_data"], "routing_data")
        encrypted_output = decode_hex_any(payload["encrypted_output"], "encrypted_output")
    except ValueError as e:
        return make_bad_response(ErrorCode.INVALID_REQUEST, str(e))

    relayer, err = check_signature(payload)
    if err is not None:
        return err

    tree, policy = load_pool_state(txn)
    swap_ext = SwapExtData.from_minified(fee_recipient, minified)

    validator = TransactionValidator(tree, policy, node.verifying_key)
    validator.validate_swap(proof, swap_ext, encrypted_output, mint_in, mint_out)

    if len(routing_data) == 0:
        return make_bad_response(ErrorCode.INVALID_SWAP_ROUTING_DATA, "routing_data is empty")
    if node.aggregator is None:
        return make_bad_response(ErrorCode.INVALID_SWAP_ROUTING_DATA, "no swap aggregator configured")

    amount_in = -swap_ext.ext_amount
    min_out = swap_ext.ext_min_amount_out

    ledger = TokenLedger(txn)
    reserve = reserve_owner()
    reserve_in_balance = ledger.balance_of(mint_in, reserve)
    if reserve_in_balance < amount_in:
        return make_bad_response(
            ErrorCode.INSUFFICIENT_FUNDS_FOR_WITHDRAWAL,
            "reserve=%d amount_in=%d" % (reserve_in_balance, amount_in),
        )

    validator.consume_nullifiers(txn, proof)

    before = ledger.balance_of(mint_out, reserve)
    node.aggregator.exchange(ledger, mint_in, mint_out, amount_in, min_out, routing_data, reserve)
    after = ledger.balance_of(mint_out, reserve)

    received = after - before
    if received < 0:
        return make_bad_response(ErrorCode.MATH_OVERFLOW, "output reserve decreased")
    surplus = received - min_out
    if surplus < 0:
        return make_bad_response(
            ErrorCode.INSUFFICIENT_SWAP_OUTPUT,
            "received=%d min_out=%d" % (received, min_out),
        )
    ledger.transfer(mint_out, reserve, fee_recipient, surplus)

    event = validator.append_outputs(proof, encrypted_output)
    store_tree_state(txn, tree.state)

    print("[NODE][Swap] swapped", amount_in, "of", short_hex(mint_in), "for", received,
          "of", short_hex(mint_out), ", surplus =", surplus, ", relayed by", short_hex(relayer))
    return make_ok_response(build_block(tree, [commitment_event(event)]))
