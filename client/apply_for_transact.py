#!/usr/bin/env python3
# client/apply_for_transact.py
# Apply for Deposit / Withdraw (single-asset shielded transactions).
# Only builds the envelope and returns it; sending is handled elsewhere.
#
# The client computes every public input the node will check (root, public
# amounts, ext-data hash, mints) and hands them to a prover callable, which
# returns a pool_types.Proof. Proof generation itself lives outside this repo.

import os
import sys

THIS_FILE = os.path.abspath(__file__)
MODULE_DIR = os.path.dirname(THIS_FILE)
PROJECT_ROOT = os.path.abspath(os.path.join(MODULE_DIR, ".."))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from acct import reserve_owner, token_account_address
from field_codec import ZERO32, fr_to_be_bytes, le_bytes_to_fr, public_amount_bytes
from pool_types import ExtData, ExtDataMinified
from tools import short_hex
from transaction_validator import calculate_complete_ext_data_hash


def transact_public_inputs(client, ext_data, encrypted_output, mint):
    """
    Public inputs of a deposit / withdraw proof, as 32-byte big-endian values.
    """
    calculated = calculate_complete_ext_data_hash(ext_data, encrypted_output, mint, mint)
    return {
        "root": client.current_root(),
        "public_amount0": public_amount_bytes(ext_data.ext_amount, ext_data.fee),
        "public_amount1": ZERO32,
        "ext_data_hash": fr_to_be_bytes(le_bytes_to_fr(calculated)),
        "mint_a": bytes(mint),
        "mint_b": bytes(mint),
    }


def _proof_from_prover(prover, public_inputs, tag):
    proof = prover(public_inputs)
    if proof is None:
        print("[CLIENT] [" + tag + "] prover returned no proof.")
        return None
    print("[CLIENT] [" + tag + "] proof ready, root =", short_hex(proof.root))
    return proof


def build_apply_for_deposit_envelope(client, mint, ext_amount, fee, fee_recipient,
                                     encrypted_output, prover):
    print("\n[CLIENT] [Deposit] prepare envelope.")

    if not isinstance(ext_amount, int) or ext_amount <= 0:
        print("[CLIENT] [Deposit] ext_amount must be a positive int.")
        return None

    mint = bytes(mint)
    recipient = bytes.fromhex(token_account_address(mint, reserve_owner()))
    minified = ExtDataMinified(ext_amount, fee)
    ext_data = ExtData.from_minified(recipient, bytes(fee_recipient), minified)

    public_inputs = transact_public_inputs(client, ext_data, encrypted_output, mint)
    proof = _proof_from_prover(prover, public_inputs, "Deposit")
    if proof is None:
        return None

    payload = {
        "mint": mint.hex(),
        "fee_recipient": bytes(fee_recipient).hex(),
        "proof": proof.to_payload(),
        "ext_data": minified.to_payload(),
        "encrypted_output": bytes(encrypted_output).hex(),
    }
    client.sign_payload(payload)

    envelope = {
        "application_type": "Deposit",
        "payload": payload,
    }
    print("[CLIENT] [Deposit] envelope built, ext_amount =", ext_amount, ", fee =", fee)
    return envelope


def build_apply_for_withdraw_envelope(client, mint, recipient, ext_amount, fee, fee_recipient,
                                      encrypted_output, prover):
    print("\n[CLIENT] [Withdraw] prepare envelope.")

    if not isinstance(ext_amount, int) or ext_amount >= 0:
        print("[CLIENT] [Withdraw] ext_amount must be a negative int.")
        return None

    mint = bytes(mint)
    minified = ExtDataMinified(ext_amount, fee)
    ext_data = ExtData.from_minified(bytes(recipient), bytes(fee_recipient), minified)

    public_inputs = transact_public_inputs(client, ext_data, encrypted_output, mint)
    proof = _proof_from_prover(prover, public_inputs, "Withdraw")
    if proof is None:
        return None

    payload = {
        "mint": mint.hex(),
        "recipient": bytes(recipient).hex(),
        "fee_recipient": bytes(fee_recipient).hex(),
        "proof": proof.to_payload(),
        "ext_data": minified.to_payload(),
        "encrypted_output": bytes(encrypted_output).hex(),
    }
    client.sign_payload(payload)

    envelope = {
        "application_type": "Withdraw",
        "payload": payload,
    }
    print("[CLIENT] [Withdraw] envelope built, amount =", -ext_amount, "to", short_hex(bytes(recipient)))
    return envelope
