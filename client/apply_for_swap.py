#!/usr/bin/env python3
# client/apply_for_swap.py
# Apply for Swap (exchange shielded value of mint_in for mint_out).
# Only builds the envelope and returns it; sending is handled elsewhere.

import os
import sys

THIS_FILE = os.path.abspath(__file__)
MODULE_DIR = os.path.dirname(THIS_FILE)
PROJECT_ROOT = os.path.abspath(os.path.join(MODULE_DIR, ".."))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from field_codec import fr_to_be_bytes, le_bytes_to_fr, public_amount_bytes
from pool_types import SwapExtData, SwapExtDataMinified
from tools import short_hex
from transaction_validator import calculate_swap_ext_data_hash


def swap_public_inputs(client, swap_ext_data, encrypted_output, mint_in, mint_out):
    """
    Public inputs of a swap proof. Slot 1 carries ext_min_amount_out of
    mint_out with no fee.
    """
    calculated = calculate_swap_ext_data_hash(swap_ext_data, encrypted_output, mint_in, mint_out)
    return {
        "root": client.current_root(),
        "public_amount0": public_amount_bytes(swap_ext_data.ext_amount, swap_ext_data.fee),
        "public_amount1": public_amount_bytes(swap_ext_data.ext_min_amount_out, 0),
        "ext_data_hash": fr_to_be_bytes(le_bytes_to_fr(calculated)),
        "mint_a": bytes(mint_in),
        "mint_b": bytes(mint_out),
    }


def build_apply_for_swap_envelope(client, mint_in, mint_out, ext_amount, ext_min_amount_out,
                                  fee, fee_recipient, routing_data, encrypted_output, prover):
    print("\n[CLIENT] [Swap] prepare envelope.")

    if not isinstance(ext_amount, int) or ext_amount >= 0:
        print("[CLIENT] [Swap] ext_amount must be a negative int.")
        return None
    if not isinstance(ext_min_amount_out, int) or ext_min_amount_out <= 0:
        print("[CLIENT] [Swap] ext_min_amount_out must be a positive int.")
        return None

    minified = SwapExtDataMinified(ext_amount, ext_min_amount_out, fee)
    swap_ext = SwapExtData.from_minified(bytes(fee_recipient), minified)

    public_inputs = swap_public_inputs(client, swap_ext, encrypted_output, bytes(mint_in), bytes(mint_out))
    proof = prover(public_inputs)
    if proof is None:
        print("[CLIENT] [Swap] prover returned no proof.")
        return None

    payload = {
        "mint_in": bytes(mint_in).hex(),
        "mint_out": bytes(mint_out).hex(),
        "fee_recipient": bytes(fee_recipient).hex(),
        "proof": proof.to_payload(),
        "ext_data": minified.to_payload(),
        "routing_data": bytes(routing_data).hex(),
        "encrypted_output": bytes(encrypted_output).hex(),
    }
    client.sign_payload(payload)

    envelope = {
        "application_type": "Swap",
        "payload": payload,
    }
    print("[CLIENT] [Swap] envelope built,", -ext_amount, "of", short_hex(bytes(mint_in)),
          "for at least", ext_min_amount_out, "of", short_hex(bytes(mint_out)))
    return envelope
