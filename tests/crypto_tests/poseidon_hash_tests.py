#!/usr/bin/env python3
# tests/crypto_tests/poseidon_hash_tests.py
#
# Poseidon hash tests (pure-Python wrapper).
#
# Goals:
#   - Match the circom reference digest for H(1, 2).
#   - Check that int, bytes and hex-string inputs for the same field element
#     produce the same digest.
#   - Check that non-canonical inputs (>= r) are rejected, not reduced.

import os
import sys

# Add project root to sys.path
THIS_FILE = os.path.abspath(__file__)
THIS_DIR = os.path.dirname(THIS_FILE)
PROJECT_ROOT = os.path.abspath(os.path.join(THIS_DIR, "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from field_codec import FR_MODULUS
from tools import short_hex
from wrappers.poseidon_hash_wrapper import get_poseidon_hash, poseidon_permutation_hash

CIRCOM_H_1_2 = "115cc0f5e7d690413df64c6b9662e9cf2a3617f2743245519e19607a4417189a"


def test_poseidon_reference_vector():
    print("=== Poseidon reference vector H(1, 2) ===")
    digest = get_poseidon_hash(1, 2)
    print("digest:", short_hex(digest))
    assert digest == CIRCOM_H_1_2
    assert poseidon_permutation_hash([1, 2]) == int(CIRCOM_H_1_2, 16)


def test_poseidon_input_forms_agree():
    print("\n=== Poseidon int / bytes / hex-string inputs ===")
    one = (1).to_bytes(32, "big")
    two = (2).to_bytes(32, "big")

    from_ints = get_poseidon_hash(1, 2)
    from_bytes = get_poseidon_hash(one, two)
    from_hex = get_poseidon_hash(one.hex(), "0x" + two.hex())
    from_list = get_poseidon_hash([1, 2])

    assert from_ints == from_bytes == from_hex == from_list


def test_poseidon_is_order_sensitive():
    assert get_poseidon_hash(1, 2) != get_poseidon_hash(2, 1)


def test_poseidon_rejects_non_canonical_input():
    print("\n=== Poseidon rejects inputs >= r ===")
    for bad in (FR_MODULUS, FR_MODULUS + 1, -1):
        try:
            get_poseidon_hash(bad, 1)
        except ValueError as e:
            print("rejected as expected:", e)
        else:
            raise AssertionError("input %d should be rejected" % bad)

    try:
        get_poseidon_hash()
    except ValueError:
        pass
    else:
        raise AssertionError("empty input should be rejected")


def test_poseidon_digest_is_canonical_field_element():
    digest = get_poseidon_hash(FR_MODULUS - 1, FR_MODULUS - 2)
    assert len(digest) == 64
    assert int(digest, 16) < FR_MODULUS


if __name__ == "__main__":
    test_poseidon_reference_vector()
    test_poseidon_input_forms_agree()
    test_poseidon_is_order_sensitive()
    test_poseidon_rejects_non_canonical_input()
    test_poseidon_digest_is_canonical_field_element()
    print("\n=== all Poseidon tests finished ===")
