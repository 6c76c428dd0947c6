#!/usr/bin/env python3
# tests/crypto_tests/field_codec_tests.py
#
# Field codec tests: byte order conversions and the signed-amount to
# field-element boundary used by the public amount check.

import os
import sys

# Add project root to sys.path
THIS_FILE = os.path.abspath(__file__)
THIS_DIR = os.path.dirname(THIS_FILE)
PROJECT_ROOT = os.path.abspath(os.path.join(THIS_DIR, "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from field_codec import (
    FR_MODULUS,
    I64_MAX,
    I64_MIN,
    U64_MAX,
    be_bytes_to_fr,
    change_endianness,
    compute_public_amount,
    fr_to_be_bytes,
    is_canonical_fr,
    le_bytes_to_fr,
    public_amount_bytes,
)
from transaction_validator import check_public_amount


def test_byte_order_reduction():
    b = bytes(range(32))
    assert be_bytes_to_fr(b) == int.from_bytes(b, "big") % FR_MODULUS
    assert le_bytes_to_fr(b) == int.from_bytes(b, "little") % FR_MODULUS

    all_ff = b"\xff" * 32
    assert be_bytes_to_fr(all_ff) == (2 ** 256 - 1) % FR_MODULUS
    assert not is_canonical_fr(all_ff)
    assert is_canonical_fr(fr_to_be_bytes(FR_MODULUS - 1))
    assert fr_to_be_bytes(FR_MODULUS) == b"\x00" * 32


def test_wrong_length_rejected():
    for bad in (b"", b"\x01" * 31, b"\x01" * 33):
        try:
            be_bytes_to_fr(bad)
        except ValueError:
            pass
        else:
            raise AssertionError("length %d should be rejected" % len(bad))


def test_change_endianness_per_chunk():
    chunk0 = bytes(range(32))
    chunk1 = bytes(range(32, 64))
    swapped = change_endianness(chunk0 + chunk1)
    assert swapped[:32] == chunk0[::-1]
    assert swapped[32:] == chunk1[::-1]
    assert change_endianness(swapped) == chunk0 + chunk1


def test_public_amount_deposit():
    assert compute_public_amount(1000, 25) == 975
    assert compute_public_amount(1000, 0) == 1000
    # ext_amount must exceed the fee
    assert compute_public_amount(25, 25) is None
    assert compute_public_amount(10, 25) is None
    assert compute_public_amount(0, 0) is None


def test_public_amount_withdrawal_is_field_negation():
    assert compute_public_amount(-1000, 8) == FR_MODULUS - 1008
    assert compute_public_amount(-1, 0) == FR_MODULUS - 1
    assert compute_public_amount(I64_MIN + 1, 0) == FR_MODULUS - I64_MAX


def test_public_amount_range_errors():
    assert compute_public_amount(I64_MIN, 0) is None
    assert compute_public_amount(I64_MAX + 1, 0) is None
    assert compute_public_amount(100, -1) is None
    assert compute_public_amount(-100, U64_MAX + 1) is None
    assert compute_public_amount(True, 0) is None

    try:
        public_amount_bytes(10, 25)
    except ValueError:
        pass
    else:
        raise AssertionError("invalid pair should raise")


def test_check_public_amount():
    assert check_public_amount(1000, 25, fr_to_be_bytes(975))
    assert not check_public_amount(1000, 25, fr_to_be_bytes(976))
    assert check_public_amount(-1000, 8, fr_to_be_bytes(FR_MODULUS - 1008))
    assert not check_public_amount(-1000, 8, fr_to_be_bytes(1008))
    # provided bytes are reduced mod r before comparing
    assert check_public_amount(1000, 25, (975 + FR_MODULUS).to_bytes(32, "big"))
    # bad encodings never raise
    assert not check_public_amount(I64_MIN, 0, fr_to_be_bytes(0))
    assert not check_public_amount(1000, 25, b"\x00" * 31)


if __name__ == "__main__":
    test_byte_order_reduction()
    test_wrong_length_rejected()
    test_change_endianness_per_chunk()
    test_public_amount_deposit()
    test_public_amount_withdrawal_is_field_negation()
    test_public_amount_range_errors()
    test_check_public_amount()
    print("\n=== all field codec tests finished ===")
