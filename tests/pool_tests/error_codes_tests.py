#!/usr/bin/env python3
# tests/pool_tests/error_codes_tests.py
#
# Error code table:
#   - every ErrorCode has a message and every message belongs to a code;
#   - codes are unique strings;
#   - PoolError carries the code and appends the detail to the message.

import os
import sys

# Add project root to sys.path
THIS_FILE = os.path.abspath(__file__)
THIS_DIR = os.path.dirname(THIS_FILE)
PROJECT_ROOT = os.path.abspath(os.path.join(THIS_DIR, "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from errors import ERROR_MESSAGES, ErrorCode, PoolError, StorageCollision


def _codes():
    return [v for k, v in vars(ErrorCode).items() if k.isupper()]


def test_codes_and_messages_match():
    codes = _codes()
    assert len(codes) == len(set(codes))
    assert set(codes) == set(ERROR_MESSAGES)
    assert "InvalidFee" not in codes
    assert StorageCollision.code not in codes


def test_pool_error_message():
    e = PoolError(ErrorCode.INVALID_FEE_AMOUNT, "fee=1 minimum=2")
    assert e.code == ErrorCode.INVALID_FEE_AMOUNT
    assert str(e).startswith(ERROR_MESSAGES[ErrorCode.INVALID_FEE_AMOUNT])
    assert str(e).endswith(": fee=1 minimum=2")
    assert str(PoolError(ErrorCode.UNKNOWN_ROOT)) == ERROR_MESSAGES[ErrorCode.UNKNOWN_ROOT]


if __name__ == "__main__":
    test_codes_and_messages_match()
    test_pool_error_message()
    print("\n=== all error code tests finished ===")
