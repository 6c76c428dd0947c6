# field_codec.py
# Conversions between 32-byte buffers and BN254 scalar-field elements.
#
# Conventions:
#   - Public inputs of the proof are 32-byte big-endian encodings.
#   - The plaintext ext-data hash is reduced as a little-endian integer.
#   - Curve-point coordinates travel big-endian; change_endianness flips
#     every 32-byte chunk when the other convention is needed.

from typing import Optional

from py_ecc.optimized_bn128 import curve_order, field_modulus

# BN254 scalar field order (public inputs, Poseidon) and base field prime (coordinates)
FR_MODULUS = curve_order
FQ_MODULUS = field_modulus

I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1
U64_MAX = (1 << 64) - 1

ZERO32 = b"\x00" * 32


def _require_32(b) -> bytes:
    if not isinstance(b, (bytes, bytearray, memoryview)):
        raise TypeError("expected bytes-like value, got: %r" % type(b))
    b = bytes(b)
    if len(b) != 32:
        raise ValueError("expected 32 bytes, got %d" % len(b))
    return b


def be_bytes_to_fr(b) -> int:
    """Big-endian 32 bytes -> field element, reduced modulo r."""
    return int.from_bytes(_require_32(b), "big") % FR_MODULUS


def le_bytes_to_fr(b) -> int:
    """Little-endian 32 bytes -> field element, reduced modulo r."""
    return int.from_bytes(_require_32(b), "little") % FR_MODULUS


def fr_to_be_bytes(x: int) -> bytes:
    return (int(x) % FR_MODULUS).to_bytes(32, "big")


def is_canonical_fr(b) -> bool:
    if not isinstance(b, (bytes, bytearray)) or len(b) != 32:
        return False
    return int.from_bytes(b, "big") < FR_MODULUS


def change_endianness(b) -> bytes:
    """Reverse the byte order inside every 32-byte chunk."""
    b = bytes(b)
    out = bytearray()
    for offset in range(0, len(b), 32):
        out.extend(reversed(b[offset:offset + 32]))
    return bytes(out)


def compute_public_amount(ext_amount, fee) -> Optional[int]:
    """
    Map a signed external amount and a fee onto the field element the
    circuit binds as its public amount.

      ext_amount >= 0:  ext_amount - fee            (requires ext_amount > fee)
      ext_amount <  0:  r - (|ext_amount| + fee)    (field negation)

    Returns None when the pair has no valid encoding: ext_amount is
    i64::MIN or outside i64, fee is outside u64, or a non-negative amount
    does not exceed its own fee.
    """
    if not isinstance(ext_amount, int) or isinstance(ext_amount, bool):
        return None
    if not isinstance(fee, int) or isinstance(fee, bool):
        return None
    if ext_amount <= I64_MIN or ext_amount > I64_MAX:
        return None
    if fee < 0 or fee > U64_MAX:
        return None

    if ext_amount >= 0:
        if ext_amount <= fee:
            return None
        return (ext_amount - fee) % FR_MODULUS

    return (-(-ext_amount + fee)) % FR_MODULUS


def public_amount_bytes(ext_amount, fee) -> bytes:
    """Big-endian encoding of compute_public_amount; raises ValueError if invalid."""
    value = compute_public_amount(ext_amount, fee)
    if value is None:
        raise ValueError("ext_amount/fee pair has no public amount encoding")
    return fr_to_be_bytes(value)
