# wrappers/groth16_bn254_wrapper.py
# Groth16 verification over BN254 on top of py_ecc (optimized_bn128).
#
# Byte conventions (EIP-197, big-endian):
#   - G1: x(32) || y(32)                                  64 bytes
#   - G2: x.imag(32) || x.real(32) || y.imag(32) || y.real(32)   128 bytes
#   - All-zero bytes encode the point at infinity.
#   - Public inputs: 32-byte big-endian integers, reduced modulo r.
#
# Checked equation:
#   e(-A, B) * e(alpha, beta) * e(vk_x, gamma) * e(C, delta) == 1
# with vk_x = IC[0] + sum_i input_i * IC[i + 1].
#
# verify_groth16_proof never raises: structural problems and a failed
# pairing check both return False. The cause is printed for operators.

from typing import List, Optional, Sequence, Tuple, Union

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    FQ12,
    add,
    b,
    b2,
    curve_order,
    field_modulus,
    final_exponentiate,
    is_inf,
    is_on_curve,
    multiply,
    pairing,
)

from field_codec import be_bytes_to_fr, change_endianness

BytesLike = Union[bytes, bytearray, memoryview]

G1_SIZE = 64
G2_SIZE = 128

G1_INFINITY = (FQ.one(), FQ.one(), FQ.zero())
G2_INFINITY = (FQ2.one(), FQ2.one(), FQ2.zero())


class Groth16VerifyingKey:
    def __init__(self, alpha_g1, beta_g2, gamma_g2, delta_g2, ic: List):
        self.alpha_g1 = alpha_g1
        self.beta_g2 = beta_g2
        self.gamma_g2 = gamma_g2
        self.delta_g2 = delta_g2
        self.ic = list(ic)

    @property
    def nr_pubinputs(self) -> int:
        return len(self.ic) - 1


def _coord(data: bytes, offset: int) -> int:
    value = int.from_bytes(data[offset:offset + 32], "big")
    if value >= field_modulus:
        raise ValueError("coordinate is not a canonical base field element")
    return value


def parse_g1(data: BytesLike):
    """64 big-endian bytes -> on-curve G1 point (projective)."""
    data = bytes(data)
    if len(data) != G1_SIZE:
        raise ValueError("G1 point must be %d bytes, got %d" % (G1_SIZE, len(data)))
    if data == b"\x00" * G1_SIZE:
        return G1_INFINITY

    x = _coord(data, 0)
    y = _coord(data, 32)
    pt = (FQ(x), FQ(y), FQ.one())
    if not is_on_curve(pt, b):
        raise ValueError("G1 point is not on curve")
    return pt


def parse_g2(data: BytesLike):
    """
    128 big-endian bytes -> on-curve G2 point in the r-torsion subgroup.
    The imaginary coefficient of each coordinate comes first.
    """
    data = bytes(data)
    if len(data) != G2_SIZE:
        raise ValueError("G2 point must be %d bytes, got %d" % (G2_SIZE, len(data)))
    if data == b"\x00" * G2_SIZE:
        return G2_INFINITY

    x_imag = _coord(data, 0)
    x_real = _coord(data, 32)
    y_imag = _coord(data, 64)
    y_real = _coord(data, 96)
    pt = (FQ2([x_real, x_imag]), FQ2([y_real, y_imag]), FQ2.one())
    if not is_on_curve(pt, b2):
        raise ValueError("G2 point is not on curve")
    if not is_inf(multiply(pt, curve_order)):
        raise ValueError("G2 point is not in the prime-order subgroup")
    return pt


def negate_g1(data: BytesLike) -> bytes:
    """
    Negate a serialized G1 point: same x, y -> q - y.

    The point goes through the little-endian form (per-coordinate byte
    reversal) and back, so a caller holding big-endian bytes gets
    big-endian bytes.
    """
    data = bytes(data)
    if len(data) != G1_SIZE:
        raise ValueError("G1 point must be %d bytes, got %d" % (G1_SIZE, len(data)))
    le = change_endianness(data)
    x = int.from_bytes(le[:32], "little")
    y = int.from_bytes(le[32:], "little")
    if x >= field_modulus or y >= field_modulus:
        raise ValueError("coordinate is not a canonical base field element")
    if x == 0 and y == 0:
        return data
    neg_y = (field_modulus - y) % field_modulus
    le_neg = x.to_bytes(32, "little") + neg_y.to_bytes(32, "little")
    return change_endianness(le_neg)


def prepare_inputs(vk: Groth16VerifyingKey, public_inputs: Sequence[BytesLike]):
    """vk_x = IC[0] + sum_i (input_i mod r) * IC[i + 1]."""
    if len(public_inputs) != vk.nr_pubinputs:
        raise ValueError(
            "expected %d public inputs, got %d" % (vk.nr_pubinputs, len(public_inputs))
        )
    acc = vk.ic[0]
    i = 0
    while i < len(public_inputs):
        scalar = be_bytes_to_fr(public_inputs[i])
        if scalar != 0:
            acc = add(acc, multiply(vk.ic[i + 1], scalar))
        i += 1
    return acc


def parse_verifying_key(
    alpha_g1: BytesLike,
    beta_g2: BytesLike,
    gamma_g2: BytesLike,
    delta_g2: BytesLike,
    ic: Sequence[BytesLike],
) -> Groth16VerifyingKey:
    if len(ic) < 1:
        raise ValueError("verifying key needs at least one IC point")
    return Groth16VerifyingKey(
        parse_g1(alpha_g1),
        parse_g2(beta_g2),
        parse_g2(gamma_g2),
        parse_g2(delta_g2),
        [parse_g1(p) for p in ic],
    )


def _pairing_product_is_one(pairs: Sequence[Tuple]) -> bool:
    acc = FQ12.one()
    for g1_pt, g2_pt in pairs:
        if is_inf(g1_pt) or is_inf(g2_pt):
            continue
        acc = acc * pairing(g2_pt, g1_pt, final_exponentiate=False)
    return final_exponentiate(acc) == FQ12.one()


def verify_groth16_proof(
    proof_a: BytesLike,
    proof_b: BytesLike,
    proof_c: BytesLike,
    public_inputs: Sequence[BytesLike],
    vk: Optional[Groth16VerifyingKey],
) -> bool:
    """
    Verify a Groth16 proof given as raw big-endian point encodings.
    Returns True only when every step succeeds and the pairing check holds.
    """
    if vk is None:
        print("[GROTH16][WARN] no verifying key loaded")
        return False
    try:
        neg_a = parse_g1(negate_g1(proof_a))
        pt_b = parse_g2(proof_b)
        pt_c = parse_g1(proof_c)
        vk_x = prepare_inputs(vk, public_inputs)

        ok = _pairing_product_is_one([
            (neg_a, pt_b),
            (vk.alpha_g1, vk.beta_g2),
            (vk_x, vk.gamma_g2),
            (pt_c, vk.delta_g2),
        ])
    except (ValueError, TypeError, AssertionError) as e:
        print("[GROTH16][WARN] proof rejected:", repr(e))
        return False

    if not ok:
        print("[GROTH16][WARN] pairing check failed")
    return ok


__all__ = [
    "Groth16VerifyingKey",
    "parse_g1",
    "parse_g2",
    "negate_g1",
    "prepare_inputs",
    "parse_verifying_key",
    "verify_groth16_proof",
]
