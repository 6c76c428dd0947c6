# poseidon_hash_wrapper.py
# Poseidon hash over the BN254 scalar field, compatible with circom's
# Poseidon template (and therefore with the commitment tree the circuit
# proves membership in).
#
# Parameters:
#   - S-box x^5, 8 full rounds, partial rounds from circom's table by width.
#   - Round constants and the Cauchy MDS matrix come from the Grain LFSR of
#     the Poseidon reference parameter script (field=1, sbox=0, n=254).
#   - State is [0, inputs...]; the digest is state[0] after the permutation.
#
# Inputs must be canonical field elements (< r); larger values raise
# ValueError instead of being reduced, so no two leaves collide silently.

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple, Union

from py_ecc.optimized_bn128 import curve_order

BytesLike = Union[bytes, bytearray, memoryview]
FieldInput = Union[str, BytesLike, int]

FIELD_MODULUS = curve_order
FIELD_BITS = 254
N_ROUNDS_F = 8
# Partial rounds for state width t = 2 .. 17
N_ROUNDS_P = [56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68]

_PARAMS_CACHE: Dict[int, Tuple[List[int], List[List[int]]]] = {}


def _int_to_bits(value: int, width: int) -> List[int]:
    return [int(ch) for ch in bin(value)[2:].zfill(width)]


class _GrainLFSR:
    """
    80-bit Grain LFSR in self-shrinking mode, seeded with the parameter
    description of one Poseidon instance.
    """

    def __init__(self, t: int, r_f: int, r_p: int):
        state: List[int] = []
        state += _int_to_bits(1, 2)            # prime field
        state += _int_to_bits(0, 4)            # x^alpha S-box
        state += _int_to_bits(FIELD_BITS, 12)
        state += _int_to_bits(t, 12)
        state += _int_to_bits(r_f, 10)
        state += _int_to_bits(r_p, 10)
        state += [1] * 30
        self.state = state
        for _ in range(160):
            self._clock()

    def _clock(self) -> int:
        s = self.state
        new_bit = s[62] ^ s[51] ^ s[38] ^ s[23] ^ s[13] ^ s[0]
        s.pop(0)
        s.append(new_bit)
        return new_bit

    def next_bit(self) -> int:
        # bits come in pairs; the second is kept only when the first is 1
        first = self._clock()
        while first == 0:
            self._clock()
            first = self._clock()
        return self._clock()

    def next_int(self, n_bits: int) -> int:
        value = 0
        for _ in range(n_bits):
            value = (value << 1) | self.next_bit()
        return value


def _generate_parameters(t: int) -> Tuple[List[int], List[List[int]]]:
    r_p = N_ROUNDS_P[t - 2]
    lfsr = _GrainLFSR(t, N_ROUNDS_F, r_p)

    num_constants = (N_ROUNDS_F + r_p) * t
    constants: List[int] = []
    while len(constants) < num_constants:
        candidate = lfsr.next_int(FIELD_BITS)
        if candidate < FIELD_MODULUS:
            constants.append(candidate)

    while True:
        rand_list = [lfsr.next_int(FIELD_BITS) % FIELD_MODULUS for _ in range(2 * t)]
        while len(set(rand_list)) != len(rand_list):
            rand_list = [lfsr.next_int(FIELD_BITS) % FIELD_MODULUS for _ in range(2 * t)]
        xs = rand_list[:t]
        ys = rand_list[t:]

        ok = True
        for i in range(t):
            for j in range(t):
                if (xs[i] + ys[j]) % FIELD_MODULUS == 0:
                    ok = False
        if not ok:
            continue

        mds = []
        for i in range(t):
            row = []
            for j in range(t):
                row.append(pow((xs[i] + ys[j]) % FIELD_MODULUS, FIELD_MODULUS - 2, FIELD_MODULUS))
            mds.append(row)
        return constants, mds


def _get_parameters(t: int) -> Tuple[List[int], List[List[int]]]:
    if t < 2 or t > len(N_ROUNDS_P) + 1:
        raise ValueError(f"Poseidon supports 1 to {len(N_ROUNDS_P)} inputs, got {t - 1}")
    if t not in _PARAMS_CACHE:
        _PARAMS_CACHE[t] = _generate_parameters(t)
    return _PARAMS_CACHE[t]


def _to_field_int(x: FieldInput) -> int:
    """
    Convert one input into a field element:
      - int: used as-is
      - bytes-like: exactly 32 bytes, big-endian
      - str: 32-byte hex string, optional 0x prefix
    Values >= r are rejected.
    """
    if isinstance(x, bool):
        raise TypeError("bool is not a field element")
    if isinstance(x, int):
        value = x
    else:
        if isinstance(x, str):
            s = x.strip().lower()
            if s.startswith("0x"):
                s = s[2:]
            try:
                b = bytes.fromhex(s)
            except ValueError as e:
                raise ValueError(f"invalid hex field element: {x!r}") from e
        elif isinstance(x, (bytes, bytearray, memoryview)):
            b = bytes(x)
        else:
            raise TypeError(
                f"items must be int, hex str or bytes-like, got: {type(x)!r}"
            )
        if len(b) != 32:
            raise ValueError(f"field element must be 32 bytes, got {len(b)}")
        value = int.from_bytes(b, "big")

    if value < 0 or value >= FIELD_MODULUS:
        raise ValueError("input larger than the BN254 scalar field modulus")
    return value


def poseidon_permutation_hash(values: Sequence[int]) -> int:
    """Hash already-validated field elements and return the digest as an int."""
    t = len(values) + 1
    constants, mds = _get_parameters(t)
    r_p = N_ROUNDS_P[t - 2]
    half_f = N_ROUNDS_F // 2
    p = FIELD_MODULUS

    state = [0] + [int(v) for v in values]
    for r in range(N_ROUNDS_F + r_p):
        state = [(state[i] + constants[r * t + i]) % p for i in range(t)]
        if r < half_f or r >= half_f + r_p:
            state = [pow(s, 5, p) for s in state]
        else:
            state[0] = pow(state[0], 5, p)
        state = [sum(mds[i][j] * state[j] for j in range(t)) % p for i in range(t)]
    return state[0]


def get_poseidon_hash(*items: FieldInput) -> str:
    """
    Main interface for Poseidon hashing.

    Accepted forms:
        get_poseidon_hash(left_hex, right_hex)
        get_poseidon_hash(b"<32 bytes>", 5)
        get_poseidon_hash([a, b, c])    # a single list/tuple is unpacked

    Returns the digest as a 64-char lowercase big-endian hex string.
    """
    if len(items) == 1 and isinstance(items[0], (list, tuple)):
        items_seq: Sequence[FieldInput] = items[0]
    else:
        items_seq = items

    if len(items_seq) == 0:
        raise ValueError("get_poseidon_hash needs at least one input")

    values = [_to_field_int(x) for x in items_seq]
    digest = poseidon_permutation_hash(values)
    return digest.to_bytes(32, "big").hex()


__all__ = [
    "get_poseidon_hash",
    "poseidon_permutation_hash",
    "FIELD_MODULUS",
]
