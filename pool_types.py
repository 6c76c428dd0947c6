# pool_types.py
# Request and event types of the pool.
#
# Wire form (node payloads) is hex strings and JSON ints.
# Proof binary form is the fixed 512-byte concatenation:
#   proof_a(64) proof_b(128) proof_c(64) root public_amount0 public_amount1
#   ext_data_hash input_nullifiers[2] output_commitments[2]   (32 bytes each)

import struct

from field_codec import I64_MAX, I64_MIN, U64_MAX
from tools import decode_hex_exact

PROOF_SIZE = 512

_PROOF_FIELDS = [
    ("proof_a", 64),
    ("proof_b", 128),
    ("proof_c", 64),
    ("root", 32),
    ("public_amount0", 32),
    ("public_amount1", 32),
    ("ext_data_hash", 32),
]


def _require_i64(value, field_name):
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(field_name + " must be int")
    if value < I64_MIN or value > I64_MAX:
        raise ValueError(field_name + " out of i64 range")
    return value


def _require_u64(value, field_name):
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(field_name + " must be int")
    if value < 0 or value > U64_MAX:
        raise ValueError(field_name + " out of u64 range")
    return value


def _require_id32(value, field_name):
    if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
        raise ValueError(field_name + " must be 32 bytes")
    return bytes(value)


class Proof:
    def __init__(self, proof_a, proof_b, proof_c, root, public_amount0,
                 public_amount1, ext_data_hash, input_nullifiers, output_commitments):
        self.proof_a = bytes(proof_a)
        self.proof_b = bytes(proof_b)
        self.proof_c = bytes(proof_c)
        self.root = bytes(root)
        self.public_amount0 = bytes(public_amount0)
        self.public_amount1 = bytes(public_amount1)
        self.ext_data_hash = bytes(ext_data_hash)
        self.input_nullifiers = [bytes(n) for n in input_nullifiers]
        self.output_commitments = [bytes(c) for c in output_commitments]

    @classmethod
    def from_payload(cls, d):
        """
        Build a Proof from its wire dict. Raises ValueError naming the
        first bad field.
        """
        if not isinstance(d, dict):
            raise ValueError("proof must be an object")

        values = {}
        for name, size in _PROOF_FIELDS:
            if name not in d:
                raise ValueError("missing proof field: " + name)
            values[name] = decode_hex_exact(d[name], size, name)

        pairs = {}
        for name in ("input_nullifiers", "output_commitments"):
            lst = d.get(name)
            if not isinstance(lst, list) or len(lst) != 2:
                raise ValueError(name + " must be a list of 2 hex strings")
            pairs[name] = [
                decode_hex_exact(lst[0], 32, name + "[0]"),
                decode_hex_exact(lst[1], 32, name + "[1]"),
            ]

        return cls(
            values["proof_a"], values["proof_b"], values["proof_c"],
            values["root"], values["public_amount0"], values["public_amount1"],
            values["ext_data_hash"],
            pairs["input_nullifiers"], pairs["output_commitments"],
        )

    def to_payload(self):
        return {
            "proof_a": self.proof_a.hex(),
            "proof_b": self.proof_b.hex(),
            "proof_c": self.proof_c.hex(),
            "root": self.root.hex(),
            "public_amount0": self.public_amount0.hex(),
            "public_amount1": self.public_amount1.hex(),
            "ext_data_hash": self.ext_data_hash.hex(),
            "input_nullifiers": [n.hex() for n in self.input_nullifiers],
            "output_commitments": [c.hex() for c in self.output_commitments],
        }

    def to_bytes(self):
        out = bytearray()
        out.extend(self.proof_a)
        out.extend(self.proof_b)
        out.extend(self.proof_c)
        out.extend(self.root)
        out.extend(self.public_amount0)
        out.extend(self.public_amount1)
        out.extend(self.ext_data_hash)
        for n in self.input_nullifiers:
            out.extend(n)
        for c in self.output_commitments:
            out.extend(c)
        return bytes(out)

    @classmethod
    def from_bytes(cls, data):
        if len(data) != PROOF_SIZE:
            raise ValueError("proof must be %d bytes, got %d" % (PROOF_SIZE, len(data)))
        values = []
        off = 0
        for _name, size in _PROOF_FIELDS:
            values.append(bytes(data[off:off + size]))
            off += size
        nullifiers = [bytes(data[off:off + 32]), bytes(data[off + 32:off + 64])]
        off += 64
        commitments = [bytes(data[off:off + 32]), bytes(data[off + 32:off + 64])]
        return cls(*values, nullifiers, commitments)


class ExtDataMinified:
    def __init__(self, ext_amount, fee):
        self.ext_amount = _require_i64(ext_amount, "ext_amount")
        self.fee = _require_u64(fee, "fee")

    @classmethod
    def from_payload(cls, d):
        if not isinstance(d, dict):
            raise ValueError("ext_data must be an object")
        if "ext_amount" not in d or "fee" not in d:
            raise ValueError("ext_data needs ext_amount and fee")
        return cls(d["ext_amount"], d["fee"])

    def to_payload(self):
        return {"ext_amount": self.ext_amount, "fee": self.fee}


class SwapExtDataMinified:
    def __init__(self, ext_amount, ext_min_amount_out, fee):
        self.ext_amount = _require_i64(ext_amount, "ext_amount")
        self.ext_min_amount_out = _require_i64(ext_min_amount_out, "ext_min_amount_out")
        self.fee = _require_u64(fee, "fee")

    @classmethod
    def from_payload(cls, d):
        if not isinstance(d, dict):
            raise ValueError("ext_data must be an object")
        for f in ("ext_amount", "ext_min_amount_out", "fee"):
            if f not in d:
                raise ValueError("missing ext_data field: " + f)
        return cls(d["ext_amount"], d["ext_min_amount_out"], d["fee"])

    def to_payload(self):
        return {
            "ext_amount": self.ext_amount,
            "ext_min_amount_out": self.ext_min_amount_out,
            "fee": self.fee,
        }


class ExtData:
    """
    Deposit / withdraw auxiliary data: the minified wire fields plus the
    identities supplied by the request context.
    """

    def __init__(self, recipient, ext_amount, fee, fee_recipient):
        self.recipient = _require_id32(recipient, "recipient")
        self.ext_amount = _require_i64(ext_amount, "ext_amount")
        self.fee = _require_u64(fee, "fee")
        self.fee_recipient = _require_id32(fee_recipient, "fee_recipient")

    @classmethod
    def from_minified(cls, recipient, fee_recipient, minified):
        return cls(recipient, minified.ext_amount, minified.fee, fee_recipient)

    def serialize(self, encrypted_output, mint_a, mint_b):
        """
        Canonical little-endian encoding bound by the proof:
          recipient | ext_amount i64 | u32 len + encrypted_output | fee u64 |
          fee_recipient | mint_a | mint_b
        """
        enc = bytes(encrypted_output)
        return b"".join([
            self.recipient,
            struct.pack("<q", self.ext_amount),
            struct.pack("<I", len(enc)),
            enc,
            struct.pack("<Q", self.fee),
            self.fee_recipient,
            _require_id32(mint_a, "mint_a"),
            _require_id32(mint_b, "mint_b"),
        ])


class SwapExtData:
    def __init__(self, ext_amount, ext_min_amount_out, fee, fee_recipient):
        self.ext_amount = _require_i64(ext_amount, "ext_amount")
        self.ext_min_amount_out = _require_i64(ext_min_amount_out, "ext_min_amount_out")
        self.fee = _require_u64(fee, "fee")
        self.fee_recipient = _require_id32(fee_recipient, "fee_recipient")

    @classmethod
    def from_minified(cls, fee_recipient, minified):
        return cls(minified.ext_amount, minified.ext_min_amount_out, minified.fee, fee_recipient)

    def serialize(self, encrypted_output, mint_a, mint_b):
        enc = bytes(encrypted_output)
        return b"".join([
            struct.pack("<q", self.ext_amount),
            struct.pack("<q", self.ext_min_amount_out),
            struct.pack("<I", len(enc)),
            enc,
            struct.pack("<Q", self.fee),
            self.fee_recipient,
            _require_id32(mint_a, "mint_a"),
            _require_id32(mint_b, "mint_b"),
        ])


class CommitmentData:
    """Output event: index of commitment0, both commitments, encrypted notes."""

    def __init__(self, index, commitment0, commitment1, encrypted_output):
        self.index = index
        self.commitment0 = bytes(commitment0)
        self.commitment1 = bytes(commitment1)
        self.encrypted_output = bytes(encrypted_output)

    def to_dict(self):
        return {
            "index": self.index,
            "commitment0": self.commitment0.hex(),
            "commitment1": self.commitment1.hex(),
            "encrypted_output": self.encrypted_output.hex(),
        }

    @classmethod
    def from_dict(cls, d):
        return cls(
            d["index"],
            bytes.fromhex(d["commitment0"]),
            bytes.fromhex(d["commitment1"]),
            bytes.fromhex(d["encrypted_output"]),
        )
